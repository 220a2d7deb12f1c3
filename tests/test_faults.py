"""
Faults System (quiver/faults/)

Tests Fault, FaultDomain, Severity and the domain fault types.
"""

import pytest

from quiver.faults.core import DOMAIN_DEFAULTS, Fault, FaultDomain, Severity
from quiver.faults import (
    AccessDeniedFault,
    ConfigInvalidFault,
    DriverNotFoundFault,
    OperationNotAllowedFault,
    PersistenceFault,
    ResourceNotFoundFault,
    ValidationFault,
)


# ============================================================================
# Severity & FaultDomain
# ============================================================================

class TestSeverity:

    def test_values(self):
        assert Severity.INFO == "info"
        assert Severity.WARN == "warn"
        assert Severity.ERROR == "error"
        assert Severity.FATAL == "fatal"


class TestFaultDomain:

    def test_standard_domains(self):
        assert FaultDomain.CONFIG.name == "config"
        assert FaultDomain.ROUTING.name == "routing"
        assert FaultDomain.FLOW.name == "flow"
        assert FaultDomain.PERSISTENCE.name == "persistence"
        assert FaultDomain.SECURITY.name == "security"

    def test_domain_equality(self):
        assert FaultDomain("test") == FaultDomain("test")
        assert FaultDomain("test") != FaultDomain("other")
        assert hash(FaultDomain("test")) == hash(FaultDomain("test"))

    def test_config_defaults_to_fatal(self):
        assert DOMAIN_DEFAULTS[FaultDomain.CONFIG]["severity"] == Severity.FATAL


# ============================================================================
# Fault base
# ============================================================================

class TestFault:

    def test_requires_code_message_domain(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_defaults_from_domain(self):
        fault = Fault("ARTICLE_LOCKED", "locked", domain=FaultDomain.FLOW)
        assert fault.severity == Severity.ERROR
        assert fault.retryable is False
        assert fault.status == 500
        assert str(fault) == "[ARTICLE_LOCKED] locked"

    def test_status_override(self):
        fault = Fault("TEAPOT", "short and stout", domain=FaultDomain.FLOW, status=418)
        assert fault.status == 418

    def test_private_fault_hides_details(self):
        fault = Fault("BOOM", "db password is hunter2", domain=FaultDomain.FLOW, metadata={"x": 1})
        data = fault.to_dict()
        assert data["message"] == "Internal error"
        assert "metadata" not in data

    def test_public_fault_exposes_details(self):
        fault = Fault("BOOM", "visible", domain=FaultDomain.FLOW, public=True, metadata={"x": 1})
        data = fault.to_dict()
        assert data["message"] == "visible"
        assert data["metadata"] == {"x": 1}
        assert data["domain"] == "flow"


# ============================================================================
# Domain faults
# ============================================================================

class TestDomainFaults:

    def test_not_found_message_names_resource_and_criteria(self):
        fault = ResourceNotFoundFault("Article", {"slug": "hello-world"})
        assert fault.status == 404
        assert fault.code == "RESOURCE_NOT_FOUND"
        assert fault.message == (
            'Requested Article does not exist with these criteria: {"slug": "hello-world"}.'
        )
        assert fault.public

    def test_access_denied(self):
        fault = AccessDeniedFault("article", "UPDATE", "ROLE_ARTICLE_UPDATE")
        assert fault.status == 403
        assert fault.role == "ROLE_ARTICLE_UPDATE"
        assert "update" in fault.message
        assert fault.domain == FaultDomain.SECURITY

    def test_driver_not_found_is_fatal_config(self):
        fault = DriverNotFoundFault("unknown-backend")
        assert fault.kind == "unknown-backend"
        assert fault.domain == FaultDomain.CONFIG
        assert fault.severity == Severity.FATAL
        assert "unknown-backend" in fault.message

    def test_operation_not_allowed_lists_allowed(self):
        fault = OperationNotAllowedFault("findAll", ["findOneBy", "findBy"])
        assert fault.operation == "findAll"
        assert "findOneBy, findBy" in fault.message

    def test_config_invalid_is_private(self):
        fault = ConfigInvalidFault("app.article.paginate", "expected a positive integer")
        assert fault.to_dict()["message"] == "Internal error"
        assert fault.metadata["key"] == "app.article.paginate"

    def test_validation_fault(self):
        fault = ValidationFault("article", {"title": ["This value should not be blank."]})
        assert fault.status == 400
        assert fault.errors["title"] == ["This value should not be blank."]
        assert fault.form_payload() == {
            "code": 400,
            "message": "Validation Failed",
            "errors": {"title": ["This value should not be blank."]},
        }

    def test_validation_fault_for_rejected_write(self):
        fault = ValidationFault("article", {"__all__": ["Could not create article: taken"]}, status=409)
        assert fault.status == 409
        assert fault.form_payload()["code"] == 409

    def test_persistence_fault(self):
        fault = PersistenceFault("article", "create", "slug already exists")
        assert fault.status == 409
        assert fault.message == "Could not create article: slug already exists"
        assert fault.to_dict()["metadata"]["operation"] == "create"
