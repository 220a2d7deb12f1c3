"""
QuiverFaults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults (wiring-time, never recovered)
- ROUTING faults (resource lookup)
- FLOW faults (form validation)
- PERSISTENCE faults (driver writes)
- SECURITY faults (authorization)
"""

import json
from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            public=False,
            status=500,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


class DriverNotFoundFault(ConfigFault):
    """No driver is registered for the declared driver kind."""

    def __init__(self, kind: str, **kwargs):
        self.kind = kind
        super().__init__(
            code="DRIVER_NOT_FOUND",
            message=f"Unknown driver '{kind}'",
            metadata={"kind": kind, **kwargs.get("metadata", {})},
        )


class OperationNotAllowedFault(ConfigFault):
    """A repository operation name outside the supported set."""

    def __init__(self, operation: str, allowed: list[str], **kwargs):
        self.operation = operation
        super().__init__(
            code="OPERATION_NOT_ALLOWED",
            message=(
                f"Repository operation '{operation}' is not supported, "
                f"expected one of: {', '.join(allowed)}"
            ),
            metadata={"operation": operation, "allowed": allowed, **kwargs.get("metadata", {})},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class ResourceNotFoundFault(Fault):
    """Singular lookup returned nothing."""

    def __init__(self, resource: str, criteria: dict[str, Any], **kwargs):
        self.resource = resource
        self.criteria = criteria
        super().__init__(
            code="RESOURCE_NOT_FOUND",
            message=(
                f"Requested {resource} does not exist with these criteria: "
                f"{json.dumps(criteria, default=str, sort_keys=True)}."
            ),
            domain=FaultDomain.ROUTING,
            severity=Severity.WARN,
            public=True,
            status=404,
            metadata={"resource": resource, "criteria": criteria, **kwargs.get("metadata", {})},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class ValidationFault(Fault):
    """
    Submitted form data did not validate.

    ``status`` is 400 unless the errors came from a rejected write
    (409), which is reported with the same body.
    """

    def __init__(self, resource: str, errors: dict[str, list[str]], status: int = 400, **kwargs):
        self.errors = {name: list(messages) for name, messages in errors.items()}
        super().__init__(
            code="VALIDATION_FAILED",
            message=f"Submitted {resource} data is invalid",
            domain=FaultDomain.FLOW,
            severity=Severity.WARN,
            public=True,
            status=status,
            metadata={"resource": resource, "errors": self.errors, **kwargs.get("metadata", {})},
        )

    def form_payload(self) -> dict[str, Any]:
        """Body returned to API clients for an invalid form."""
        return {"code": self.status, "message": "Validation Failed", "errors": self.errors}


# ============================================================================
# PERSISTENCE Faults
# ============================================================================

class PersistenceFault(Fault):
    """Driver write failed (constraint violation, concurrent modification)."""

    def __init__(self, resource: str, operation: str, reason: str, **kwargs):
        self.resource = resource
        self.operation = operation
        self.reason = reason
        super().__init__(
            code="PERSISTENCE_FAILED",
            message=f"Could not {operation} {resource}: {reason}",
            domain=FaultDomain.PERSISTENCE,
            public=True,
            status=409,
            metadata={
                "resource": resource,
                "operation": operation,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class AccessDeniedFault(Fault):
    """Authorization collaborator denied the role required by an action."""

    def __init__(self, resource: str, action: str, role: str, **kwargs):
        self.resource = resource
        self.action = action
        self.role = role
        super().__init__(
            code="ACCESS_DENIED",
            message=f"Not authorized to {action.lower()} resource '{resource}'",
            domain=FaultDomain.SECURITY,
            public=True,
            status=403,
            metadata={"resource": resource, "action": action, "role": role, **kwargs.get("metadata", {})},
        )
