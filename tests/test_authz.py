"""
Authorization (quiver/authz.py)
"""

import pytest

from conftest import Article, RecordingChecker, article_config
from quiver.authz import AuthorizationGate, Decision, ResourceSubject, RoleHierarchyChecker, owner_only
from quiver.contracts import AuthorizationChecker
from quiver.faults import AccessDeniedFault


class TestAuthorizationGate:

    def test_unmapped_action_is_allowed_without_checker(self):
        gate = AuthorizationGate(article_config(role_prefix=None))
        assert gate.is_granted("show")
        gate.authorize_or_fail("delete")

    def test_required_role_without_checker_is_denied(self):
        gate = AuthorizationGate(article_config())
        assert not gate.is_granted("show")

    def test_denial_raises_with_role(self):
        checker = RecordingChecker({"ROLE_ARTICLE_SHOW"})
        gate = AuthorizationGate(article_config(), checker)
        subject = ResourceSubject("article", {"id": "1"})

        gate.authorize_or_fail("show", subject)
        with pytest.raises(AccessDeniedFault) as exc_info:
            gate.authorize_or_fail("update", subject)

        assert exc_info.value.role == "ROLE_ARTICLE_UPDATE"
        assert exc_info.value.status == 403
        assert checker.calls == [
            ("ROLE_ARTICLE_SHOW", subject),
            ("ROLE_ARTICLE_UPDATE", subject),
        ]


class TestRoleHierarchyChecker:

    def test_conforms_to_protocol(self):
        assert isinstance(RoleHierarchyChecker(), AuthorizationChecker)

    def test_inherited_roles(self):
        checker = RoleHierarchyChecker(
            roles=["ROLE_EDITOR"],
            hierarchy={"ROLE_ADMIN": ["ROLE_EDITOR"], "ROLE_EDITOR": ["ROLE_USER"]},
        )
        assert checker.reachable_roles() == {"ROLE_EDITOR", "ROLE_USER"}
        assert checker.is_granted("ROLE_USER")
        assert not checker.is_granted("ROLE_ADMIN")

    def test_cyclic_hierarchy_terminates(self):
        checker = RoleHierarchyChecker(roles=["A"], hierarchy={"A": ["B"], "B": ["A"]})
        assert checker.reachable_roles() == {"A", "B"}

    def test_allow_voter_grants_missing_role(self):
        checker = RoleHierarchyChecker(voters=[lambda role, subject, roles: Decision.ALLOW])
        assert checker.is_granted("ROLE_ANYTHING")

    def test_deny_wins(self):
        checker = RoleHierarchyChecker(
            roles=["ROLE_X"],
            voters=[
                lambda role, subject, roles: Decision.ALLOW,
                lambda role, subject, roles: Decision.DENY,
            ],
        )
        assert not checker.is_granted("ROLE_X")


class TestOwnerOnly:

    def test_owner_allowed_and_stranger_denied(self):
        checker = RoleHierarchyChecker(roles=["ROLE_ARTICLE_UPDATE"], voters=[owner_only(7)])
        assert checker.is_granted("ROLE_ARTICLE_UPDATE", Article(owner_id=7))
        assert not checker.is_granted("ROLE_ARTICLE_UPDATE", Article(owner_id=8))

    def test_unloaded_subject_abstains(self):
        checker = RoleHierarchyChecker(roles=["ROLE_ARTICLE_UPDATE"], voters=[owner_only(7)])
        assert checker.is_granted("ROLE_ARTICLE_UPDATE", ResourceSubject("article", {"id": "1"}))
        assert checker.is_granted("ROLE_ARTICLE_UPDATE")

    def test_bypass_role(self):
        checker = RoleHierarchyChecker(
            roles=["ROLE_ADMIN"],
            hierarchy={"ROLE_ADMIN": ["ROLE_ARTICLE_UPDATE"]},
            voters=[owner_only(7, bypass_role="ROLE_ADMIN")],
        )
        assert checker.is_granted("ROLE_ARTICLE_UPDATE", Article(owner_id=8))
