"""
Authorization - gate in front of every resource action.

The gate resolves an action to a role through the resource
configuration and asks an ``AuthorizationChecker`` whether the current
user holds it. Policy logic lives in the checker; the package ships a
role-hierarchy checker with optional attribute voters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from .config import ResourceConfiguration
from .faults import AccessDeniedFault

logger = logging.getLogger("quiver.authz")

__all__ = [
    "Decision",
    "ResourceSubject",
    "AuthorizationGate",
    "RoleHierarchyChecker",
    "owner_only",
]


class Decision(str, Enum):
    """Voter decision."""

    ALLOW = "allow"
    DENY = "deny"
    ABSTAIN = "abstain"


@dataclass(frozen=True)
class ResourceSubject:
    """
    Reference to the resource a request targets, before it is loaded.

    Lets checkers decide on (resource kind, lookup criteria) without a
    driver call.
    """

    resource: str
    criteria: Mapping[str, Any] = field(default_factory=dict)


class AuthorizationGate:
    """
    Action-level access check.

    Usage:
        gate = AuthorizationGate(config, checker)
        gate.authorize_or_fail("update", subject)
    """

    def __init__(self, config: ResourceConfiguration, checker: Any = None):
        self.config = config
        self.checker = checker

    def is_granted(self, action: str, subject: Any = None) -> bool:
        role = self.config.role(action)
        if role is None:
            return True
        if self.checker is None:
            # a role is required but nobody can grant it
            return False
        return bool(self.checker.is_granted(role, subject))

    def authorize_or_fail(self, action: str, subject: Any = None) -> None:
        """
        Raises:
            AccessDeniedFault: the role mapped to ``action`` is not granted
        """
        if self.is_granted(action, subject):
            return
        role = self.config.role(action)
        logger.warning(
            f"Access denied: {action} on {self.config.resource_name} requires {role}"
        )
        raise AccessDeniedFault(self.config.resource_name, action, role)


Voter = Callable[[str, Any, Set[str]], Decision]


class RoleHierarchyChecker:
    """
    Role-based checker with inheritance and attribute voters.

    A role is granted when it is reachable from the user's roles through
    the hierarchy. Voters run first: any DENY wins, then any ALLOW,
    otherwise the role check decides.

    Usage:
        checker = RoleHierarchyChecker(
            roles=["ROLE_EDITOR"],
            hierarchy={"ROLE_ADMIN": ["ROLE_EDITOR"], "ROLE_EDITOR": ["ROLE_USER"]},
        )
        checker.is_granted("ROLE_USER")   # True
        checker.is_granted("ROLE_ADMIN")  # False
    """

    def __init__(
        self,
        roles: Iterable[str] = (),
        hierarchy: Optional[Mapping[str, Iterable[str]]] = None,
        voters: Optional[List[Voter]] = None,
    ):
        self.roles = list(roles)
        self._hierarchy: Dict[str, Set[str]] = {
            role: set(children) for role, children in (hierarchy or {}).items()
        }
        self.voters = list(voters or [])

    def reachable_roles(self) -> Set[str]:
        reachable: Set[str] = set()
        pending = list(self.roles)
        while pending:
            role = pending.pop()
            if role in reachable:
                continue
            reachable.add(role)
            pending.extend(self._hierarchy.get(role, ()))
        return reachable

    def is_granted(self, role: str, subject: Any = None) -> bool:
        reachable = self.reachable_roles()
        decisions = [voter(role, subject, reachable) for voter in self.voters]
        if Decision.DENY in decisions:
            return False
        if Decision.ALLOW in decisions:
            return True
        return role in reachable


def owner_only(user_id: Any, attribute: str = "owner_id", bypass_role: Optional[str] = None) -> Voter:
    """
    Voter denying access to loaded resources owned by someone else.

    Subjects that are not loaded resources (``None``, ``ResourceSubject``)
    are abstained on.
    """
    def voter(role: str, subject: Any, roles: Set[str]) -> Decision:
        if subject is None or isinstance(subject, ResourceSubject):
            return Decision.ABSTAIN
        if bypass_role and bypass_role in roles:
            return Decision.ABSTAIN
        if not hasattr(subject, attribute):
            return Decision.ABSTAIN
        return Decision.ABSTAIN if getattr(subject, attribute) == user_id else Decision.DENY

    return voter
