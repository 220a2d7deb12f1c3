"""
Collaborator protocols consumed by the resource controller.

Anything satisfying these shapes can be injected; the package ships a
default for each (``ResourceRequest``, ``ResourceForm``/``FormRegistry``,
``RoleHierarchyChecker``, ``Jinja2Renderer``, ``RouteMap``,
``DefaultTranslator``, ``serialize``). Drivers implement the
``Driver`` base class rather than a protocol.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Protocol, Tuple, runtime_checkable

from .drivers.base import Driver

__all__ = [
    "Form",
    "FormFactory",
    "AuthorizationChecker",
    "Renderer",
    "Router",
    "Translator",
    "Serializer",
    "Session",
    "Driver",
]


@runtime_checkable
class Form(Protocol):
    """Binds a request onto a resource."""

    data: Dict[str, Any]
    errors: Dict[str, List[str]]

    def bind(self, request: Any) -> Tuple[bool, Dict[str, List[str]]]:
        ...

    def add_error(self, field_name: str, message: str) -> None:
        ...


@runtime_checkable
class FormFactory(Protocol):
    def create(self, form_type: str, resource: Any) -> Form:
        ...


@runtime_checkable
class AuthorizationChecker(Protocol):
    def is_granted(self, role: str, subject: Any = None) -> bool:
        ...


@runtime_checkable
class Renderer(Protocol):
    def render(self, template: str, context: Optional[Dict[str, Any]] = None) -> str:
        ...


@runtime_checkable
class Router(Protocol):
    def generate(self, name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        ...


@runtime_checkable
class Translator(Protocol):
    def trans(self, key: str, parameters: Optional[Mapping[str, Any]] = None, domain: str = "flashes") -> str:
        ...


@runtime_checkable
class Serializer(Protocol):
    """Projects resources, pages and forms for API responses."""

    def __call__(self, data: Any) -> Any:
        ...


# flash messages live in the request session
Session = MutableMapping[str, Any]
