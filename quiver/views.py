"""
Views - response composition for resource actions.

An action describes what it wants to show with a ``View``; the
``ViewHandler`` turns it into a structured JSON response in API mode or
a rendered template in interactive mode.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .config import ResourceConfiguration
from .faults import Fault, ValidationFault
from .pagination import Paginator
from .response import Response

logger = logging.getLogger("quiver.views")

__all__ = [
    "View",
    "ViewHandler",
    "serialize",
    "fault_to_response",
]


def serialize(data: Any) -> Any:
    """Default structured projection of resources, pages and forms."""
    if data is None or isinstance(data, (str, int, float, bool)):
        return data
    if isinstance(data, Paginator):
        return data.to_dict(serialize)
    if isinstance(data, dict):
        return {str(k): serialize(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set)):
        return [serialize(item) for item in data]
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if dataclasses.is_dataclass(data):
        return {f.name: serialize(getattr(data, f.name)) for f in dataclasses.fields(data)}
    if hasattr(data, "__dict__"):
        return {k: serialize(v) for k, v in vars(data).items() if not k.startswith("_")}
    return str(data)


@dataclass
class View:
    """
    What an action wants to show.

    Attributes:
        data: Resource, list, paginator, or a template context dict
        template: Template for interactive mode
        template_var: Name under which ``data`` is exposed to the template
        status: Response status
        form: Bound form, if the view shows one
    """

    data: Any = None
    template: Optional[str] = None
    template_var: Optional[str] = None
    status: int = 200
    form: Any = None


class ViewHandler:
    """
    Chooses between structured and rendered responses.

    Args:
        config: Resource configuration (API-mode predicate)
        renderer: ``render(template, context) -> str`` collaborator
        serializer: Callable projecting data for API responses
    """

    def __init__(
        self,
        config: ResourceConfiguration,
        renderer: Any = None,
        serializer: Optional[Callable[[Any], Any]] = None,
    ):
        self.config = config
        self.renderer = renderer
        self.serializer = serializer or serialize

    def handle(self, view: View, request: Any = None) -> Response:
        if self.config.is_api_request(request):
            return self._structured(view)
        return self._rendered(view, request)

    def _structured(self, view: View) -> Response:
        form = view.form
        if form is not None and getattr(form, "errors", None):
            fault = ValidationFault(
                self.config.resource_name,
                form.errors,
                status=view.status if view.status >= 400 else 400,
            )
            return Response.json(fault.form_payload(), status=fault.status)
        if form is not None and view.data is None:
            return Response.json(self.serializer(form), status=view.status)
        return Response.json(self.serializer(view.data), status=view.status)

    def _rendered(self, view: View, request: Any) -> Response:
        if self.renderer is None:
            raise RuntimeError(
                f"No renderer configured for interactive {self.config.resource_name} views"
            )
        if view.template is None:
            raise RuntimeError(f"No template configured for {self.config.resource_name}")

        if view.template_var is not None:
            context: Dict[str, Any] = {view.template_var: view.data}
        else:
            context = dict(view.data or {})
        if view.form is not None:
            context.setdefault("form", view.form)
        session = getattr(request, "session", None)
        if session is not None:
            context.setdefault("session", session)

        return Response.html(self.renderer.render(view.template, context), status=view.status)


def fault_to_response(fault: Fault, request: Any = None, config: Optional[ResourceConfiguration] = None,
                      renderer: Any = None) -> Response:
    """
    Map a fault escaping an action to a terminal response.

    API requests get the fault's structured payload; interactive requests
    get ``error/<status>.html`` when a renderer is available, plain text
    otherwise.
    """
    api = config.is_api_request(request) if config is not None else bool(
        getattr(request, "format", None) not in (None, "html")
    )
    if api:
        return Response.json({"error": fault.to_dict()}, status=fault.status)

    message = fault.message if fault.public else "Internal error"
    if renderer is not None:
        try:
            content = renderer.render(f"error/{fault.status}.html", {"fault": fault, "message": message})
            return Response.html(content, status=fault.status)
        except LookupError:
            logger.debug(f"No error template for status {fault.status}")
    return Response.text(message, status=fault.status)
