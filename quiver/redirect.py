"""
Redirects after successful interactive writes.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .config import ResourceConfiguration
from .response import Response

__all__ = ["RedirectHandler", "RouteMap"]


class RouteMap:
    """
    Minimal router: route name -> path template with ``{param}`` slots.

    Parameters without a slot are appended as a query string.
    """

    def __init__(self, routes: Optional[Mapping[str, str]] = None):
        self.routes: Dict[str, str] = dict(routes or {})

    def add(self, name: str, path: str) -> None:
        self.routes[name] = path

    def generate(self, name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Reverse URL generation."""
        if name not in self.routes:
            raise LookupError(f"No route found with name: {name}")
        path = self.routes[name]
        query_params = {}
        for key, value in (params or {}).items():
            placeholder = f"{{{key}}}"
            if placeholder in path:
                path = path.replace(placeholder, str(value))
            else:
                query_params[key] = value
        if query_params:
            query_str = "&".join(f"{k}={v}" for k, v in query_params.items())
            path += f"?{query_str}"
        return path


def _is_local_path(target: Any) -> bool:
    """Absolute path on this host; ``//x`` and ``/\\x`` are host-relative URLs to browsers."""
    if not isinstance(target, str) or not target.startswith("/"):
        return False
    if len(target) > 1 and target[1] in ("/", "\\"):
        return False
    return not any(ch in target for ch in "\r\n\t")


class RedirectHandler:
    """
    Builds redirect responses through the router collaborator.

    A ``_redirect`` request parameter holding a local path overrides the
    configured target.
    """

    def __init__(self, config: ResourceConfiguration, router: Any):
        self.config = config
        self.router = router

    def redirect_to(self, resource: Any, request: Any = None) -> Response:
        """Redirect to the canonical view of ``resource``."""
        return self.redirect_to_route(
            self.config.redirect_route("show"),
            self.config.redirect_params(resource, "show"),
            request,
        )

    def redirect_to_index(self, resource: Any = None, request: Any = None) -> Response:
        """
        Redirect to the index view.

        ``resource`` only feeds configured redirect parameters; after a
        delete it is the identity captured before the row was removed.
        """
        return self.redirect_to_route(
            self.config.redirect_route("index"),
            self.config.redirect_params(resource, "index"),
            request,
        )

    def redirect_to_route(
        self,
        route: str,
        parameters: Optional[Mapping[str, Any]] = None,
        request: Any = None,
    ) -> Response:
        override = request.get("_redirect") if request is not None else None
        if _is_local_path(override):
            return Response.redirect(override)
        return Response.redirect(self.router.generate(route, dict(parameters or {})))
