"""
ResourceRequest - the request shape consumed by resource actions.

The HTTP layer (router, ASGI adapter, test client) builds one of these
per request; the orchestrator never touches raw transport objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional

__all__ = ["ResourceRequest"]

# Accept header media type -> request format
_FORMATS = {
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "text/html": "html",
    "application/xhtml+xml": "html",
}


@dataclass
class ResourceRequest:
    """
    Abstract request for resource actions.

    Attributes:
        method: HTTP method
        attributes: Route parameters (``id``, ``slug``, ``_format``)
        query: Query string parameters (``page``)
        data: Submitted form or JSON body
        headers: Request headers (lower-cased names)
        session: Per-request session mapping, used for flash messages
    """

    method: str = "GET"
    attributes: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    session: Optional[MutableMapping[str, Any]] = None

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    def get(self, key: str, default: Any = None) -> Any:
        """Look a parameter up in route attributes, then query, then body."""
        for source in (self.attributes, self.query, self.data):
            if key in source:
                return source[key]
        return default

    def is_method(self, *methods: str) -> bool:
        return self.method in {m.upper() for m in methods}

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def format(self) -> Optional[str]:
        """
        Requested format.

        An explicit ``_format`` route attribute wins; otherwise the first
        known media type of the Accept header. ``None`` when neither
        says anything, so configuration defaults apply.
        """
        explicit = self.attributes.get("_format")
        if explicit:
            return str(explicit).lower()

        accept = self.header("accept")
        if not accept:
            return None
        for part in accept.split(","):
            media_type = part.split(";", 1)[0].strip().lower()
            if media_type in _FORMATS:
                return _FORMATS[media_type]
        return None

    @property
    def page(self) -> int:
        """Requested page number, 1 when missing or malformed."""
        try:
            return max(1, int(self.get("page", 1)))
        except (TypeError, ValueError):
            return 1
