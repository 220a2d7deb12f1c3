"""
Response - transport-neutral result of a resource action.

The HTTP layer turns a Response into its own wire object; the
orchestrator only decides status, body and headers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

__all__ = ["Response"]


@dataclass
class Response:
    """
    Response produced by an action.

    Attributes:
        status: HTTP status code
        content: Rendered body (html/text), ``None`` for json and redirects
        data: Structured payload for API responses
        headers: Response headers
        media_type: Content type of the body
    """

    status: int = 200
    content: Optional[str] = None
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    media_type: str = "text/html"

    @classmethod
    def json(cls, data: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> "Response":
        return cls(status=status, data=data, headers=dict(headers or {}), media_type="application/json")

    @classmethod
    def html(cls, content: str, status: int = 200, headers: Optional[Dict[str, str]] = None) -> "Response":
        return cls(status=status, content=content, headers=dict(headers or {}), media_type="text/html")

    @classmethod
    def text(cls, content: str, status: int = 200) -> "Response":
        return cls(status=status, content=content, media_type="text/plain")

    @classmethod
    def redirect(cls, url: str, status: int = 302) -> "Response":
        return cls(status=status, headers={"location": url}, media_type="text/plain")

    @classmethod
    def empty(cls, status: int = 204) -> "Response":
        return cls(status=status, media_type="text/plain")

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and "location" in self.headers

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    def body(self) -> bytes:
        """Encoded body, JSON-dumping structured data."""
        if self.data is not None:
            return json.dumps(self.data, default=str).encode("utf-8")
        return (self.content or "").encode("utf-8")
