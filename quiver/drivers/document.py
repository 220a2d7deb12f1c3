"""
Quiver Drivers - document-odm driver.

Stores each resource as a document in an in-process collection keyed by
an ObjectId-like hex string.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict

from .memory import InMemoryDriver

__all__ = ["DocumentDriver"]


class DocumentDriver(InMemoryDriver):
    """
    Document collection driver.

    A resource created with an id keeps it; otherwise a 24 character
    hex id is generated, mirroring document-store object ids.
    """

    kind = "document-odm"

    @property
    def collection(self) -> str:
        return self.options.get("collection", self.metadata.plural)

    def _assign_identity(self, resource: Any, document: Dict[str, Any]) -> Any:
        identifier = self.metadata.identifier
        key = document.get(identifier)
        if key is None:
            key = secrets.token_hex(12)
            setattr(resource, identifier, key)
            document[identifier] = key
        return key
