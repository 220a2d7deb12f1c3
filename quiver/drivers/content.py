"""
Quiver Drivers - content-repository-odm driver.

Resources are nodes in a path tree. A node's id is its absolute path,
``<root>/<node name>``, where the node name comes from the resource's
name field (``slug`` by default). Paths are unique by construction and
do not change on update.
"""

from __future__ import annotations

import re
import secrets
from typing import Any, Dict, List

from .memory import InMemoryDriver

__all__ = ["ContentRepositoryDriver"]

_NODE_NAME_RE = re.compile(r"[^a-z0-9_-]+")


def _node_name(value: Any) -> str:
    name = _NODE_NAME_RE.sub("-", str(value).strip().lower()).strip("-")
    return name


class ContentRepositoryDriver(InMemoryDriver):
    """
    Hierarchical content repository driver.

    Options:
        root: Parent path for this resource kind (default ``/cms/<plural>``)
        name_field: Attribute used to build node names (default ``slug``)
    """

    kind = "content-repository-odm"

    @property
    def root(self) -> str:
        return self.options.get("root", f"/cms/{self.metadata.plural}").rstrip("/")

    @property
    def name_field(self) -> str:
        return self.options.get("name_field", "slug")

    def _assign_identity(self, resource: Any, document: Dict[str, Any]) -> Any:
        identifier = self.metadata.identifier
        name = _node_name(document.get(self.name_field) or "") or secrets.token_hex(6)
        path = f"{self.root}/{name}"
        setattr(resource, identifier, path)
        document[identifier] = path
        return path

    def children(self, path: str) -> List[str]:
        """Direct child paths of ``path`` in committed storage."""
        prefix = path.rstrip("/") + "/"
        return sorted(
            key for key in self._documents
            if key.startswith(prefix) and "/" not in key[len(prefix):]
        )
