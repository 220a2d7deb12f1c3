"""
Quiver Drivers - base driver interface.

A driver adapts one persistence backend to the uniform repository
contract used by the orchestrator, for exactly one resource kind:

- ``create_new()``                         fresh, unsaved instance
- ``find_one_by(criteria)``                one instance or ``None``
- ``find_by(criteria, sorting, limit)``    list, possibly empty
- ``create_paginator(criteria, sorting)``  lazy ``Paginator`` handle
- ``create / update / delete(resource)``   writes
- ``transaction()``                        async context manager

Lookups never raise for "no match"; writes raise ``DriverError``
subclasses which the domain manager turns into ``PersistenceFault``.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from ..pagination import Paginator, PaginatorAdapter

logger = logging.getLogger("quiver.drivers")

__all__ = [
    "ResourceMetadata",
    "Driver",
    "DriverError",
    "DuplicateKeyError",
    "ConcurrentModificationError",
    "QueryAdapter",
]


class DriverError(Exception):
    """Base class for backend write failures."""


class DuplicateKeyError(DriverError):
    """A unique field (or node path) is already taken."""


class ConcurrentModificationError(DriverError):
    """The stored version differs from the version being written."""


@dataclass(frozen=True)
class ResourceMetadata:
    """
    What a driver needs to know about the resource kind it serves.

    Attributes:
        name: Singular resource name
        model: Resource class; must be constructible without arguments
        plural: Plural name, used for table names and repository roots
        identifier: Name of the surrogate id attribute
        options: Backend specific options (``unique``, ``table``, ...)
    """

    name: str
    model: type
    plural: str = ""
    identifier: str = "id"
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.plural:
            object.__setattr__(self, "plural", f"{self.name}s")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def new_instance(self) -> Any:
        return self.model()

    def field_names(self) -> List[str]:
        if dataclasses.is_dataclass(self.model):
            return [f.name for f in dataclasses.fields(self.model)]
        annotations = getattr(self.model, "__annotations__", {})
        return [name for name in annotations if not name.startswith("_")]

    def extract(self, resource: Any) -> Dict[str, Any]:
        """Resource -> plain field mapping."""
        if dataclasses.is_dataclass(resource):
            return {f.name: getattr(resource, f.name) for f in dataclasses.fields(resource)}
        if hasattr(resource, "to_dict"):
            return dict(resource.to_dict())
        return {k: v for k, v in vars(resource).items() if not k.startswith("_")}

    def hydrate(self, data: Mapping[str, Any]) -> Any:
        """Plain field mapping -> resource instance."""
        if dataclasses.is_dataclass(self.model):
            # run field defaults for anything the row does not carry
            instance = self.model()
        else:
            instance = self.model.__new__(self.model)
        for key, value in data.items():
            setattr(instance, key, value)
        return instance

    def identity_of(self, resource: Any) -> Any:
        return getattr(resource, self.identifier, None)


class QueryAdapter(PaginatorAdapter):
    """Paginator adapter that runs a driver query lazily."""

    def __init__(self, driver: "Driver", criteria: Mapping[str, Any], sorting: Mapping[str, str]):
        self._driver = driver
        self._criteria = dict(criteria)
        self._sorting = dict(sorting)

    async def count(self) -> int:
        return await self._driver.count(self._criteria)

    async def slice(self, offset: int, length: int) -> List[Any]:
        return await self._driver.find_by(self._criteria, self._sorting, limit=length, offset=offset)


class Driver(ABC):
    """
    Abstract persistence driver bound to one resource kind.

    Subclasses implement the storage primitives; pagination and
    instance creation are shared.
    """

    kind: str = "base"

    def __init__(self, metadata: ResourceMetadata, **options: Any):
        self.metadata = metadata
        self.options = {**metadata.options, **options}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind!r} resource={self.metadata.name!r}>"

    # ── Lookups ──────────────────────────────────────────────────────

    def create_new(self) -> Any:
        return self.metadata.new_instance()

    @abstractmethod
    async def find_one_by(self, criteria: Mapping[str, Any]) -> Optional[Any]:
        ...

    @abstractmethod
    async def find_by(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        sorting: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        ...

    @abstractmethod
    async def count(self, criteria: Optional[Mapping[str, Any]] = None) -> int:
        ...

    def create_paginator(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        sorting: Optional[Mapping[str, str]] = None,
    ) -> Paginator:
        return Paginator(QueryAdapter(self, criteria or {}, sorting or {}))

    # ── Writes ───────────────────────────────────────────────────────

    @abstractmethod
    async def create(self, resource: Any) -> Any:
        ...

    @abstractmethod
    async def update(self, resource: Any) -> Any:
        ...

    @abstractmethod
    async def delete(self, resource: Any) -> None:
        ...

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Backends without transactions get a pass-through scope."""
        yield
