"""
Quiver Drivers - shared machinery for in-process stores.

Documents are kept as deep-copied plain dicts keyed by a storage key.
Writes made inside ``transaction()`` are validated immediately,
buffered per task and validated again on commit; rollback discards
them.
"""

from __future__ import annotations

import copy
import itertools
import logging
from abc import abstractmethod
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

from .base import ConcurrentModificationError, Driver, DuplicateKeyError, ResourceMetadata

logger = logging.getLogger("quiver.drivers.memory")

__all__ = ["InMemoryDriver", "matches", "sort_documents"]

_uow_ids = itertools.count()


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    if actual is None or expected is None:
        return False
    # route parameters arrive as strings
    if isinstance(actual, str) != isinstance(expected, str):
        return str(actual) == str(expected)
    return False


def matches(document: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    """Equality match; list/tuple/set values mean "any of"."""
    for key, expected in criteria.items():
        actual = document.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if not any(_equals(actual, candidate) for candidate in expected):
                return False
        elif not _equals(actual, expected):
            return False
    return True


def sort_documents(documents: List[Dict[str, Any]], sorting: Mapping[str, str]) -> List[Dict[str, Any]]:
    """Stable multi-key sort; ``None`` sorts last in ascending order."""
    for name, direction in reversed(list(sorting.items())):
        descending = str(direction).lower() == "desc"
        documents.sort(
            key=lambda doc: (doc.get(name) is None, doc.get(name)) if not descending
            else (doc.get(name) is not None, doc.get(name)),
            reverse=descending,
        )
    return documents


class InMemoryDriver(Driver):
    """
    Base for drivers backed by an in-process document map.

    Subclasses decide the storage key and how identity is assigned.
    Options:
        unique: field names that must be unique across the collection
        version_field: field used for optimistic concurrency checks
    """

    def __init__(self, metadata: ResourceMetadata, **options: Any):
        super().__init__(metadata, **options)
        self._documents: Dict[Any, Dict[str, Any]] = {}
        self._pending: ContextVar[Optional[List[Tuple[str, Any, Any, Any]]]] = ContextVar(
            f"quiver_uow_{metadata.name}_{next(_uow_ids)}", default=None
        )
        self.unique_fields = tuple(self.options.get("unique", ()))
        self.version_field = self.options.get("version_field")

    # ── Storage hooks ────────────────────────────────────────────────

    @abstractmethod
    def _assign_identity(self, resource: Any, document: Dict[str, Any]) -> Any:
        """Set the identifier on a new resource/document pair, return the storage key."""

    def _key_of(self, resource: Any) -> Any:
        return self.metadata.identity_of(resource)

    # ── Views ────────────────────────────────────────────────────────

    def _view(self) -> Dict[Any, Dict[str, Any]]:
        """Committed documents overlaid with this task's pending writes."""
        pending = self._pending.get()
        if not pending:
            return self._documents
        view = dict(self._documents)
        for op, key, document, _ in pending:
            if op != "remove":
                view[key] = document
            else:
                view.pop(key, None)
        return view

    def _select(
        self,
        criteria: Optional[Mapping[str, Any]],
        sorting: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        selected = [doc for doc in self._documents.values() if matches(doc, criteria or {})]
        if sorting:
            sort_documents(selected, sorting)
        return selected

    # ── Lookups ──────────────────────────────────────────────────────

    async def find_one_by(self, criteria: Mapping[str, Any]) -> Optional[Any]:
        for document in self._select(criteria):
            return self.metadata.hydrate(copy.deepcopy(document))
        return None

    async def find_by(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        sorting: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        selected = self._select(criteria, sorting)
        end = None if limit is None else offset + limit
        return [self.metadata.hydrate(copy.deepcopy(doc)) for doc in selected[offset:end]]

    async def count(self, criteria: Optional[Mapping[str, Any]] = None) -> int:
        return len(self._select(criteria))

    # ── Writes ───────────────────────────────────────────────────────

    def _check_unique(self, store: Mapping[Any, Mapping[str, Any]], key: Any, document: Mapping[str, Any]) -> None:
        for name in self.unique_fields:
            value = document.get(name)
            if value is None:
                continue
            for other_key, other in store.items():
                if other_key != key and other.get(name) == value:
                    raise DuplicateKeyError(
                        f"{self.metadata.name} with {name}={value!r} already exists"
                    )

    def _check(
        self,
        store: Mapping[Any, Mapping[str, Any]],
        op: str,
        key: Any,
        document: Optional[Mapping[str, Any]],
        base_version: Any,
    ) -> None:
        """Validate one write against ``store``."""
        if op == "create":
            if key in store:
                raise DuplicateKeyError(f"{self.metadata.name} {key!r} already exists")
        elif op == "update":
            stored = store.get(key)
            if stored is None:
                raise ConcurrentModificationError(f"{self.metadata.name} {key!r} no longer exists")
            if self.version_field and stored.get(self.version_field) != base_version:
                raise ConcurrentModificationError(
                    f"{self.metadata.name} {key!r} was modified concurrently "
                    f"(stored version {stored.get(self.version_field)}, got {base_version})"
                )
        if document is not None:
            self._check_unique(store, key, document)

    def _apply(
        self,
        store: Dict[Any, Dict[str, Any]],
        op: str,
        key: Any,
        document: Optional[Dict[str, Any]],
        base_version: Any,
    ) -> None:
        self._check(store, op, key, document, base_version)
        if op == "remove":
            store.pop(key, None)
        else:
            store[key] = document

    def _write(self, op: str, key: Any, document: Optional[Dict[str, Any]] = None, base_version: Any = None) -> None:
        pending = self._pending.get()
        if pending is None:
            self._apply(self._documents, op, key, document, base_version)
            return
        self._check(self._view(), op, key, document, base_version)
        pending.append((op, key, document, base_version))

    async def create(self, resource: Any) -> Any:
        document = self.metadata.extract(resource)
        key = self._assign_identity(resource, document)
        if self.version_field:
            document[self.version_field] = 1
        self._write("create", key, copy.deepcopy(document))
        if self.version_field:
            setattr(resource, self.version_field, 1)
        return resource

    async def update(self, resource: Any) -> Any:
        key = self._key_of(resource)
        document = self.metadata.extract(resource)
        expected = document.get(self.version_field) if self.version_field else None
        if self.version_field:
            document[self.version_field] = (expected or 0) + 1

        self._write("update", key, copy.deepcopy(document), expected)
        if self.version_field:
            setattr(resource, self.version_field, document[self.version_field])
        return resource

    async def delete(self, resource: Any) -> None:
        self._write("remove", self._key_of(resource))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Buffer writes for the current task.

        On commit every buffered write is checked again against the
        committed store, so a version or unique value another task
        committed in the meantime fails the whole unit. Nested scopes
        join the outer one.
        """
        if self._pending.get() is not None:
            yield
            return

        token = self._pending.set([])
        try:
            yield
            pending = self._pending.get()
            staged = dict(self._documents)
            for op, key, document, base_version in pending:
                self._apply(staged, op, key, document, base_version)
            self._documents = staged
            logger.debug(f"{self.metadata.name}: committed {len(pending)} write(s)")
        except BaseException:
            logger.debug(f"{self.metadata.name}: rolled back")
            raise
        finally:
            self._pending.reset(token)
