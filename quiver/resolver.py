"""
Operation Resolver - invokes repository operations uniformly.

The orchestrator never calls driver methods directly. It builds one of
four operation variants and hands it to ``OperationResolver.resolve``:

    await resolver.resolve(driver, FindOneBy({"slug": "hello-world"}))
    await resolver.resolve(driver, FindBy({"published": True}, {"title": "asc"}, limit=20))
    await resolver.resolve(driver, CreatePaginator({}, {"id": "desc"}))
    await resolver.resolve(driver, CreateNew())

Operation names coming from configuration go through
``operation_from_name`` which rejects anything outside the supported set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .faults import OperationNotAllowedFault

logger = logging.getLogger("quiver.resolver")

__all__ = [
    "CreateNew",
    "FindOneBy",
    "FindBy",
    "CreatePaginator",
    "Operation",
    "OPERATIONS",
    "operation_from_name",
    "OperationResolver",
]


@dataclass(frozen=True)
class CreateNew:
    """Fresh, unsaved instance."""


@dataclass(frozen=True)
class FindOneBy:
    criteria: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FindBy:
    criteria: Mapping[str, Any] = field(default_factory=dict)
    sorting: Mapping[str, str] = field(default_factory=dict)
    limit: Optional[int] = None


@dataclass(frozen=True)
class CreatePaginator:
    criteria: Mapping[str, Any] = field(default_factory=dict)
    sorting: Mapping[str, str] = field(default_factory=dict)


Operation = Union[CreateNew, FindOneBy, FindBy, CreatePaginator]

OPERATIONS: Dict[str, type] = {
    "createNew": CreateNew,
    "findOneBy": FindOneBy,
    "findBy": FindBy,
    "createPaginator": CreatePaginator,
}


def operation_from_name(name: str, args: Sequence[Any] = ()) -> Operation:
    """
    Build an operation from a configured name and positional arguments.

    Raises:
        OperationNotAllowedFault: ``name`` is not a supported operation
    """
    operation = OPERATIONS.get(name)
    if operation is None:
        raise OperationNotAllowedFault(name, list(OPERATIONS))
    try:
        return operation(*args)
    except TypeError as exc:
        raise OperationNotAllowedFault(
            name, list(OPERATIONS), metadata={"reason": str(exc)}
        ) from exc


class OperationResolver:
    """Dispatches operation variants to the matching driver call."""

    async def resolve(self, repository: Any, operation: Operation) -> Any:
        """
        Run ``operation`` against ``repository``.

        Singular lookups yield ``None`` on no match, lists may be empty;
        turning "not found" into an error is the caller's job.
        """
        if isinstance(operation, FindOneBy):
            return await repository.find_one_by(dict(operation.criteria))
        if isinstance(operation, FindBy):
            return await repository.find_by(
                dict(operation.criteria), dict(operation.sorting), operation.limit
            )
        if isinstance(operation, CreatePaginator):
            return repository.create_paginator(dict(operation.criteria), dict(operation.sorting))
        if isinstance(operation, CreateNew):
            return repository.create_new()
        raise TypeError(f"Unsupported repository operation: {operation!r}")
