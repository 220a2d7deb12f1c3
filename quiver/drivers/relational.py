"""
Quiver Drivers - relational-orm driver.

Maps a dataclass resource onto one SQLite table: one column per field,
``id`` as an autoincrement primary key.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import sqlite3
import types
import typing
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..faults import ConfigInvalidFault
from .base import ConcurrentModificationError, Driver, DuplicateKeyError, ResourceMetadata
from .sqlite import SQLiteDatabase

logger = logging.getLogger("quiver.drivers.relational")

__all__ = ["RelationalDriver"]

_IDENT_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_OPTIONAL_RE = re.compile(r"^(?:typing\.)?Optional\[(.+)\]$")
_SQL_TYPES = {"bool": "INTEGER", "int": "INTEGER", "float": "REAL"}


def _base_type(annotation: Any) -> str:
    """Scalar type name of a field annotation, ``Optional`` unwrapped."""
    if isinstance(annotation, str):
        name = annotation.strip()
        optional = _OPTIONAL_RE.match(name)
        if optional:
            name = optional.group(1).strip()
        parts = [part.strip() for part in name.split("|")]
        if len(parts) == 2 and "None" in parts:
            name = parts[0] if parts[1] == "None" else parts[1]
        return name.rsplit(".", 1)[-1] if name.startswith("builtins.") else name

    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _base_type(args[0])
        return ""
    if isinstance(annotation, type):
        for scalar in (bool, int, float):
            if issubclass(annotation, scalar):
                return scalar.__name__
    return ""


def _column_type(annotation: Any) -> str:
    return _SQL_TYPES.get(_base_type(annotation), "TEXT")


def _is_bool(annotation: Any) -> bool:
    return _base_type(annotation) == "bool"


class RelationalDriver(Driver):
    """
    Table-per-resource driver over ``SQLiteDatabase``.

    Options:
        database: Shared ``SQLiteDatabase`` (one is created from ``url`` otherwise)
        url: SQLite URL, default in-memory
        table: Table name (default: plural resource name)
        unique: Columns created with a UNIQUE constraint
        version_field: Column used for optimistic concurrency checks
    """

    kind = "relational-orm"

    def __init__(self, metadata: ResourceMetadata, **options: Any):
        super().__init__(metadata, **options)
        if not dataclasses.is_dataclass(metadata.model):
            raise ConfigInvalidFault(
                f"{metadata.name}.model",
                "relational-orm resources must be dataclasses",
            )
        self.database: SQLiteDatabase = self.options.get("database") or SQLiteDatabase(
            self.options.get("url", "sqlite:///:memory:")
        )
        self.table = self._ident(self.options.get("table", metadata.plural))
        self._fields = {f.name: f for f in dataclasses.fields(metadata.model)}
        if metadata.identifier not in self._fields:
            raise ConfigInvalidFault(
                f"{metadata.name}.model",
                f"missing identifier field '{metadata.identifier}'",
            )
        self.unique_fields = tuple(self.options.get("unique", ()))
        self.version_field = self.options.get("version_field")

    @staticmethod
    def _ident(name: str) -> str:
        if not _IDENT_RE.match(name):
            raise ConfigInvalidFault("table", f"invalid SQL identifier {name!r}")
        return name

    def _column(self, name: str) -> str:
        if name not in self._fields:
            raise ConfigInvalidFault(
                f"{self.metadata.name}.criteria",
                f"unknown column '{name}' on table '{self.table}'",
            )
        return f'"{name}"'

    # ── Schema ───────────────────────────────────────────────────────

    async def create_schema(self) -> None:
        """Create the resource table if it does not exist yet."""
        columns = []
        for name, f in self._fields.items():
            if name == self.metadata.identifier:
                columns.append(f'"{name}" INTEGER PRIMARY KEY AUTOINCREMENT')
                continue
            column = f'"{name}" {_column_type(f.type)}'
            if name in self.unique_fields:
                column += " UNIQUE"
            columns.append(column)
        await self.database.execute(
            f'CREATE TABLE IF NOT EXISTS "{self.table}" ({", ".join(columns)})'
        )
        logger.debug(f"Schema ready for table {self.table}")

    # ── SQL helpers ──────────────────────────────────────────────────

    def _where(self, criteria: Optional[Mapping[str, Any]]) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for name, value in (criteria or {}).items():
            column = self._column(name)
            if value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("0")
                    continue
                clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _order_by(self, sorting: Optional[Mapping[str, str]]) -> str:
        if not sorting:
            return ""
        parts = []
        for name, direction in sorting.items():
            direction = str(direction).upper()
            if direction not in ("ASC", "DESC"):
                raise ConfigInvalidFault(f"{self.metadata.name}.sorting", f"bad direction {direction!r}")
            parts.append(f"{self._column(name)} {direction}")
        return " ORDER BY " + ", ".join(parts)

    def _hydrate(self, row: Dict[str, Any]) -> Any:
        for name, f in self._fields.items():
            if name in row and row[name] is not None and _is_bool(f.type):
                row[name] = bool(row[name])
        return self.metadata.hydrate(row)

    # ── Lookups ──────────────────────────────────────────────────────

    async def find_one_by(self, criteria: Mapping[str, Any]) -> Optional[Any]:
        where, params = self._where(criteria)
        row = await self.database.fetch_one(f'SELECT * FROM "{self.table}"{where} LIMIT 1', params)
        return self._hydrate(row) if row is not None else None

    async def find_by(
        self,
        criteria: Optional[Mapping[str, Any]] = None,
        sorting: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        where, params = self._where(criteria)
        sql = f'SELECT * FROM "{self.table}"{where}{self._order_by(sorting)}'
        if limit is not None or offset:
            sql += " LIMIT ? OFFSET ?"
            params.extend([-1 if limit is None else int(limit), int(offset)])
        rows = await self.database.fetch_all(sql, params)
        return [self._hydrate(row) for row in rows]

    async def count(self, criteria: Optional[Mapping[str, Any]] = None) -> int:
        where, params = self._where(criteria)
        return int(await self.database.fetch_val(f'SELECT COUNT(*) FROM "{self.table}"{where}', params))

    # ── Writes ───────────────────────────────────────────────────────

    async def _run(self, sql: str, params: Sequence[Any]) -> Any:
        try:
            return await self.database.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise DuplicateKeyError(f"{self.metadata.name}: {exc}") from exc

    async def create(self, resource: Any) -> Any:
        data = self.metadata.extract(resource)
        identifier = self.metadata.identifier
        if data.get(identifier) is None:
            data.pop(identifier, None)
        if self.version_field:
            data[self.version_field] = 1
            setattr(resource, self.version_field, 1)

        columns = ", ".join(self._column(name) for name in data)
        placeholders = ", ".join("?" for _ in data)
        cursor = await self._run(
            f'INSERT INTO "{self.table}" ({columns}) VALUES ({placeholders})',
            list(data.values()),
        )
        if getattr(resource, identifier, None) is None:
            setattr(resource, identifier, cursor.lastrowid)
        return resource

    async def update(self, resource: Any) -> Any:
        data = self.metadata.extract(resource)
        identifier = self.metadata.identifier
        key = data.pop(identifier)

        where = f' WHERE "{identifier}" = ?'
        where_params: List[Any] = [key]
        if self.version_field:
            expected = data.get(self.version_field)
            data[self.version_field] = (expected or 0) + 1
            where += f" AND {self._column(self.version_field)} = ?"
            where_params.append(expected)

        assignments = ", ".join(f"{self._column(name)} = ?" for name in data)
        cursor = await self._run(
            f'UPDATE "{self.table}" SET {assignments}{where}',
            list(data.values()) + where_params,
        )
        if cursor.rowcount == 0:
            raise ConcurrentModificationError(
                f"{self.metadata.name} {key!r} was modified or removed concurrently"
            )
        if self.version_field:
            setattr(resource, self.version_field, data[self.version_field])
        return resource

    async def delete(self, resource: Any) -> None:
        identifier = self.metadata.identifier
        await self._run(
            f'DELETE FROM "{self.table}" WHERE "{identifier}" = ?',
            [self.metadata.identity_of(resource)],
        )

    def transaction(self):
        return self.database.transaction()
