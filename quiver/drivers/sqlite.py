"""
Quiver Drivers - SQLite connection via aiosqlite.

One connection per database. Transactions are explicit (``BEGIN`` /
``COMMIT`` / ``ROLLBACK``) and serialized with a lock, since every task
shares the same connection. Statements from other tasks wait for an open
transaction to finish, so they never see its uncommitted rows; a task
already inside a transaction joins it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import aiosqlite

logger = logging.getLogger("quiver.drivers.sqlite")

__all__ = ["SQLiteDatabase"]


class SQLiteDatabase:
    """
    Async SQLite connection manager.

    Usage:
        db = SQLiteDatabase("sqlite:///:memory:")
        await db.connect()
        async with db.transaction():
            await db.execute("INSERT INTO articles (title) VALUES (?)", ["Hello"])
        rows = await db.fetch_all("SELECT * FROM articles")
        await db.disconnect()
    """

    def __init__(self, url: str = "sqlite:///:memory:"):
        self.url = url
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(f"quiver_sqlite_tx_{id(self)}", default=False)

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                path = url[len(prefix):]
                return path or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        if self._connection is not None:
            return
        db_path = self._parse_url(self.url)
        # autocommit mode: transactions are opened explicitly
        self._connection = await aiosqlite.connect(db_path, isolation_level=None)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys=ON")
        logger.info(f"SQLite connected: {db_path}")

    async def disconnect(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("SQLite disconnected")

    async def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            await self.connect()
        return self._connection

    @asynccontextmanager
    async def _statement(self) -> AsyncIterator[aiosqlite.Connection]:
        """Connection for one statement; waits while another task holds a transaction."""
        conn = await self._conn()
        if self._in_transaction.get():
            yield conn
            return
        async with self._lock:
            yield conn

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        async with self._statement() as conn:
            return await conn.execute(sql, list(params or []))

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        async with self._statement() as conn:
            cursor = await conn.execute(sql, list(params or []))
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        async with self._statement() as conn:
            cursor = await conn.execute(sql, list(params or []))
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        async with self._statement() as conn:
            cursor = await conn.execute(sql, list(params or []))
            row = await cursor.fetchone()
        return row[0] if row is not None else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit on success, roll back on any exception."""
        if self._in_transaction.get():
            yield
            return

        conn = await self._conn()
        async with self._lock:
            token = self._in_transaction.set(True)
            await conn.execute("BEGIN")
            try:
                yield
                await conn.execute("COMMIT")
            except BaseException:
                await conn.execute("ROLLBACK")
                logger.debug("SQLite transaction rolled back")
                raise
            finally:
                self._in_transaction.reset(token)
