"""
Remote PostgreSQL driver.

This module adapts an asyncpg connection pool to the RemoteDatabase
protocol: query(sql, params) returns rows as dicts plus a row count taken
from the command status ("INSERT 0 3" -> 3).

Placeholders are passed through unchanged; the remote engine expects
PostgreSQL-style ``$1, $2`` parameters.

Invariants:
    - connect() must be called before query() or begin()
    - Each query borrows one pool connection and returns it
    - A transaction keeps its connection until commit or rollback
    - Connection strings are never logged unredacted
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import asyncpg

from .base import RemoteResult

logger = logging.getLogger(__name__)


def redact_dsn(dsn: str) -> str:
    """Strip credentials from a connection string for logging."""
    parts = urlsplit(dsn)
    if not parts.hostname:
        return "<redacted>"
    netloc = parts.hostname
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def _row_count(status: str | None, fetched: int) -> int:
    """Row count from a command status tag, falling back to fetched rows."""
    if status:
        last = status.rsplit(" ", 1)[-1]
        if last.isdigit():
            return int(last)
    return fetched


async def _run(conn: Any, sql: str, params: Sequence[Any]) -> RemoteResult:
    stmt = await conn.prepare(sql)
    records = await stmt.fetch(*params)
    rows = [dict(record) for record in records]
    return RemoteResult(rows=rows, row_count=_row_count(stmt.get_statusmsg(), len(rows)))


class PostgresTransaction:
    """Transaction pinned to one pool connection."""

    def __init__(self, pool: Any, conn: Any, transaction: Any) -> None:
        self._pool = pool
        self._conn = conn
        self._transaction = transaction
        self._open = True

    async def execute(self, sql: str, params: Sequence[Any]) -> RemoteResult:
        return await _run(self._conn, sql, params)

    async def commit(self) -> None:
        if not self._open:
            return
        try:
            await self._transaction.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        if not self._open:
            return
        try:
            await self._transaction.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        self._open = False
        await self._pool.release(self._conn)


class PostgresDatabase:
    """asyncpg implementation of RemoteDatabase.

    Example:
        >>> db = PostgresDatabase("postgresql://app@db.internal/app")
        >>> await db.connect()
        >>> result = await db.query("SELECT * FROM orders WHERE id = $1", [7])
        >>> result.row_count
        1
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 60.0,
    ) -> None:
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Any = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the connection pool.

        Raises:
            asyncpg.PostgresError: If the server rejects the connection
            OSError: If the server is unreachable
        """
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
        )
        logger.info(f"Connected to remote database: {redact_dsn(self.dsn)}")

    def _require_pool(self) -> Any:
        if self._pool is None:
            raise ConnectionError("Remote database is not connected")
        return self._pool

    async def query(self, sql: str, params: Sequence[Any] = ()) -> RemoteResult:
        pool = self._require_pool()
        async with pool.acquire() as conn:
            return await _run(conn, sql, params)

    async def begin(self) -> PostgresTransaction:
        pool = self._require_pool()
        conn = await pool.acquire()
        transaction = conn.transaction()
        try:
            await transaction.start()
        except BaseException:
            await pool.release(conn)
            raise
        return PostgresTransaction(pool, conn, transaction)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"Closed remote database pool: {redact_dsn(self.dsn)}")
