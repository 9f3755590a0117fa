"""
Embedded SQLite driver.

This module adapts the standard-library sqlite3 module to the
EmbeddedDatabase protocol, mirroring the prepared-statement shape of the
hosting platform's embedded binding:

    >>> db = SqliteDatabase("/var/lib/aerostack/app.db")
    >>> result = await db.prepare("SELECT * FROM users WHERE id = ?").bind(42).all()
    >>> result.results
    [{'id': 42, 'name': 'Ada'}]

Invariants:
    - One connection per driver, opened lazily, closed by close()
    - Statements are serialized by an asyncio.Lock (single writer)
    - An open transaction holds the lock until commit or rollback
    - A rejected COMMIT is rolled back before the lock is released
    - Rows are returned as plain dicts

How to change safely:
    - Keep PRAGMA setup in _configure(); it runs once per connection
    - Do not execute statements while holding a transaction from the same task
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .base import EmbeddedResult

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class SqliteStatement:
    """Prepared statement bound to a SqliteDatabase."""

    def __init__(self, db: SqliteDatabase, sql: str, params: tuple[Any, ...] = ()) -> None:
        self._db = db
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> SqliteStatement:
        return SqliteStatement(self._db, self.sql, tuple(params))

    async def all(self) -> EmbeddedResult:
        async with self._db._lock:
            return self._db._execute(self.sql, self.params)

    async def first(self) -> dict[str, Any] | None:
        result = await self.all()
        return result.results[0] if result.results else None

    async def run(self) -> EmbeddedResult:
        result = await self.all()
        result.results = []
        return result


class SqliteTransaction:
    """Transaction on the driver's connection.

    Holds the driver lock from begin() until commit() or rollback().
    """

    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db
        self._open = True

    async def execute(self, sql: str, params: Sequence[Any]) -> EmbeddedResult:
        return self._db._execute(sql, tuple(params))

    async def commit(self) -> None:
        await self._finish("COMMIT")

    async def rollback(self) -> None:
        await self._finish("ROLLBACK")

    async def _finish(self, statement: str) -> None:
        if not self._open:
            return
        try:
            conn = self._db._connect()
            try:
                conn.execute(statement)
            except sqlite3.Error:
                # A failed COMMIT (e.g. deferred foreign key) leaves the transaction open
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        finally:
            self._open = False
            self._db._lock.release()


class SqliteDatabase:
    """SQLite implementation of EmbeddedDatabase.

    Attributes:
        path: Database file path, or ":memory:"
        wal_mode: Enable SQLite WAL journal mode (file databases only)
        busy_timeout_ms: SQLite busy timeout
    """

    def __init__(
        self,
        path: str = MEMORY_PATH,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.path = path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: sqlite3.Connection | None = None
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def is_memory(self) -> bool:
        return self.path == MEMORY_PATH

    def _connect(self) -> sqlite3.Connection:
        if self._closed:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        if self._conn is None:
            if not self.is_memory:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.path,
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,  # Autocommit by default, explicit transactions
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            self._configure(conn)
            self._conn = conn
            logger.info(f"Opened embedded database: {self.path}")
        return self._conn

    def _configure(self, conn: sqlite3.Connection) -> None:
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
        if self.wal_mode and not self.is_memory:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA foreign_keys = ON")

    def _execute(self, sql: str, params: tuple[Any, ...]) -> EmbeddedResult:
        conn = self._connect()
        start = time.perf_counter()
        cursor = conn.execute(sql, params)
        rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
        duration = (time.perf_counter() - start) * 1000.0
        return EmbeddedResult(
            results=rows,
            success=True,
            meta={
                "duration": duration,
                "changes": max(cursor.rowcount, 0),
                "last_row_id": cursor.lastrowid,
                "rows_read": len(rows),
            },
        )

    def prepare(self, sql: str) -> SqliteStatement:
        return SqliteStatement(self, sql)

    async def begin(self) -> SqliteTransaction:
        """Open a transaction.

        Raises:
            sqlite3.Error: If the database is closed or BEGIN fails
        """
        await self._lock.acquire()
        try:
            self._connect().execute("BEGIN IMMEDIATE")
        except BaseException:
            self._lock.release()
            raise
        return SqliteTransaction(self)

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"Closed embedded database: {self.path}")
            self._closed = True
