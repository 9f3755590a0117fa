"""
Unit tests for the embedded SQLite driver.

Tests cover:
- Prepared statement execution and metadata
- Transactions (commit and rollback)
- Closing the driver
"""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from sdk.aerostack_sdk.drivers import EmbeddedDatabase, SqliteDatabase


class TestSqliteDatabase:
    """Tests for SqliteDatabase."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def db(self, data_dir):
        return SqliteDatabase(str(Path(data_dir) / "app.db"), wal_mode=False)

    def test_satisfies_protocol(self, db):
        assert isinstance(db, EmbeddedDatabase)

    @pytest.mark.asyncio
    async def test_insert_and_select(self, db):
        """Writes report changes and last_row_id; reads return dicts."""
        await db.prepare("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL)").run()

        insert = await db.prepare("INSERT INTO users (name) VALUES (?)").bind("Ada").run()
        assert insert.success is True
        assert insert.results == []
        assert insert.meta["changes"] == 1
        assert insert.meta["last_row_id"] == 1
        assert insert.meta["duration"] >= 0

        result = await db.prepare("SELECT id, name FROM users WHERE name = ?").bind("Ada").all()
        assert result.results == [{"id": 1, "name": "Ada"}]
        assert result.meta["rows_read"] == 1

        await db.close()

    @pytest.mark.asyncio
    async def test_first(self, db):
        await db.prepare("CREATE TABLE t (v INTEGER)").run()
        assert await db.prepare("SELECT v FROM t").first() is None

        await db.prepare("INSERT INTO t (v) VALUES (?)").bind(7).run()
        assert await db.prepare("SELECT v FROM t").first() == {"v": 7}

        await db.close()

    @pytest.mark.asyncio
    async def test_bind_returns_new_statement(self, db):
        statement = db.prepare("SELECT ? AS v")
        bound = statement.bind(1)

        assert statement.params == ()
        assert bound.params == (1,)
        assert (await bound.first()) == {"v": 1}

        await db.close()

    @pytest.mark.asyncio
    async def test_missing_table_raises_driver_error(self, db):
        with pytest.raises(sqlite3.OperationalError, match="no such table: widgets"):
            await db.prepare("SELECT * FROM widgets").all()

        await db.close()

    @pytest.mark.asyncio
    async def test_transaction_commit(self, db):
        await db.prepare("CREATE TABLE t (v INTEGER)").run()

        tx = await db.begin()
        await tx.execute("INSERT INTO t (v) VALUES (?)", [1])
        await tx.execute("INSERT INTO t (v) VALUES (?)", [2])
        await tx.commit()

        result = await db.prepare("SELECT COUNT(*) AS n FROM t").first()
        assert result == {"n": 2}

        await db.close()

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, db):
        await db.prepare("CREATE TABLE t (v INTEGER)").run()

        tx = await db.begin()
        await tx.execute("INSERT INTO t (v) VALUES (?)", [1])
        await tx.rollback()
        # Second finish is a no-op
        await tx.rollback()

        result = await db.prepare("SELECT COUNT(*) AS n FROM t").first()
        assert result == {"n": 0}

        await db.close()

    @pytest.mark.asyncio
    async def test_memory_database(self):
        db = SqliteDatabase()
        await db.prepare("CREATE TABLE t (v TEXT)").run()
        await db.prepare("INSERT INTO t (v) VALUES (?)").bind("x").run()

        assert (await db.prepare("SELECT v FROM t").all()).results == [{"v": "x"}]

        await db.close()

    @pytest.mark.asyncio
    async def test_closed_database(self, db):
        await db.close()

        with pytest.raises(sqlite3.ProgrammingError, match="closed database"):
            await db.prepare("SELECT 1").all()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, data_dir):
        path = Path(data_dir) / "nested" / "dir" / "app.db"
        db = SqliteDatabase(str(path))

        await db.prepare("CREATE TABLE t (v INTEGER)").run()

        assert path.exists()
        await db.close()
