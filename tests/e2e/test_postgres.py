"""
End-to-end tests against a real PostgreSQL server.

Tests cover:
- Remote execution and row counts
- SQLSTATE translation
- Remote schema introspection
- Remote transactions
"""

import pytest

from sdk.aerostack_sdk.config import RouterConfig
from sdk.aerostack_sdk.errors import AuthFailedError, ColumnNotFoundError, TableNotFoundError
from sdk.aerostack_sdk.router import open_router
from sdk.aerostack_sdk.types import Target


async def open_remote_router(database_url):
    return await open_router(RouterConfig(database_url=database_url, sqlite_path=":memory:"))


class TestPostgres:
    """Tests for the remote engine through QueryRouter."""

    @pytest.mark.asyncio
    async def test_orders_round_trip(self, database_url, table_name):
        router = await open_remote_router(database_url)
        try:
            await router.query(
                f"CREATE TABLE {table_name} (id serial PRIMARY KEY, total numeric NOT NULL) "
                "-- aerostack:target=remote"
            )
            insert = await router.query(
                f"INSERT INTO {table_name} (total) VALUES ($1), ($2) -- aerostack:target=remote",
                [10, 20],
            )
            assert insert.meta.target is Target.REMOTE
            assert insert.meta.row_count == 2

            result = await router.query(
                f"SELECT COUNT(*) AS n FROM {table_name} GROUP BY total > 0"
            )
            assert result.results == [{"n": 2}]

            schema = await router.get_schema("postgres")
            table = schema.table(table_name)
            assert [c.name for c in table.columns] == ["id", "total"]
            assert table.columns[1].nullable is False
        finally:
            await router.query(f"DROP TABLE IF EXISTS {table_name} -- aerostack:target=remote")
            await router.close()

    @pytest.mark.asyncio
    async def test_missing_table(self, database_url):
        router = await open_remote_router(database_url)
        try:
            with pytest.raises(TableNotFoundError) as exc_info:
                await router.query("SELECT * FROM no_such_table_e2e -- aerostack:target=remote")
            assert exc_info.value.message == "Table does not exist: no_such_table_e2e"
        finally:
            await router.close()

    @pytest.mark.asyncio
    async def test_missing_column(self, database_url):
        router = await open_remote_router(database_url)
        try:
            with pytest.raises(ColumnNotFoundError):
                await router.query("SELECT no_such_column FROM pg_class -- aerostack:target=remote")
        finally:
            await router.close()

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, database_url, table_name):
        router = await open_remote_router(database_url)
        try:
            await router.query(f"CREATE TABLE {table_name} (v int) -- aerostack:target=remote")

            with pytest.raises(TableNotFoundError):
                async with router.transaction("remote") as tx:
                    await tx.query(f"INSERT INTO {table_name} (v) VALUES ($1)", [1])
                    await tx.query("INSERT INTO missing_e2e (v) VALUES (1)")

            result = await router.query(f"SELECT COUNT(*) AS n FROM {table_name} -- aerostack:target=remote")
            assert result.results == [{"n": 0}]
        finally:
            await router.query(f"DROP TABLE IF EXISTS {table_name} -- aerostack:target=remote")
            await router.close()

    @pytest.mark.asyncio
    async def test_bad_password(self, database_url):
        from urllib.parse import urlsplit, urlunsplit

        parts = urlsplit(database_url)
        if not parts.username:
            pytest.skip("connection string has no username")
        netloc = f"{parts.username}:definitely-wrong@{parts.hostname}"
        if parts.port:
            netloc = f"{netloc}:{parts.port}"
        bad_url = urlunsplit((parts.scheme, netloc, parts.path, parts.query, ""))

        with pytest.raises(AuthFailedError):
            await open_remote_router(bad_url)
