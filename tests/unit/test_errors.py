"""
Unit tests for error translation.

Tests cover:
- Embedded (SQLite) message matching
- Remote (PostgreSQL) SQLSTATE mapping
- Error serialization
"""

import sqlite3

import pytest

from sdk.aerostack_sdk.errors import (
    AerostackError,
    AuthFailedError,
    ColumnNotFoundError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorKind,
    QueryFailedError,
    TableNotFoundError,
    no_connection_error,
    translate_embedded_error,
    translate_remote_error,
)


class FakePostgresError(Exception):
    """Driver exception carrying a SQLSTATE, shaped like asyncpg's."""

    def __init__(self, message, sqlstate, **attrs):
        super().__init__(message)
        self.sqlstate = sqlstate
        for key, value in attrs.items():
            setattr(self, key, value)


class FakePsycopgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


class TestEmbeddedTranslation:
    """Tests for translate_embedded_error."""

    def test_missing_table(self):
        """'no such table' keeps the driver message verbatim."""
        err = translate_embedded_error(sqlite3.OperationalError("no such table: widgets"))

        assert isinstance(err, TableNotFoundError)
        assert err.kind is ErrorKind.TABLE_NOT_FOUND
        assert err.message == "no such table: widgets"
        assert err.cause == "no such table: widgets"
        assert err.table == "widgets"
        assert err.code == "DB_TABLE_NOT_FOUND"
        assert err.suggestion

    def test_missing_column(self):
        err = translate_embedded_error(sqlite3.OperationalError("no such column: nickname"))

        assert isinstance(err, ColumnNotFoundError)
        assert err.column == "nickname"
        assert err.message == "no such column: nickname"

    def test_other_errors_are_query_failures(self):
        err = translate_embedded_error(sqlite3.OperationalError('near "SELEC": syntax error'))

        assert isinstance(err, QueryFailedError)
        assert err.kind is ErrorKind.QUERY_FAILED
        assert err.cause == 'near "SELEC": syntax error'

    def test_unable_to_open_is_connection_failure(self):
        err = translate_embedded_error(sqlite3.OperationalError("unable to open database file"))

        assert isinstance(err, DatabaseConnectionError)
        assert err.cause == "unable to open database file"

    def test_context_is_attached(self):
        err = translate_embedded_error(
            sqlite3.OperationalError("no such table: t"),
            {"sql": "SELECT * FROM t", "target": "local"},
        )
        assert err.context == {"sql": "SELECT * FROM t", "target": "local"}

    def test_database_error_passes_through(self):
        original = AuthFailedError("nope")
        assert translate_embedded_error(original) is original


class TestRemoteTranslation:
    """Tests for translate_remote_error."""

    def test_undefined_table_uses_table_name(self):
        err = translate_remote_error(
            FakePostgresError('relation "orders" does not exist', "42P01", table_name="orders")
        )

        assert isinstance(err, TableNotFoundError)
        assert err.message == "Table does not exist: orders"
        assert err.table == "orders"
        assert err.cause == 'relation "orders" does not exist'

    def test_undefined_table_parses_message(self):
        err = translate_remote_error(FakePostgresError('relation "invoices" does not exist', "42P01"))

        assert err.table == "invoices"
        assert err.message == "Table does not exist: invoices"

    def test_undefined_column(self):
        err = translate_remote_error(FakePostgresError('column "nickname" does not exist', "42703"))

        assert isinstance(err, ColumnNotFoundError)
        assert err.column == "nickname"

    @pytest.mark.parametrize("code", ["28P01", "28000"])
    def test_auth_failures(self, code):
        err = translate_remote_error(FakePostgresError("password authentication failed", code))

        assert isinstance(err, AuthFailedError)
        assert err.kind is ErrorKind.AUTH_FAILED
        assert err.code == "DB_AUTH_FAILED"

    @pytest.mark.parametrize("code", ["08006", "08003", "08001"])
    def test_connection_failures(self, code):
        err = translate_remote_error(FakePostgresError("connection lost", code))
        assert isinstance(err, DatabaseConnectionError)

    def test_os_error_is_connection_failure(self):
        err = translate_remote_error(ConnectionRefusedError("Connection refused"))

        assert isinstance(err, DatabaseConnectionError)
        assert err.cause == "Connection refused"

    def test_psycopg_pgcode_is_read(self):
        err = translate_remote_error(FakePsycopgError("bad password", "28P01"))
        assert isinstance(err, AuthFailedError)

    def test_unknown_code_is_query_failure(self):
        err = translate_remote_error(FakePostgresError("division by zero", "22012"))

        assert isinstance(err, QueryFailedError)
        assert err.message == "division by zero"
        assert err.cause == "Postgres error 22012: division by zero"


class TestErrorShape:
    """Tests for the error hierarchy and serialization."""

    def test_hierarchy(self):
        err = no_connection_error()

        assert isinstance(err, DatabaseConnectionError)
        assert isinstance(err, DatabaseError)
        assert isinstance(err, AerostackError)
        assert err.message == "No database connection available"

    def test_to_dict(self):
        err = TableNotFoundError(
            "no such table: widgets",
            table="widgets",
            suggestion="Run migrations",
            recovery_action="CREATE_TABLE",
            cause="no such table: widgets",
            context={"target": "local"},
        )

        data = err.to_dict()

        assert data["name"] == "TableNotFoundError"
        assert data["kind"] == "TableNotFound"
        assert data["code"] == "DB_TABLE_NOT_FOUND"
        assert data["recovery_action"] == "CREATE_TABLE"
        assert data["context"] == {"target": "local"}
        assert err.details["table"] == "widgets"
