"""
Error types for the Aerostack SDK.

This module defines all exception types raised by the SDK:
- AerostackError: Base exception
- DatabaseError: Base for database failures, carries an ErrorKind
- DatabaseConnectionError: No driver configured or driver unreachable
- QueryFailedError: Generic execution failure on a reachable driver
- TableNotFoundError / ColumnNotFoundError: Schema mismatch
- AuthFailedError: Driver rejected credentials
- TransactionFailedError: Begin/commit/rollback failure

Driver-native exceptions never cross the router boundary. They are
translated here by translate_embedded_error() and translate_remote_error()
and chained as __cause__; their text is kept in the ``cause`` field.

Invariants:
    - All errors inherit from AerostackError
    - Every DatabaseError has a kind, a code and a suggestion
    - The original driver message is never dropped
    - Bind parameters are never stored in error context
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable database error kinds."""

    CONNECTION_FAILED = "ConnectionFailed"
    QUERY_FAILED = "QueryFailed"
    TABLE_NOT_FOUND = "TableNotFound"
    COLUMN_NOT_FOUND = "ColumnNotFound"
    AUTH_FAILED = "AuthFailed"
    TRANSACTION_FAILED = "TransactionFailed"


class AerostackError(Exception):
    """Base exception for all Aerostack SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "AEROSTACK_ERROR"
        self.details = details or {}


class DatabaseError(AerostackError):
    """Database operation failed.

    Attributes:
        kind: Taxonomy kind
        suggestion: Remediation hint for the caller
        recovery_action: Short machine-readable recovery hint
        cause: Original driver error text
        context: Where it happened (sql, target)
    """

    kind: ErrorKind = ErrorKind.QUERY_FAILED
    default_code = "DB_QUERY_FAILED"

    def __init__(
        self,
        message: str,
        *,
        suggestion: Optional[str] = None,
        recovery_action: Optional[str] = None,
        cause: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code=self.default_code,
            details={
                "kind": self.kind.value,
                "suggestion": suggestion,
                "recovery_action": recovery_action,
                "cause": cause,
            },
        )
        self.suggestion = suggestion
        self.recovery_action = recovery_action
        self.cause = cause
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON transport."""
        return {
            "name": type(self).__name__,
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "recovery_action": self.recovery_action,
            "cause": self.cause,
            "context": self.context,
        }


class DatabaseConnectionError(DatabaseError):
    """No usable database connection.

    Raised when:
    - Neither engine is configured
    - The selected engine is unreachable
    """

    kind = ErrorKind.CONNECTION_FAILED
    default_code = "DB_CONNECTION_FAILED"


class QueryFailedError(DatabaseError):
    """Query failed on a reachable engine."""

    kind = ErrorKind.QUERY_FAILED
    default_code = "DB_QUERY_FAILED"


class TableNotFoundError(DatabaseError):
    """Referenced table does not exist.

    Attributes:
        table: Table name, when the driver reported it
    """

    kind = ErrorKind.TABLE_NOT_FOUND
    default_code = "DB_TABLE_NOT_FOUND"

    def __init__(self, message: str, *, table: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.table = table
        self.details["table"] = table


class ColumnNotFoundError(DatabaseError):
    """Referenced column does not exist.

    Attributes:
        column: Column name, when the driver reported it
    """

    kind = ErrorKind.COLUMN_NOT_FOUND
    default_code = "DB_COLUMN_NOT_FOUND"

    def __init__(self, message: str, *, column: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.column = column
        self.details["column"] = column


class AuthFailedError(DatabaseError):
    """Driver rejected the configured credentials."""

    kind = ErrorKind.AUTH_FAILED
    default_code = "DB_AUTH_FAILED"


class TransactionFailedError(DatabaseError):
    """Transaction could not be started, committed or rolled back."""

    kind = ErrorKind.TRANSACTION_FAILED
    default_code = "DB_TRANSACTION_FAILED"


# SQLSTATE codes: https://www.postgresql.org/docs/current/errcodes-appendix.html
_PG_UNDEFINED_TABLE = "42P01"
_PG_UNDEFINED_COLUMN = "42703"
_PG_AUTH_CODES = frozenset({"28P01", "28000"})
_PG_CONNECTION_CODES = frozenset({"08006", "08003", "08001"})

_SQLITE_CONNECTION_SIGNATURES = ("unable to open database", "closed database")
_SQLITE_TABLE_RE = re.compile(r"no such table:\s*(\S+)")
_SQLITE_COLUMN_RE = re.compile(r"no such column:\s*(\S+)")
_PG_RELATION_RE = re.compile(r'relation "([^"]+)" does not exist')
_PG_COLUMN_RE = re.compile(r'column "?([\w.]+)"? does not exist')


def _error_text(err: BaseException) -> str:
    return str(err) or type(err).__name__


def translate_embedded_error(
    err: BaseException,
    context: Optional[Dict[str, Any]] = None,
) -> DatabaseError:
    """Map an embedded (SQLite-family) driver error onto the taxonomy.

    Matching is by substring on the driver message, the only signal the
    embedded engine exposes.
    """
    if isinstance(err, DatabaseError):
        return err

    message = _error_text(err)

    if any(signature in message for signature in _SQLITE_CONNECTION_SIGNATURES):
        return DatabaseConnectionError(
            "Failed to open embedded database",
            suggestion="Check AEROSTACK_SQLITE_PATH and file permissions",
            recovery_action="CHECK_CONNECTION",
            cause=message,
            context=context,
        )

    if "no such table" in message:
        match = _SQLITE_TABLE_RE.search(message)
        return TableNotFoundError(
            message,
            table=match.group(1) if match else None,
            suggestion="Run migrations on the embedded database: aerostack db migrate apply",
            recovery_action="CREATE_TABLE",
            cause=message,
            context=context,
        )

    if "no such column" in message:
        match = _SQLITE_COLUMN_RE.search(message)
        return ColumnNotFoundError(
            message,
            column=match.group(1) if match else None,
            suggestion="Check your schema or update migrations",
            recovery_action="ALTER_TABLE",
            cause=message,
            context=context,
        )

    return QueryFailedError(
        message,
        suggestion="Check your SQL syntax and embedded database configuration",
        cause=message,
        context=context,
    )


def translate_remote_error(
    err: BaseException,
    context: Optional[Dict[str, Any]] = None,
) -> DatabaseError:
    """Map a remote (PostgreSQL-family) driver error onto the taxonomy.

    Matching is by SQLSTATE, read from ``sqlstate`` (asyncpg) or
    ``pgcode`` (psycopg). OS-level socket failures count as connection
    failures.
    """
    if isinstance(err, DatabaseError):
        return err

    message = _error_text(err)
    sqlstate = getattr(err, "sqlstate", None) or getattr(err, "pgcode", None)

    if sqlstate == _PG_UNDEFINED_TABLE:
        table = getattr(err, "table_name", None)
        if not table:
            match = _PG_RELATION_RE.search(message)
            table = match.group(1) if match else None
        return TableNotFoundError(
            f"Table does not exist: {table or 'unknown'}",
            table=table,
            suggestion="Run migrations first: aerostack db migrate apply",
            recovery_action="CREATE_TABLE",
            cause=message,
            context=context,
        )

    if sqlstate == _PG_UNDEFINED_COLUMN:
        column = getattr(err, "column_name", None)
        if not column:
            match = _PG_COLUMN_RE.search(message)
            column = match.group(1) if match else None
        return ColumnNotFoundError(
            f"Column does not exist: {column or 'unknown'}",
            column=column,
            suggestion="Check your schema or run latest migrations",
            recovery_action="ALTER_TABLE",
            cause=message,
            context=context,
        )

    if sqlstate in _PG_AUTH_CODES:
        return AuthFailedError(
            "Database authentication failed",
            suggestion="Check your DATABASE_URL environment variable",
            recovery_action="UPDATE_CREDENTIALS",
            cause=message,
            context=context,
        )

    if sqlstate in _PG_CONNECTION_CODES or isinstance(err, OSError):
        return DatabaseConnectionError(
            "Failed to connect to database",
            suggestion="Verify your database connection string and network connectivity",
            recovery_action="CHECK_CONNECTION",
            cause=message,
            context=context,
        )

    return QueryFailedError(
        message,
        suggestion="Check your query syntax and parameters",
        cause=f"Postgres error {sqlstate}: {message}" if sqlstate else message,
        context=context,
    )


def no_connection_error(context: Optional[Dict[str, Any]] = None) -> DatabaseConnectionError:
    """Error raised when no engine is available for an operation."""
    return DatabaseConnectionError(
        "No database connection available",
        suggestion="Set AEROSTACK_SQLITE_PATH or DATABASE_URL",
        recovery_action="CONFIGURE_DATABASE",
        context=context,
    )
