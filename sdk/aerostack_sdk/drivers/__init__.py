"""
Database drivers for the Aerostack router.

This package provides the two engine adapters behind the router:
- SqliteDatabase: embedded engine (standard-library sqlite3)
- PostgresDatabase: remote engine (asyncpg pool)

Both raise their native exceptions; the router translates them into the
SDK error taxonomy.
"""

from .base import (
    DriverTransaction,
    EmbeddedDatabase,
    EmbeddedResult,
    PreparedStatement,
    RemoteDatabase,
    RemoteResult,
)
from .postgres import PostgresDatabase, redact_dsn
from .sqlite import SqliteDatabase

__all__ = [
    # Protocols and results
    "EmbeddedDatabase",
    "RemoteDatabase",
    "PreparedStatement",
    "DriverTransaction",
    "EmbeddedResult",
    "RemoteResult",
    # Implementations
    "SqliteDatabase",
    "PostgresDatabase",
    "redact_dsn",
]
