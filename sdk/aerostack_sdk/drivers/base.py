"""
Driver protocols for the two database engines.

The router depends only on these protocols:
- EmbeddedDatabase: SQLite-family engine colocated with the compute unit,
  driven through prepared statements (prepare -> bind -> all/first/run)
- RemoteDatabase: PostgreSQL-family engine, driven through query(sql, params)
- DriverTransaction: Connection-scoped transaction handle from begin()

Invariants:
    - Drivers raise their native exceptions; translation happens in the router
    - Result shapes are the engine's own, normalized by the router
    - A driver handle is safe to share for the router's lifetime

How to change safely:
    - Protocol changes require updating SqliteDatabase and PostgresDatabase
    - Keep catalog access expressible as ordinary statements
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class EmbeddedResult:
    """Result of PreparedStatement.all() / run().

    Attributes:
        results: Rows as dicts
        success: Whether the statement succeeded
        meta: Engine metadata (duration in ms, changes, last_row_id)
    """

    results: list[dict[str, Any]] = field(default_factory=list)
    success: bool = True
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class RemoteResult:
    """Result of RemoteDatabase.query().

    Attributes:
        rows: Rows as dicts
        row_count: Rows returned or affected
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


@runtime_checkable
class PreparedStatement(Protocol):
    """A statement awaiting execution."""

    @abstractmethod
    def bind(self, *params: Any) -> PreparedStatement:
        """Return a statement with positional parameters bound."""
        ...

    @abstractmethod
    async def all(self) -> EmbeddedResult:
        """Execute and return every row."""
        ...

    @abstractmethod
    async def first(self) -> dict[str, Any] | None:
        """Execute and return the first row, or None."""
        ...

    @abstractmethod
    async def run(self) -> EmbeddedResult:
        """Execute without collecting rows."""
        ...


@runtime_checkable
class DriverTransaction(Protocol):
    """Transaction opened on one connection."""

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any]) -> EmbeddedResult | RemoteResult:
        """Execute one statement inside the transaction."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


@runtime_checkable
class EmbeddedDatabase(Protocol):
    """Protocol for the embedded (SQLite-family) engine."""

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a statement for binding and execution."""
        ...

    @abstractmethod
    async def begin(self) -> DriverTransaction:
        """Open a transaction on a dedicated connection."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


@runtime_checkable
class RemoteDatabase(Protocol):
    """Protocol for the remote (PostgreSQL-family) engine."""

    @abstractmethod
    async def query(self, sql: str, params: Sequence[Any] = ()) -> RemoteResult:
        """Execute a statement and return its rows and row count."""
        ...

    @abstractmethod
    async def begin(self) -> DriverTransaction:
        """Open a transaction on a dedicated connection."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
