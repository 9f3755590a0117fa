"""
Result and request types for the Aerostack database router.

This module defines the data model shared by the router, the drivers and
the HTTP gateway:
- Target: Execution engine tag (local embedded / remote relational)
- RoutingRules: Immutable, ordered table -> Target assignments
- QueryRequest: SQL text plus positional bind parameters
- DatabaseResponse: Normalized rows + metadata from either engine
- SchemaInfo / SchemaTable / SchemaColumn: Introspection output
- BatchResult: Per-item responses and errors of a batch

Invariants:
    - Rows are engine-native dicts; the router never inspects them
    - RoutingRules cannot be mutated after construction
    - Every type is created fresh per call and has no persistence
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .errors import DatabaseError

T = TypeVar("T")
Row = dict[str, Any]


class Target(str, Enum):
    """Execution engine for a statement."""

    LOCAL = "local"
    REMOTE = "remote"

    @classmethod
    def parse(cls, value: str | Target) -> Target:
        """Parse a target name, accepting the legacy engine names.

        ``d1`` maps to LOCAL; ``postgres`` and ``pg`` map to REMOTE.

        Raises:
            ValueError: If the name is not a known target
        """
        if isinstance(value, Target):
            return value
        name = value.strip().lower()
        if name in _TARGET_ALIASES:
            return _TARGET_ALIASES[name]
        raise ValueError(f"Unknown target '{value}'. Must be one of: local, remote")


_TARGET_ALIASES = {
    "local": Target.LOCAL,
    "d1": Target.LOCAL,
    "sqlite": Target.LOCAL,
    "remote": Target.REMOTE,
    "postgres": Target.REMOTE,
    "pg": Target.REMOTE,
}


@dataclass(frozen=True)
class RoutingRules:
    """Static table-name to engine assignments.

    Rules are checked in insertion order; the first table name found in the
    SQL text wins.

    Example:
        >>> rules = RoutingRules.from_mapping({"orders": "remote"})
        >>> rules = RoutingRules.parse("orders=remote,sessions=local")
    """

    tables: tuple[tuple[str, Target], ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str | Target] | None) -> RoutingRules:
        if not mapping:
            return cls()
        return cls(tuple((table, Target.parse(target)) for table, target in mapping.items()))

    @classmethod
    def parse(cls, text: str) -> RoutingRules:
        """Parse ``table=target`` pairs separated by commas.

        Raises:
            ValueError: If a pair is malformed or names an unknown target
        """
        pairs: list[tuple[str, Target]] = []
        for chunk in text.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            table, sep, target = chunk.partition("=")
            if not sep or not table.strip():
                raise ValueError(f"Invalid routing rule '{chunk}'. Expected table=target")
            pairs.append((table.strip(), Target.parse(target)))
        return cls(tuple(pairs))

    def __iter__(self):
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)

    def to_dict(self) -> dict[str, str]:
        return {table: target.value for table, target in self.tables}


@dataclass(frozen=True)
class QueryRequest:
    """A SQL statement and its positional bind parameters."""

    sql: str
    params: tuple[Any, ...] = ()

    @classmethod
    def coerce(cls, item: QueryRequest | str | Mapping[str, Any] | Sequence[Any]) -> QueryRequest:
        """Build a request from the shapes accepted by batch().

        Accepts a QueryRequest, bare SQL text, a ``{"sql", "params"}``
        mapping, or an ``(sql, params)`` pair.

        Raises:
            ValueError: If the item has no SQL text
        """
        if isinstance(item, QueryRequest):
            return item
        if isinstance(item, str):
            return cls(item)
        if isinstance(item, Mapping):
            sql = item.get("sql")
            if not isinstance(sql, str):
                raise ValueError("Batch item is missing 'sql'")
            return cls(sql, tuple(item.get("params") or ()))
        if len(item) == 2 and isinstance(item[0], str):
            return cls(item[0], tuple(item[1] or ()))
        raise ValueError(f"Cannot build a query from {item!r}")


@dataclass
class QueryMeta:
    """Execution metadata.

    Attributes:
        target: Engine that executed (or would have executed) the statement
        row_count: Rows returned or affected
        duration: Execution time in milliseconds (embedded engine)
        changes: Rows changed by a write (embedded engine)
        last_row_id: Last inserted rowid (embedded engine)
    """

    target: Target
    row_count: int | None = None
    duration: float | None = None
    changes: int | None = None
    last_row_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"target": self.target.value}
        for key in ("row_count", "duration", "changes", "last_row_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class DatabaseResponse(Generic[T]):
    """Normalized result of one statement."""

    results: list[T]
    success: bool
    meta: QueryMeta

    @classmethod
    def failed(cls, target: Target) -> DatabaseResponse[Any]:
        """Empty placeholder for a failed batch slot."""
        return cls(results=[], success=False, meta=QueryMeta(target=target))

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": list(self.results),
            "success": self.success,
            "meta": self.meta.to_dict(),
        }


@dataclass
class SchemaColumn:
    """One column as reported by the engine catalog.

    ``type`` is the engine-native declared type. ``is_primary_key`` is only
    populated by embedded introspection and stays None for the remote
    engine.
    """

    name: str
    type: str
    nullable: bool
    default_value: Any | None = None
    is_primary_key: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "default_value": self.default_value,
        }
        if self.is_primary_key is not None:
            data["is_primary_key"] = self.is_primary_key
        return data


@dataclass
class SchemaTable:
    name: str
    columns: list[SchemaColumn]
    database: Target

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "database": self.database.value,
        }


@dataclass
class SchemaInfo:
    tables: list[SchemaTable]
    database: Target

    def table(self, name: str) -> SchemaTable | None:
        """Find a table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "database": self.database.value,
        }


@dataclass
class BatchError:
    """A failed batch item."""

    index: int
    error: DatabaseError

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "error": self.error.to_dict()}


@dataclass
class BatchResult:
    """Outcome of a batch: one response slot per input, in input order.

    Attributes:
        results: Responses; failed slots are empty with success=False
        errors: Failed items by input index
        success: True only if every item succeeded
    """

    results: list[DatabaseResponse[Any]] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)
    success: bool = True

    @classmethod
    def collect(cls, outcomes: Iterable[DatabaseResponse[Any] | BatchError], targets: Sequence[Target]) -> BatchResult:
        """Assemble a result from per-item outcomes in input order."""
        result = cls()
        for outcome, target in zip(outcomes, targets):
            if isinstance(outcome, BatchError):
                result.errors.append(outcome)
                result.results.append(DatabaseResponse.failed(target))
                result.success = False
            else:
                result.results.append(outcome)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
            "success": self.success,
        }
