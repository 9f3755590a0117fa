"""
Query router for the Aerostack database layer.

This module provides the main entry point of the SDK:
- QueryRouter: Routes each statement to the embedded or remote engine,
  executes it, and normalizes results and errors
- Transaction: Statements pinned to one engine, committed atomically
- open_router(): Builds a router and its drivers from RouterConfig

Example:
    >>> async with await open_router(RouterConfig.from_env()) as db:
    ...     users = await db.query("SELECT * FROM users WHERE id = ?", [42])
    ...     schema = await db.get_schema()
    ...     result = await db.batch([("INSERT INTO logs (msg) VALUES (?)", ["hi"])])

Invariants:
    - Routing rules and defaults are fixed at construction
    - A remote target without a remote driver falls back to the embedded
      engine; a remote failure is never retried on the embedded engine
    - Driver exceptions are always translated into DatabaseError subclasses
    - batch() is sequential by default and never raises for item failures
    - No retries; retry policy belongs to the caller

How to change safely:
    - Keep determine_target() precedence identical (see routing.py)
    - New engines need a translate_*_error() and a normalizer
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

from .config import RouterConfig
from .drivers.base import EmbeddedDatabase, EmbeddedResult, RemoteDatabase, RemoteResult
from .drivers.postgres import PostgresDatabase
from .drivers.sqlite import SqliteDatabase
from .errors import (
    DatabaseError,
    QueryFailedError,
    TransactionFailedError,
    no_connection_error,
    translate_embedded_error,
    translate_remote_error,
)
from .introspection import introspect_embedded, introspect_remote
from .routing import determine_target
from .types import (
    BatchError,
    BatchResult,
    DatabaseResponse,
    QueryMeta,
    QueryRequest,
    RoutingRules,
    SchemaInfo,
    Target,
)

logger = logging.getLogger(__name__)

REMOTE_BINDING_HINTS = ("pg", "postgres", "remote")
LOCAL_BINDING_HINTS = ("d1", "sqlite", "local")


def _from_embedded(result: EmbeddedResult, sql: str) -> DatabaseResponse[Any]:
    if not result.success:
        raise QueryFailedError(
            "Embedded database reported an unsuccessful statement",
            suggestion="Check your SQL syntax and embedded database configuration",
            context={"sql": sql, "target": Target.LOCAL.value},
        )
    meta = result.meta or {}
    return DatabaseResponse(
        results=list(result.results),
        success=True,
        meta=QueryMeta(
            target=Target.LOCAL,
            duration=meta.get("duration"),
            changes=meta.get("changes"),
            last_row_id=meta.get("last_row_id"),
        ),
    )


def _from_remote(result: RemoteResult) -> DatabaseResponse[Any]:
    return DatabaseResponse(
        results=list(result.rows),
        success=True,
        meta=QueryMeta(target=Target.REMOTE, row_count=result.row_count),
    )


def _translate(target: Target, err: Exception, sql: str | None = None) -> DatabaseError:
    context: dict[str, Any] = {"target": target.value}
    if sql is not None:
        context["sql"] = sql
    if target is Target.REMOTE:
        error = translate_remote_error(err, context)
    else:
        error = translate_embedded_error(err, context)
    logger.warning(f"{target.value} database error ({error.kind.value}): {error.cause or error.message}")
    return error


class Transaction:
    """Statements executed atomically on one engine.

    Obtained from QueryRouter.transaction(). Per-statement routing does not
    apply inside a transaction.
    """

    def __init__(self, handle: Any, target: Target) -> None:
        self._handle = handle
        self.target = target
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def query(self, sql: str, params: Sequence[Any] = ()) -> DatabaseResponse[Any]:
        """Execute a statement inside the transaction.

        Raises:
            TransactionFailedError: If the transaction already ended
            DatabaseError: Translated driver failure
        """
        if not self._active:
            raise TransactionFailedError(
                "Transaction is no longer active",
                suggestion="Open a new transaction with router.transaction()",
                context={"sql": sql, "target": self.target.value},
            )
        try:
            result = await self._handle.execute(sql, tuple(params))
        except Exception as e:
            raise _translate(self.target, e, sql) from e

        if self.target is Target.REMOTE:
            return _from_remote(result)
        return _from_embedded(result, sql)

    async def commit(self) -> None:
        await self._finish("commit")

    async def rollback(self) -> None:
        await self._finish("rollback")

    async def _finish(self, action: str) -> None:
        if not self._active:
            return
        self._active = False
        try:
            await getattr(self._handle, action)()
        except Exception as e:
            raise TransactionFailedError(
                f"Transaction {action} failed",
                suggestion="Retry the whole transaction; no statements were applied",
                recovery_action="RETRY_TRANSACTION",
                cause=str(e) or type(e).__name__,
                context={"target": self.target.value},
            ) from e


class QueryRouter:
    """Routes SQL between the embedded and remote engines.

    One instance per logical session or request scope; pass it explicitly.

    Attributes:
        local: Embedded engine driver, or None
        remote: Remote engine driver, or None
        rules: Immutable routing rules
    """

    def __init__(
        self,
        local: EmbeddedDatabase | None = None,
        remote: RemoteDatabase | None = None,
        rules: RoutingRules | Mapping[str, str | Target] | None = None,
        default_target: Target | str | None = None,
        schema_preference: Target | str | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            local: Embedded engine driver
            remote: Remote engine driver
            rules: Table -> engine assignments, checked in insertion order
            default_target: Target when no directive, rule or keyword matches.
                None means remote when configured, else local.
            schema_preference: Engine introspected when no binding hint
                matches. None means remote when configured, else local.
        """
        self.local = local
        self.remote = remote
        if isinstance(rules, RoutingRules):
            self.rules = rules
        else:
            self.rules = RoutingRules.from_mapping(rules)
        self._default_target = Target.parse(default_target) if default_target else None
        self._schema_preference = Target.parse(schema_preference) if schema_preference else None

    @property
    def has_local(self) -> bool:
        return self.local is not None

    @property
    def has_remote(self) -> bool:
        return self.remote is not None

    def _reference_default(self) -> Target:
        return Target.REMOTE if self.has_remote else Target.LOCAL

    @property
    def default_target(self) -> Target:
        """Declared query default, or the reference behavior."""
        return self._default_target or self._reference_default()

    @property
    def schema_preference(self) -> Target:
        """Declared introspection default, or the reference behavior."""
        return self._schema_preference or self._reference_default()

    def determine_target(self, sql: str) -> Target:
        """Select the engine for a statement without executing it."""
        return determine_target(sql, self.rules, self.default_target)

    # ========== Query execution ==========

    async def query(self, sql: str, params: Sequence[Any] = ()) -> DatabaseResponse[Any]:
        """Execute a statement on the engine chosen by determine_target().

        Args:
            sql: SQL text (placeholders in the executing engine's style)
            params: Positional bind parameters

        Returns:
            Normalized DatabaseResponse

        Raises:
            DatabaseConnectionError: If no usable engine is configured
            DatabaseError: Translated driver failure
        """
        target = self.determine_target(sql)
        logger.debug(f"Routing query to {target.value}")
        return await self._execute(target, sql, tuple(params))

    async def _execute(self, target: Target, sql: str, params: tuple[Any, ...]) -> DatabaseResponse[Any]:
        if target is Target.REMOTE and self.remote is not None:
            try:
                result = await self.remote.query(sql, params)
            except Exception as e:
                raise _translate(Target.REMOTE, e, sql) from e
            return _from_remote(result)

        if self.local is not None:
            try:
                result = await self.local.prepare(sql).bind(*params).all()
            except Exception as e:
                raise _translate(Target.LOCAL, e, sql) from e
            return _from_embedded(result, sql)

        raise no_connection_error({"sql": sql, "target": target.value})

    async def batch(
        self,
        queries: Iterable[QueryRequest | str | Mapping[str, Any] | Sequence[Any]],
        *,
        concurrent: bool = False,
    ) -> BatchResult:
        """Execute several statements independently.

        Statements run one after another unless ``concurrent`` is set. There
        is no transaction: a failure is recorded at its index and later
        statements still run.

        Args:
            queries: QueryRequest, SQL text, {"sql", "params"} or (sql, params) items
            concurrent: Run items with asyncio.gather (results stay in input order)

        Returns:
            BatchResult with one slot per input

        Raises:
            DatabaseConnectionError: If no engine is configured at all
            ValueError: If an item cannot be read as a query
        """
        requests = [QueryRequest.coerce(q) for q in queries]
        if not self.has_local and not self.has_remote:
            raise no_connection_error({"batch_size": len(requests)})

        targets = [self.determine_target(r.sql) for r in requests]

        async def run_one(index: int) -> DatabaseResponse[Any] | BatchError:
            request = requests[index]
            try:
                return await self._execute(targets[index], request.sql, request.params)
            except DatabaseError as e:
                return BatchError(index=index, error=e)

        if concurrent:
            outcomes = await asyncio.gather(*(run_one(i) for i in range(len(requests))))
        else:
            outcomes = []
            for i in range(len(requests)):
                outcomes.append(await run_one(i))

        result = BatchResult.collect(outcomes, targets)
        if not result.success:
            logger.info(f"Batch finished with {len(result.errors)}/{len(requests)} failed statements")
        return result

    # ========== Schema ==========

    def _schema_engine(self, binding: str | None) -> Target:
        if binding:
            hint = binding.lower()
            if self.has_remote and any(h in hint for h in REMOTE_BINDING_HINTS):
                return Target.REMOTE
            if self.has_local and any(h in hint for h in LOCAL_BINDING_HINTS):
                return Target.LOCAL

        preferred = self.schema_preference
        if preferred is Target.REMOTE and self.has_remote:
            return Target.REMOTE
        if preferred is Target.LOCAL and self.has_local:
            return Target.LOCAL
        if self.has_remote:
            return Target.REMOTE
        if self.has_local:
            return Target.LOCAL
        raise no_connection_error({"binding": binding})

    async def get_schema(self, binding: str | None = None) -> SchemaInfo:
        """Introspect tables and columns of one engine.

        Args:
            binding: Optional hint naming an engine family ("pg", "postgres",
                "remote" or "d1", "sqlite", "local"; matched by substring)

        Raises:
            DatabaseConnectionError: If no engine is configured
            DatabaseError: Translated driver failure
        """
        target = self._schema_engine(binding)
        logger.debug(f"Introspecting {target.value} schema")
        try:
            if target is Target.REMOTE:
                return await introspect_remote(self.remote)
            return await introspect_embedded(self.local)
        except Exception as e:
            raise _translate(target, e) from e

    # ========== Transactions ==========

    def _transaction_engine(self, target: Target | str | None) -> Target:
        if target is not None:
            engine = Target.parse(target)
            if (engine is Target.REMOTE and self.has_remote) or (
                engine is Target.LOCAL and self.has_local
            ):
                return engine
            raise no_connection_error({"target": engine.value})

        default = self.default_target
        if default is Target.REMOTE and self.has_remote:
            return Target.REMOTE
        if self.has_local:
            return Target.LOCAL
        if self.has_remote:
            return Target.REMOTE
        raise no_connection_error()

    @asynccontextmanager
    async def transaction(self, target: Target | str | None = None) -> AsyncIterator[Transaction]:
        """Run statements atomically on one engine.

        Commits when the block exits normally and rolls back when an
        exception escapes it.

        Example:
            >>> async with router.transaction("local") as tx:
            ...     await tx.query("UPDATE accounts SET balance = balance - ? WHERE id = ?", [10, 1])
            ...     await tx.query("UPDATE accounts SET balance = balance + ? WHERE id = ?", [10, 2])

        Raises:
            DatabaseConnectionError: If the engine is not configured
            TransactionFailedError: If begin or commit fails
        """
        engine = self._transaction_engine(target)
        driver: Any = self.remote if engine is Target.REMOTE else self.local

        try:
            handle = await driver.begin()
        except Exception as e:
            raise TransactionFailedError(
                "Failed to begin transaction",
                suggestion="Check the database connection",
                cause=str(e) or type(e).__name__,
                context={"target": engine.value},
            ) from e

        tx = Transaction(handle, engine)
        try:
            yield tx
        except BaseException:
            try:
                await tx.rollback()
            except TransactionFailedError as rollback_error:
                logger.error(f"Rollback failed on {engine.value}: {rollback_error.cause}")
            raise
        else:
            await tx.commit()

    # ========== Lifecycle ==========

    async def health(self) -> dict[str, Any]:
        """Probe each configured engine with SELECT 1. Never raises."""
        engines: dict[str, Any] = {}
        for target, configured in ((Target.LOCAL, self.has_local), (Target.REMOTE, self.has_remote)):
            if not configured:
                continue
            try:
                await self._execute(target, "SELECT 1", ())
                engines[target.value] = {"healthy": True}
            except DatabaseError as e:
                engines[target.value] = {"healthy": False, "error": e.message, "error_code": e.code}

        return {
            "healthy": bool(engines) and all(e["healthy"] for e in engines.values()),
            "engines": engines,
            "default_target": self.default_target.value,
            "schema_preference": self.schema_preference.value,
        }

    async def close(self) -> None:
        """Close both drivers."""
        if self.local is not None:
            await self.local.close()
        if self.remote is not None:
            await self.remote.close()

    async def __aenter__(self) -> QueryRouter:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


async def open_router(config: RouterConfig) -> QueryRouter:
    """Build a router and its drivers from configuration.

    The remote pool is connected eagerly so that credential and network
    problems surface here rather than on the first query.

    Raises:
        DatabaseError: If the remote engine cannot be reached
    """
    local = None
    if config.has_local:
        local = SqliteDatabase(
            config.sqlite_path,
            wal_mode=config.sqlite_wal_mode,
            busy_timeout_ms=config.sqlite_busy_timeout_ms,
        )

    remote = None
    if config.has_remote:
        remote = PostgresDatabase(
            config.database_url,
            min_size=config.pg_min_pool,
            max_size=config.pg_max_pool,
            command_timeout=config.pg_command_timeout,
        )
        try:
            await remote.connect()
        except Exception as e:
            raise _translate(Target.REMOTE, e) from e

    return QueryRouter(
        local=local,
        remote=remote,
        rules=config.routing_rules,
        default_target=config.default_target,
        schema_preference=config.schema_preference,
    )
