"""
Router configuration.

All configuration is resolved once, at construction, from explicit fields
or environment variables. The remote connection string comes from
DATABASE_URL only; environment names are never scanned for patterns.

Environment variables:
    AEROSTACK_SQLITE_PATH        Embedded database file (":memory:" allowed)
    DATABASE_URL                 Remote PostgreSQL connection string
    AEROSTACK_ROUTING_RULES      "table=target,..." routing rules
    AEROSTACK_DEFAULT_TARGET     Query default when nothing else matches
    AEROSTACK_SCHEMA_PREFERENCE  Engine introspected when no hint is given
    AEROSTACK_PG_MIN_POOL        asyncpg pool minimum size
    AEROSTACK_PG_MAX_POOL        asyncpg pool maximum size
    AEROSTACK_PG_COMMAND_TIMEOUT Statement timeout in seconds
    SQLITE_WAL_MODE              SQLite WAL journal mode
    SQLITE_BUSY_TIMEOUT_MS       SQLite busy timeout

Invariants:
    - Unset default_target / schema_preference mean "remote when
      configured, else local"
    - Secrets are never logged or exposed in error messages
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .drivers.postgres import redact_dsn
from .types import RoutingRules, Target

logger = logging.getLogger(__name__)


def _optional_target(value: str | None) -> Target | None:
    if value is None or not value.strip():
        return None
    return Target.parse(value)


@dataclass(frozen=True)
class RouterConfig:
    """Query router configuration.

    Attributes:
        sqlite_path: Embedded database path; None disables the embedded engine
        database_url: Remote connection string; None disables the remote engine
        routing_rules: Table -> engine assignments
        default_target: Declared query default (None = reference behavior)
        schema_preference: Declared introspection default (None = reference behavior)
        pg_min_pool: asyncpg pool minimum size
        pg_max_pool: asyncpg pool maximum size
        pg_command_timeout: Statement timeout in seconds
        sqlite_wal_mode: SQLite WAL journal mode
        sqlite_busy_timeout_ms: SQLite busy timeout
    """

    sqlite_path: str | None = None
    database_url: str | None = None
    routing_rules: RoutingRules = field(default_factory=RoutingRules)
    default_target: Target | None = None
    schema_preference: Target | None = None
    pg_min_pool: int = 1
    pg_max_pool: int = 10
    pg_command_timeout: float = 60.0
    sqlite_wal_mode: bool = True
    sqlite_busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> RouterConfig:
        """Load configuration from environment variables.

        Raises:
            ValueError: If a value cannot be parsed or is inconsistent
        """
        config = cls(
            sqlite_path=os.getenv("AEROSTACK_SQLITE_PATH") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            routing_rules=RoutingRules.parse(os.getenv("AEROSTACK_ROUTING_RULES", "")),
            default_target=_optional_target(os.getenv("AEROSTACK_DEFAULT_TARGET")),
            schema_preference=_optional_target(os.getenv("AEROSTACK_SCHEMA_PREFERENCE")),
            pg_min_pool=int(os.getenv("AEROSTACK_PG_MIN_POOL", "1")),
            pg_max_pool=int(os.getenv("AEROSTACK_PG_MAX_POOL", "10")),
            pg_command_timeout=float(os.getenv("AEROSTACK_PG_COMMAND_TIMEOUT", "60")),
            sqlite_wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            sqlite_busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )
        config.validate()
        return config

    @property
    def has_local(self) -> bool:
        return self.sqlite_path is not None

    @property
    def has_remote(self) -> bool:
        return self.database_url is not None

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.pg_min_pool < 0 or self.pg_max_pool < 1:
            raise ValueError("AEROSTACK_PG_MIN_POOL must be >= 0 and AEROSTACK_PG_MAX_POOL >= 1")
        if self.pg_min_pool > self.pg_max_pool:
            raise ValueError("AEROSTACK_PG_MIN_POOL cannot exceed AEROSTACK_PG_MAX_POOL")
        if self.pg_command_timeout <= 0:
            raise ValueError("AEROSTACK_PG_COMMAND_TIMEOUT must be positive")

        if not self.has_local and not self.has_remote:
            logger.warning(
                "No database configured. Set AEROSTACK_SQLITE_PATH or DATABASE_URL; "
                "every query will fail with DB_CONNECTION_FAILED."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Router configuration loaded",
            extra={
                "sqlite_path": self.sqlite_path,
                "database_url": redact_dsn(self.database_url) if self.database_url else None,
                "routing_rules": self.routing_rules.to_dict(),
                "default_target": self.default_target.value if self.default_target else None,
                "schema_preference": self.schema_preference.value
                if self.schema_preference
                else None,
            },
        )
