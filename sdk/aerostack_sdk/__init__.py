"""
Aerostack Python SDK - Database routing for backend-as-a-service workloads.

This SDK provides one façade over two database engines:
- An embedded SQLite-family database colocated with the compute unit
- A remote PostgreSQL-family database

Each statement is routed by inline directive, table routing rule, query
complexity, or a declared default; results and errors from both engines
come back in one shape.

Example:
    >>> from sdk.aerostack_sdk import QueryRouter, SqliteDatabase
    >>>
    >>> router = QueryRouter(
    ...     local=SqliteDatabase("app.db"),
    ...     rules={"orders": "remote"},
    ... )
    >>> result = await router.query("SELECT * FROM users WHERE id = ?", [42])
    >>> result.meta.target
    <Target.LOCAL: 'local'>

Invariants:
    - Routers are constructed explicitly; there is no global instance
    - Routing rules are immutable after construction
    - Driver errors never escape untranslated

Version: 1.0.0
"""

__version__ = "1.0.0"

from .config import RouterConfig
from .drivers import PostgresDatabase, SqliteDatabase
from .errors import (
    AerostackError,
    AuthFailedError,
    ColumnNotFoundError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorKind,
    QueryFailedError,
    TableNotFoundError,
    TransactionFailedError,
)
from .router import QueryRouter, Transaction, open_router
from .routing import determine_target
from .types import (
    BatchError,
    BatchResult,
    DatabaseResponse,
    QueryMeta,
    QueryRequest,
    RoutingRules,
    SchemaColumn,
    SchemaInfo,
    SchemaTable,
    Target,
)

__all__ = [
    # Version
    "__version__",
    # Router
    "QueryRouter",
    "Transaction",
    "open_router",
    "determine_target",
    "RouterConfig",
    # Drivers
    "SqliteDatabase",
    "PostgresDatabase",
    # Types
    "Target",
    "RoutingRules",
    "QueryRequest",
    "QueryMeta",
    "DatabaseResponse",
    "SchemaColumn",
    "SchemaTable",
    "SchemaInfo",
    "BatchError",
    "BatchResult",
    # Errors
    "AerostackError",
    "DatabaseError",
    "ErrorKind",
    "DatabaseConnectionError",
    "QueryFailedError",
    "TableNotFoundError",
    "ColumnNotFoundError",
    "AuthFailedError",
    "TransactionFailedError",
]
