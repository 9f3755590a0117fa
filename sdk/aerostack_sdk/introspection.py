"""
Schema introspection for both engine families.

The two procedures share no code path because the catalogs differ:
- Embedded: sqlite_master for table names, then PRAGMA table_info per table
- Remote: information_schema.tables, then information_schema.columns per table

Each table's columns are fetched in a separate round-trip.

Invariants:
    - Internal catalog tables (sqlite_*, _cf_*) are never reported
    - Column order is the declared order
    - Declared types are passed through unnormalized
    - is_primary_key is set for the embedded engine only
"""

from __future__ import annotations

import logging

from .drivers.base import EmbeddedDatabase, RemoteDatabase
from .types import SchemaColumn, SchemaInfo, SchemaTable, Target

logger = logging.getLogger(__name__)

EMBEDDED_TABLES_SQL = r"""
    SELECT name FROM sqlite_master
    WHERE type = 'table'
      AND name NOT LIKE 'sqlite\_%' ESCAPE '\'
      AND name NOT LIKE '\_cf\_%' ESCAPE '\'
"""

REMOTE_TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = 'public'
    ORDER BY table_name
"""

REMOTE_COLUMNS_SQL = """
    SELECT column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = $1
    ORDER BY ordinal_position
"""


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


async def introspect_embedded(db: EmbeddedDatabase) -> SchemaInfo:
    """Read user tables and columns from the embedded engine's catalog."""
    listing = await db.prepare(EMBEDDED_TABLES_SQL).all()

    tables: list[SchemaTable] = []
    for row in listing.results:
        table_name = row["name"]
        info = await db.prepare(f"PRAGMA table_info({_quote_identifier(table_name)})").all()
        tables.append(
            SchemaTable(
                name=table_name,
                columns=[
                    SchemaColumn(
                        name=col["name"],
                        type=col["type"],
                        nullable=col["notnull"] == 0,
                        default_value=col["dflt_value"],
                        # pk is the 1-based position within the key, 0 otherwise
                        is_primary_key=col["pk"] > 0,
                    )
                    for col in info.results
                ],
                database=Target.LOCAL,
            )
        )

    logger.debug(f"Introspected {len(tables)} embedded tables")
    return SchemaInfo(tables=tables, database=Target.LOCAL)


async def introspect_remote(db: RemoteDatabase) -> SchemaInfo:
    """Read tables and columns from the remote engine's information schema."""
    listing = await db.query(REMOTE_TABLES_SQL)

    tables: list[SchemaTable] = []
    for row in listing.rows:
        table_name = row["table_name"]
        columns = await db.query(REMOTE_COLUMNS_SQL, [table_name])
        tables.append(
            SchemaTable(
                name=table_name,
                columns=[
                    SchemaColumn(
                        name=col["column_name"],
                        type=col["data_type"],
                        nullable=col["is_nullable"] == "YES",
                        default_value=col["column_default"],
                    )
                    for col in columns.rows
                ],
                database=Target.REMOTE,
            )
        )

    logger.debug(f"Introspected {len(tables)} remote tables")
    return SchemaInfo(tables=tables, database=Target.REMOTE)
