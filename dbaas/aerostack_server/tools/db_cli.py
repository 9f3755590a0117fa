"""
Database CLI tool for Aerostack.

This tool runs router operations against the configured databases:
- route: Show which engine a statement would use (no database access)
- query: Execute a statement and print the normalized response
- schema: Print the introspected schema of one engine

Usage:
    aerostack-db route "SELECT * FROM orders o JOIN users u ON u.id = o.user_id"
    aerostack-db query "SELECT * FROM users WHERE id = ?" 42
    aerostack-db schema --binding postgres

Configuration comes from the same environment variables as the server
(AEROSTACK_SQLITE_PATH, DATABASE_URL, AEROSTACK_ROUTING_RULES, ...).

Invariants:
    - Output is JSON (sorted keys) except for route
    - Database errors exit with code 1 and are reported on stderr
    - Configuration errors exit with code 2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from sdk.aerostack_sdk.config import RouterConfig
from sdk.aerostack_sdk.errors import DatabaseError
from sdk.aerostack_sdk.router import open_router
from sdk.aerostack_sdk.routing import determine_target
from sdk.aerostack_sdk.types import Target

logger = logging.getLogger(__name__)


def parse_param(raw: str) -> Any:
    """Read a CLI parameter as a JSON literal, falling back to plain text.

    ``42`` binds an integer, ``null`` binds NULL, ``'"42"'`` binds text.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True, default=str)


class DbCLI:
    """CLI operations over a RouterConfig.

    Example:
        >>> cli = DbCLI(RouterConfig(sqlite_path=":memory:"))
        >>> cli.route("SELECT 1 -- aerostack:target=remote")
        'remote'
    """

    def __init__(self, config: RouterConfig) -> None:
        self.config = config

    def route(self, sql: str) -> str:
        """Target a statement would use, computed from configuration alone."""
        default = self.config.default_target or (
            Target.REMOTE if self.config.has_remote else Target.LOCAL
        )
        return determine_target(sql, self.config.routing_rules, default).value

    async def query(self, sql: str, params: list[Any]) -> str:
        async with await open_router(self.config) as router:
            result = await router.query(sql, params)
        return _dump(result.to_dict())

    async def schema(self, binding: str | None = None) -> str:
        async with await open_router(self.config) as router:
            schema = await router.get_schema(binding)
        return _dump(schema.to_dict())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aerostack-db",
        description="Aerostack database router tool",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log routing decisions")
    subparsers = parser.add_subparsers(dest="command", required=True)

    route_parser = subparsers.add_parser("route", help="Show the engine a statement would use")
    route_parser.add_argument("sql", help="SQL statement")

    query_parser = subparsers.add_parser("query", help="Execute a statement")
    query_parser.add_argument("sql", help="SQL statement")
    query_parser.add_argument("params", nargs="*", help="Bind parameters (JSON literals)")

    schema_parser = subparsers.add_parser("schema", help="Print database schema")
    schema_parser.add_argument("--binding", "-b", help="Engine hint (d1, sqlite, pg, postgres)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s - %(levelname)s - %(message)s",
    )

    try:
        cli = DbCLI(RouterConfig.from_env())
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "route":
            print(cli.route(args.sql))
        elif args.command == "query":
            params = [parse_param(p) for p in args.params]
            print(asyncio.run(cli.query(args.sql, params)))
        elif args.command == "schema":
            print(asyncio.run(cli.schema(args.binding)))
    except DatabaseError as e:
        print(f"{e.code}: {e.message}", file=sys.stderr)
        if e.suggestion:
            print(f"  suggestion: {e.suggestion}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
