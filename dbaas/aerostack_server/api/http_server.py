"""
HTTP gateway for the Aerostack query router.

This module exposes one QueryRouter over a small JSON API:
- POST /v1/db/query   Execute a statement
- POST /v1/db/batch   Execute statements independently, in order
- POST /v1/db/route   Show which engine a statement would use
- GET  /v1/db/schema  Introspect one engine (?binding= hint)
- GET  /v1/health     Probe configured engines

Invariants:
    - Responses use the SDK's to_dict() shapes unchanged
    - DatabaseError kinds map to fixed HTTP status codes
    - Bind parameters are never logged

How to change safely:
    - Keep endpoint semantics identical to the SDK methods they wrap
    - Version the API if breaking changes are needed
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from sdk.aerostack_sdk.errors import DatabaseError, ErrorKind
from sdk.aerostack_sdk.router import QueryRouter

from ..config import HttpConfig

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.TABLE_NOT_FOUND: 404,
    ErrorKind.COLUMN_NOT_FOUND: 404,
    ErrorKind.AUTH_FAILED: 401,
    ErrorKind.CONNECTION_FAILED: 503,
    ErrorKind.QUERY_FAILED: 400,
    ErrorKind.TRANSACTION_FAILED: 400,
}


# Rows may hold values JSON cannot encode natively (Decimal, datetime, UUID, bytes)
_dumps = functools.partial(json.dumps, default=str)


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": message, "error_code": "BAD_REQUEST"}),
        content_type="application/json",
    )


def error_response(error: DatabaseError) -> web.Response:
    """Render a DatabaseError as a JSON response."""
    return json_response(
        {"error": error.message, "error_code": error.code, "details": error.details},
        status=ERROR_STATUS.get(error.kind, 400),
    )


def create_http_app(router: QueryRouter, config: HttpConfig | None = None) -> web.Application:
    """Create an HTTP application for a router.

    Args:
        router: QueryRouter instance (owned by the caller)
        config: HTTP server configuration

    Returns:
        aiohttp Application instance
    """
    config = config or HttpConfig()
    app = web.Application()

    app.router.add_post("/v1/db/query", lambda r: handle_query(r, router))
    app.router.add_post("/v1/db/batch", lambda r: handle_batch(r, router, config))
    app.router.add_post("/v1/db/route", lambda r: handle_route(r, router))
    app.router.add_get("/v1/db/schema", lambda r: handle_schema(r, router))
    app.router.add_get("/v1/health", lambda r: handle_health(r, router))

    @web.middleware
    async def cors_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response = web.Response()
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                response = e

        origin = request.headers.get("Origin", "*")
        if "*" in config.cors_origins or origin in config.cors_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"

        return response

    @web.middleware
    async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except DatabaseError as e:
            return error_response(e)
        except Exception as e:
            logger.error(f"HTTP handler error: {e}", exc_info=True)
            return web.json_response(
                {"error": str(e), "error_code": "INTERNAL"},
                status=500,
            )

    # CORS is outermost: error responses carry the headers too
    app.middlewares.append(cors_middleware)
    app.middlewares.append(error_middleware)

    return app


async def read_json(request: web.Request) -> dict[str, Any]:
    """Parse a JSON object body.

    Raises:
        web.HTTPBadRequest: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise _bad_request("Invalid JSON body")
    if not isinstance(body, dict):
        raise _bad_request("Request body must be a JSON object")
    return body


def _statement(body: dict[str, Any]) -> tuple[str, list[Any]]:
    sql = body.get("sql")
    if not isinstance(sql, str) or not sql.strip():
        raise _bad_request("sql is required")
    params = body.get("params") or []
    if not isinstance(params, list):
        raise _bad_request("params must be a list")
    return sql, params


async def handle_query(request: web.Request, router: QueryRouter) -> web.Response:
    """Handle POST /v1/db/query - Execute one statement."""
    sql, params = _statement(await read_json(request))
    result = await router.query(sql, params)
    return json_response(result.to_dict())


async def handle_batch(request: web.Request, router: QueryRouter, config: HttpConfig) -> web.Response:
    """Handle POST /v1/db/batch - Execute statements independently."""
    body = await read_json(request)
    queries = body.get("queries")
    if not isinstance(queries, list) or not queries:
        raise _bad_request("queries list is required")
    if len(queries) > config.max_batch_size:
        raise _bad_request(f"At most {config.max_batch_size} queries per batch")

    statements = []
    for item in queries:
        if not isinstance(item, dict):
            raise _bad_request("Each query must be an object with sql and params")
        statements.append(_statement(item))

    result = await router.batch(statements, concurrent=bool(body.get("concurrent", False)))
    return json_response(result.to_dict())


async def handle_route(request: web.Request, router: QueryRouter) -> web.Response:
    """Handle POST /v1/db/route - Report the engine a statement would use."""
    sql, _ = _statement(await read_json(request))
    return web.json_response({"target": router.determine_target(sql).value})


async def handle_schema(request: web.Request, router: QueryRouter) -> web.Response:
    """Handle GET /v1/db/schema - Get schema information."""
    schema = await router.get_schema(request.query.get("binding") or None)
    return json_response(schema.to_dict())


async def handle_health(request: web.Request, router: QueryRouter) -> web.Response:
    """Handle GET /v1/health - Health check."""
    result = await router.health()
    status = 200 if result.get("healthy") else 503
    return json_response(result, status=status)


async def run_http_server(
    router: QueryRouter,
    config: HttpConfig,
    shutdown_event: asyncio.Event,
) -> None:
    """Serve the gateway until shutdown_event is set.

    Args:
        router: QueryRouter instance
        config: HTTP server configuration
        shutdown_event: Event that stops the server
    """
    app = create_http_app(router, config)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, config.host, config.port)
    await site.start()

    logger.info(f"HTTP server running on http://{config.host}:{config.port}")

    try:
        await shutdown_event.wait()
    finally:
        await runner.cleanup()
