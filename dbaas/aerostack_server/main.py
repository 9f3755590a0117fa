"""
Aerostack gateway server - Main entry point.

This module starts the gateway:
- Opens the query router (embedded SQLite and/or remote PostgreSQL)
- Serves the JSON HTTP API over it
- Closes both database handles on shutdown

Usage:
    python -m dbaas.aerostack_server.main

Configuration is entirely via environment variables.
See config.py and aerostack_sdk/config.py for all available settings.

Invariants:
    - The remote pool is connected before the HTTP server accepts requests
    - One router instance serves every request of the process
    - Graceful shutdown closes the router after the HTTP server stops
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import json_log_formatter

from sdk.aerostack_sdk.router import QueryRouter, open_router

from .api import run_http_server
from .config import ServerConfig

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class Server:
    """Aerostack gateway orchestrator.

    Attributes:
        config: Server configuration
        router: Query router (opened in start())

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        """Initialize the server.

        Args:
            config: Optional server configuration (loaded from env if not provided)
        """
        self.config = config or ServerConfig.from_env()
        self.router: QueryRouter | None = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Open the router and serve HTTP until shutdown is requested."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting Aerostack gateway")
        self.config.log_config()

        try:
            self.router = await open_router(self.config.router)
            self._running = True
            logger.info(
                "Query router ready",
                extra={
                    "local": self.router.has_local,
                    "remote": self.router.has_remote,
                    "default_target": self.router.default_target.value,
                },
            )

            await run_http_server(self.router, self.config.http, self._shutdown_event)

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        self._shutdown_event.set()
        if self.router is not None:
            await self.router.close()
            self.router = None

        if self._running:
            self._running = False
            logger.info("Aerostack gateway stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    server = Server(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
