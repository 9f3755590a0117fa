"""
API layer for the Aerostack gateway server.

This module provides the JSON HTTP API over one QueryRouter.
"""

from .http_server import create_http_app, run_http_server

__all__ = [
    "create_http_app",
    "run_http_server",
]
