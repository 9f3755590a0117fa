"""
Aerostack Server - HTTP gateway over the Aerostack query router.

This package deploys one QueryRouter (see sdk/aerostack_sdk) behind a JSON
HTTP API:

    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│    HTTP     │────▶│   QueryRouter   │
    │             │     │   Gateway   │     │ (determine_target)
    └─────────────┘     └─────────────┘     └────────┬────────┘
                                                     │
                                   ┌─────────────────┴─────────────────┐
                                   ▼                                   ▼
                             ┌──────────┐                        ┌──────────┐
                             │  SQLite  │                        │ Postgres │
                             │ (local)  │                        │ (remote) │
                             └──────────┘                        └──────────┘

Invariants:
    - Configuration is read once at startup from the environment
    - The gateway adds transport only; routing lives in the SDK
    - Database errors keep their kind and code across the HTTP boundary

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
