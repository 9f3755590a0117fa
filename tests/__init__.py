"""
Aerostack DB Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Integration tests (SQLite files, fake remote driver, aiohttp test server)
- e2e/: End-to-end tests against a real PostgreSQL (opt-in)
"""
