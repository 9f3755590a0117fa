"""
E2E test fixtures for Aerostack DB.

These tests require a reachable PostgreSQL server.
"""

import os

import pytest

DATABASE_URL = os.environ.get("AEROSTACK_E2E_DATABASE_URL", "")


@pytest.fixture
def database_url() -> str:
    """Connection string of the PostgreSQL server under test."""
    if not DATABASE_URL:
        pytest.skip("AEROSTACK_E2E_DATABASE_URL not set")
    return DATABASE_URL


@pytest.fixture
def table_name() -> str:
    """Generate unique table name for test isolation."""
    import uuid

    return f"e2e_orders_{uuid.uuid4().hex[:8]}"
