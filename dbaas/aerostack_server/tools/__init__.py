"""
CLI tools for Aerostack database administration.

This module provides command-line tools for:
- route: Explain routing decisions without touching a database
- query / schema: Run router operations against configured engines
"""

from .db_cli import DbCLI, main

__all__ = ["DbCLI", "main"]
