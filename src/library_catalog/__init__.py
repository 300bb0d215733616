"""
Library Catalog Package.

An MCP server over a library catalog of members, books and loans, built
around a lending transaction engine that keeps copy counts correct under
concurrent borrows and returns.

Key Components:
- models: Pydantic models for data validation and serialization
- database: SQLAlchemy schema, sessions, ledger, lending engine, repositories
- config: Configuration management with pydantic-settings
- resources: MCP resources (read-only endpoints)
- tools: MCP tools (borrow, return and catalog edits)
"""

__version__ = "0.1.0"

from . import database

__all__ = [
    "__version__",
    "database",
]
