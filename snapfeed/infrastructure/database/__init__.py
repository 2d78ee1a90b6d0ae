"""
Relational metadata store for posts, comments and likes.

PostgreSQL in production, SQLite for mock mode and tests, both through
SQLAlchemy so the same statements run against either.
"""

from .client import (
    DatabaseConfig,
    DatabaseConnectionError,
    create_database_engine,
    create_mock_engine,
    create_schema,
    ping,
)

__all__ = [
    "DatabaseConfig",
    "DatabaseConnectionError",
    "create_database_engine",
    "create_mock_engine",
    "create_schema",
    "ping",
]
