"""
Database engine management.

One SQLAlchemy engine per process. The engine owns the connection pool,
which every request shares; repositories check a connection out only for
the duration of a single transaction and give it straight back.

PostgreSQL is the production target. SQLite backs mock mode (a single
in-memory database) and the test suite.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .schema import metadata

logger = logging.getLogger(__name__)

MOCK_DATABASE_URL = "sqlite+pysqlite:///:memory:"


class DatabaseConnectionError(Exception):
    """Raised when the database can't be reached or initialized."""
    pass


@dataclass
class DatabaseConfig:
    """Configuration for the metadata store connection pool."""
    url: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout_seconds: float = 10.0
    connect_timeout_seconds: int = 5
    statement_timeout_ms: Optional[int] = 5000
    echo: bool = False


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores foreign keys unless asked, per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(config: DatabaseConfig) -> Engine:
    """
    Create the process-wide engine for the given configuration.

    Pool settings only apply to server databases. In-memory SQLite uses
    a StaticPool so every checkout sees the same database.
    """
    url = make_url(config.url)

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                url,
                echo=config.echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                url,
                echo=config.echo,
                connect_args={"check_same_thread": False, "timeout": 30},
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout_seconds,
            )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        connect_args: dict = {"connect_timeout": config.connect_timeout_seconds}
        if config.statement_timeout_ms:
            connect_args["options"] = f"-c statement_timeout={config.statement_timeout_ms}"

        engine = create_engine(
            url,
            echo=config.echo,
            connect_args=connect_args,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout_seconds,
            pool_pre_ping=True,
        )

    logger.info(
        "Created database engine",
        extra={
            "backend": url.get_backend_name(),
            "database": url.database,
            "host": url.host,
        }
    )

    return engine


def create_mock_engine() -> Engine:
    """In-memory SQLite engine with the schema already created."""
    engine = create_database_engine(DatabaseConfig(url=MOCK_DATABASE_URL))
    create_schema(engine)
    logger.info("Initialized mock database (in-memory SQLite)")
    return engine


def create_schema(engine: Engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error("Failed to create schema", extra={"error": str(e)})
        raise DatabaseConnectionError(f"Schema creation failed: {e}")


def ping(engine: Engine) -> None:
    """Round-trip a trivial query. Raises DatabaseConnectionError on failure."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database ping failed", extra={"error": str(e)})
        raise DatabaseConnectionError(f"Database unreachable: {e}")
