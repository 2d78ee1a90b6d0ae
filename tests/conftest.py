"""
Shared fixtures.

Everything runs against real SQLite databases through the production
repository, and against the in-memory storage client. No network.
"""

import io

import pytest
from fastapi.testclient import TestClient

from snapfeed.config.settings import Settings
from snapfeed.infrastructure.database.client import (
    DatabaseConfig,
    create_database_engine,
    create_mock_engine,
    create_schema,
)
from snapfeed.infrastructure.database.repositories.posts import PostRepository
from snapfeed.infrastructure.storage.client import MockStorageClient
from snapfeed.main import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def engine():
    """Fresh in-memory database with the schema created."""
    engine = create_mock_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """
    File-backed SQLite database with a real connection pool.

    Needed for concurrency tests: the in-memory engine shares one
    connection, which would serialize everything in the pool instead
    of in the database.
    """
    engine = create_database_engine(DatabaseConfig(
        url=f"sqlite:///{tmp_path / 'feed.db'}",
        pool_size=10,
        max_overflow=20,
        pool_timeout_seconds=30,
    ))
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return PostRepository(engine)


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def png_payload():
    return io.BytesIO(PNG_BYTES)


@pytest.fixture
def settings():
    return Settings(
        database_mock_mode=True,
        r2_mock_mode=True,
        trust_forwarded_for=True,
        max_upload_size_mb=1,
        _env_file=None,
    )


@pytest.fixture
def client(settings):
    """API client with the lifespan running, so app.state is populated."""
    app = create_app(settings)
    with TestClient(app) as client:
        yield client
