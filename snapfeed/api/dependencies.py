"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be swapped for testing
- Configuration is centralized

Long-lived resources (the database engine and its pool, the storage
client) are created once in the application lifespan and kept on
`app.state`. The dependencies here only wrap them in per-request
repositories and services.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.engine import Engine

from ..config.settings import Settings
from ..core.feed.ingestion import IngestionCoordinator
from ..core.feed.interactions import InteractionService
from ..core.feed.models import ClientIdentity
from ..infrastructure.database.repositories.posts import PostRepository
from ..infrastructure.storage.client import StorageClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application Resources
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_post_repository(
    engine: Annotated[Engine, Depends(get_engine)],
) -> PostRepository:
    """
    Provide PostRepository over the shared engine.

    The repository is cheap: it holds the engine, and connections are
    only checked out inside each repository call.
    """
    return PostRepository(engine)


def get_interaction_service(
    repository: Annotated[PostRepository, Depends(get_post_repository)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> InteractionService:
    return InteractionService(
        store=repository,
        max_comment_length=settings.max_comment_length,
    )


def get_ingestion_coordinator(
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    repository: Annotated[PostRepository, Depends(get_post_repository)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> IngestionCoordinator:
    return IngestionCoordinator(
        blob_store=storage,
        post_store=repository,
        max_upload_bytes=settings.max_upload_bytes,
        upload_timeout_seconds=settings.storage_upload_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Client Identity
# ---------------------------------------------------------------------------

def get_client_identity(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ClientIdentity:
    """
    Identify the requester for like deduplication.

    This is the network address: shared by everyone behind the same NAT
    and easy to spoof. Behind a reverse proxy the socket peer is the
    proxy itself, so the first X-Forwarded-For entry is used instead,
    but only when trust_forwarded_for is enabled.
    """
    address = None

    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        address = forwarded.split(",")[0].strip() or None

    if address is None and request.client is not None:
        address = request.client.host

    if not address:
        logger.warning("Could not determine client address")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not determine client address",
        )

    return ClientIdentity.from_address(address)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
EngineDep = Annotated[Engine, Depends(get_engine)]
InteractionServiceDep = Annotated[InteractionService, Depends(get_interaction_service)]
IngestionCoordinatorDep = Annotated[IngestionCoordinator, Depends(get_ingestion_coordinator)]
ClientIdentityDep = Annotated[ClientIdentity, Depends(get_client_identity)]
