"""
Media ingestion and interaction logic.

Contains the domain models, the error taxonomy, the ingestion
coordinator and the interaction service.
"""

from .errors import (
    AlreadyLikedError,
    ConflictError,
    DependencyError,
    FeedError,
    InputError,
    InvalidInputError,
    NoFileError,
    NotFoundError,
    PayloadTooLargeError,
    PersistenceError,
    PersistFailedError,
    PostNotFoundError,
    StorageFailedError,
)
from .ingestion import IngestionCoordinator
from .interactions import InteractionService
from .models import (
    BlobReference,
    ClientIdentity,
    Comment,
    IdentityKind,
    Like,
    MediaKind,
    Post,
)

__all__ = [
    "AlreadyLikedError",
    "ConflictError",
    "DependencyError",
    "FeedError",
    "InputError",
    "InvalidInputError",
    "NoFileError",
    "NotFoundError",
    "PayloadTooLargeError",
    "PersistenceError",
    "PersistFailedError",
    "PostNotFoundError",
    "StorageFailedError",
    "IngestionCoordinator",
    "InteractionService",
    "BlobReference",
    "ClientIdentity",
    "Comment",
    "IdentityKind",
    "Like",
    "MediaKind",
    "Post",
]
