"""
Media ingestion: store the blob, then record the post.

Object storage and the database fail independently and share no
transaction, so the order is fixed: the upload (expensive, not
reversible) happens first, and the post row is written only once the
upload has produced a usable reference. The two outcomes this allows:

- upload fails -> nothing is written, the caller gets StorageFailedError
- upload succeeds, insert fails -> the blob is orphaned, the caller gets
  PersistFailedError, and the orphan is logged for reconciliation

There is no compensating delete and no retry. This module is
framework-agnostic: it doesn't know about HTTP, boto3 or SQLAlchemy.
"""

import asyncio
import logging
from typing import BinaryIO, Optional, Protocol, Union

from .errors import (
    NoFileError,
    PayloadTooLargeError,
    PersistFailedError,
    StorageFailedError,
)
from .models import BlobReference, MediaKind, Post

logger = logging.getLogger(__name__)


def payload_size(payload: Optional[BinaryIO]) -> int:
    """Size of a seekable payload, leaving it rewound. Missing counts as empty."""
    if payload is None:
        return 0
    payload.seek(0, 2)
    size = payload.tell()
    payload.seek(0)
    return size


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class BlobStore(Protocol):
    """Anything that can turn a payload into a durable reference."""

    async def upload_media(
        self,
        payload: BinaryIO,
        content_type: Optional[str] = None,
        declared_kind: Union[MediaKind, str] = "auto",
    ) -> BlobReference:
        ...


class PostStore(Protocol):
    def create_post(self, reference: BlobReference) -> Post:
        ...


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class IngestionCoordinator:
    """
    Orchestrates an upload across object storage and the metadata store.

    Not idempotent: the same bytes uploaded twice become two blobs and
    two posts. The post store is called from a worker thread, and only
    after the upload has finished, so no database connection is held
    while a slow upload is in flight.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        post_store: PostStore,
        max_upload_bytes: Optional[int] = None,
        upload_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._blob_store = blob_store
        self._post_store = post_store
        self._max_upload_bytes = max_upload_bytes
        self._upload_timeout_seconds = upload_timeout_seconds

    async def ingest(
        self,
        payload: Optional[BinaryIO],
        content_type: Optional[str] = None,
        declared_kind: Union[MediaKind, str] = "auto",
    ) -> Post:
        size = await asyncio.to_thread(payload_size, payload)

        if size == 0:
            raise NoFileError("No file uploaded")

        if self._max_upload_bytes is not None and size > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes // (1024 * 1024)
            raise PayloadTooLargeError(f"File too large. Maximum size: {limit_mb}MB")

        logger.info(
            "Media upload started",
            extra={"size_bytes": size, "content_type": content_type}
        )

        reference = await self._upload(payload, content_type, declared_kind)

        try:
            post = await asyncio.to_thread(self._post_store.create_post, reference)
        except Exception as e:
            logger.warning(
                "Orphaned blob: upload succeeded but post insert failed",
                extra={
                    "url": reference.url,
                    "storage_key": reference.storage_key,
                    "error": str(e),
                }
            )
            raise PersistFailedError(
                "Database insert failed",
                orphan_url=reference.url,
                orphan_key=reference.storage_key,
            ) from e

        logger.info(
            "Post created",
            extra={
                "post_id": post.id,
                "media_kind": post.media_kind.value,
                "storage_key": reference.storage_key,
            }
        )

        return post

    async def _upload(
        self,
        payload: BinaryIO,
        content_type: Optional[str],
        declared_kind: Union[MediaKind, str],
    ) -> BlobReference:
        """Upload within the timeout. Any failure means no post gets written."""
        try:
            return await asyncio.wait_for(
                self._blob_store.upload_media(
                    payload,
                    content_type=content_type,
                    declared_kind=declared_kind,
                ),
                timeout=self._upload_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "Upload to storage timed out",
                extra={"timeout_seconds": self._upload_timeout_seconds}
            )
            raise StorageFailedError("Upload to storage timed out") from e
        except Exception as e:
            logger.error("Upload to storage failed", extra={"error": str(e)})
            raise StorageFailedError("Upload to storage failed") from e
