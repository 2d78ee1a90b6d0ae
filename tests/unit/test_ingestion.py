"""
Tests for the ingestion coordinator.

The interesting cases are the failure orderings: storage failing must
leave the database untouched, and the database failing after a
successful upload must be reported, not papered over.
"""

import asyncio
import io

import pytest

from snapfeed.core.feed.errors import (
    NoFileError,
    PayloadTooLargeError,
    PersistenceError,
    PersistFailedError,
    StorageFailedError,
)
from snapfeed.core.feed.ingestion import IngestionCoordinator
from snapfeed.core.feed.models import MediaKind
from snapfeed.infrastructure.storage.client import MockStorageClient


class FailingPostStore:
    """Post store whose database is down."""

    def __init__(self) -> None:
        self.calls = 0

    def create_post(self, reference):
        self.calls += 1
        raise PersistenceError("Database insert failed: connection refused")


def ingest(coordinator, payload, **kwargs):
    return asyncio.run(coordinator.ingest(payload, **kwargs))


class TestSuccessfulIngest:
    def test_upload_creates_post_with_url_and_zero_counters(self, storage, repository, png_payload):
        coordinator = IngestionCoordinator(storage, repository)

        post = ingest(coordinator, png_payload, content_type="image/png")

        assert post.url
        assert post.url.startswith("mock://storage/media/image/")
        assert post.media_kind is MediaKind.IMAGE
        assert post.like_count == 0
        assert post.comment_count == 0
        assert repository.get_post(post.id).url == post.url

    def test_same_bytes_twice_create_two_posts(self, storage, repository):
        """No deduplication by content: two uploads, two blobs, two posts."""
        coordinator = IngestionCoordinator(storage, repository)

        first = ingest(coordinator, io.BytesIO(b"same bytes"), content_type="image/png")
        second = ingest(coordinator, io.BytesIO(b"same bytes"), content_type="image/png")

        assert first.id != second.id
        assert first.url != second.url
        assert storage.object_count == 2

    def test_declared_kind_is_passed_through(self, storage, repository):
        coordinator = IngestionCoordinator(storage, repository)

        post = ingest(
            coordinator,
            io.BytesIO(b"ID3"),
            content_type="application/octet-stream",
            declared_kind=MediaKind.AUDIO,
        )

        assert post.media_kind is MediaKind.AUDIO


class TestRejectedInput:
    def test_missing_file_rejected(self, storage, repository):
        coordinator = IngestionCoordinator(storage, repository)

        with pytest.raises(NoFileError):
            ingest(coordinator, None)

        assert storage.object_count == 0

    def test_empty_file_rejected_before_storage(self, storage, repository):
        coordinator = IngestionCoordinator(storage, repository)

        with pytest.raises(NoFileError):
            ingest(coordinator, io.BytesIO(b""))

        assert storage.object_count == 0
        assert repository.list_posts() == []

    def test_oversized_file_rejected_before_storage(self, storage, repository):
        coordinator = IngestionCoordinator(storage, repository, max_upload_bytes=4)

        with pytest.raises(PayloadTooLargeError):
            ingest(coordinator, io.BytesIO(b"12345"))

        assert storage.object_count == 0


class TestDependencyFailures:
    def test_storage_failure_writes_no_post(self, repository, png_payload):
        coordinator = IngestionCoordinator(MockStorageClient(fail_uploads=True), repository)

        with pytest.raises(StorageFailedError):
            ingest(coordinator, png_payload, content_type="image/png")

        assert repository.list_posts() == []

    def test_storage_timeout_writes_no_post(self, repository, png_payload):
        """A slow upload that times out must not proceed to the insert."""
        slow_storage = MockStorageClient(upload_delay_seconds=1.0)
        coordinator = IngestionCoordinator(
            slow_storage, repository, upload_timeout_seconds=0.05,
        )

        with pytest.raises(StorageFailedError, match="timed out"):
            ingest(coordinator, png_payload, content_type="image/png")

        assert repository.list_posts() == []
        assert slow_storage.object_count == 0

    def test_database_failure_reports_orphan(self, storage, png_payload):
        """The blob stays in storage; the error says which one."""
        post_store = FailingPostStore()
        coordinator = IngestionCoordinator(storage, post_store)

        with pytest.raises(PersistFailedError) as exc_info:
            ingest(coordinator, png_payload, content_type="image/png")

        error = exc_info.value
        assert post_store.calls == 1
        assert storage.object_count == 1
        assert storage.get_object(error.orphan_key)
        assert error.orphan_url == f"mock://storage/{error.orphan_key}"
        assert error.status_code == 500
