"""
Unit tests for the feed domain models.

These tests verify the core business logic without touching
external services (no storage, no database, no HTTP).

Testing philosophy:
- Test behavior, not implementation
- Each test should have a clear "given/when/then" structure
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

import pytest

from snapfeed.core.feed.errors import (
    AlreadyLikedError,
    ConflictError,
    DependencyError,
    InputError,
    NoFileError,
    NotFoundError,
    PayloadTooLargeError,
    PersistFailedError,
    PostNotFoundError,
    StorageFailedError,
)
from snapfeed.core.feed.models import (
    BlobReference,
    ClientIdentity,
    Comment,
    IdentityKind,
    MediaKind,
    Post,
)


# ---------------------------------------------------------------------------
# MediaKind Tests
# ---------------------------------------------------------------------------

class TestMediaKind:
    """Tests for mapping MIME types to media kinds."""

    @pytest.mark.parametrize("mime_type,expected", [
        ("image/png", MediaKind.IMAGE),
        ("image/heic", MediaKind.IMAGE),
        ("video/mp4", MediaKind.VIDEO),
        ("audio/mpeg", MediaKind.AUDIO),
        ("IMAGE/JPEG", MediaKind.IMAGE),
    ])
    def test_top_level_type_decides_kind(self, mime_type, expected):
        assert MediaKind.from_mime(mime_type) is expected

    def test_unknown_types_are_other(self):
        """Documents, archives and garbage all end up as OTHER."""
        assert MediaKind.from_mime("application/pdf") is MediaKind.OTHER
        assert MediaKind.from_mime("not a mime type") is MediaKind.OTHER

    def test_missing_type_is_other(self):
        assert MediaKind.from_mime(None) is MediaKind.OTHER
        assert MediaKind.from_mime("") is MediaKind.OTHER


# ---------------------------------------------------------------------------
# ClientIdentity Tests
# ---------------------------------------------------------------------------

class TestClientIdentity:
    """Tests for the like deduplication identity."""

    def test_network_address_key_is_the_address(self):
        """Addresses are stored as-is so existing like rows stay valid."""
        identity = ClientIdentity.from_address("1.2.3.4")

        assert identity.kind is IdentityKind.NETWORK_ADDRESS
        assert identity.key == "1.2.3.4"

    def test_session_key_is_namespaced(self):
        """A session id can never collide with an address."""
        identity = ClientIdentity.from_session("1.2.3.4")

        assert identity.key == "session:1.2.3.4"
        assert identity.key != ClientIdentity.from_address("1.2.3.4").key

    def test_empty_identity_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            ClientIdentity.from_address("")
        with pytest.raises(ValueError, match="cannot be empty"):
            ClientIdentity.from_address("   ")

    def test_identities_are_values(self):
        """Two identities for the same address are equal and hash alike."""
        a = ClientIdentity.from_address("10.0.0.1")
        b = ClientIdentity.from_address("10.0.0.1")

        assert a == b
        assert len({a, b}) == 1


# ---------------------------------------------------------------------------
# Post, Comment, BlobReference Tests
# ---------------------------------------------------------------------------

class TestPost:
    def test_new_post_has_zero_counters(self):
        post = Post(id=1, url="https://media.example.com/a.png", media_kind=MediaKind.IMAGE)

        assert post.like_count == 0
        assert post.comment_count == 0

    def test_post_requires_url(self):
        """A post without a url would be a dangling reference."""
        with pytest.raises(ValueError, match="url cannot be empty"):
            Post(id=1, url="")

    def test_post_rejects_negative_counters(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Post(id=1, url="https://media.example.com/a.png", like_count=-1)


class TestComment:
    def test_comment_rejects_blank_text(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            Comment(id=1, post_id=1, text="   ")


class TestBlobReference:
    def test_reference_requires_url(self):
        with pytest.raises(ValueError, match="must have a url"):
            BlobReference(url="", media_kind=MediaKind.IMAGE, storage_key="media/image/x")


# ---------------------------------------------------------------------------
# Error Taxonomy Tests
# ---------------------------------------------------------------------------

class TestErrors:
    """Each error family maps to one HTTP status."""

    def test_input_errors_are_400(self):
        assert NoFileError("x").status_code == 400
        assert isinstance(NoFileError("x"), InputError)

    def test_payload_too_large_is_413(self):
        assert PayloadTooLargeError("x").status_code == 413

    def test_duplicate_like_is_a_400_conflict(self):
        error = AlreadyLikedError("x")
        assert isinstance(error, ConflictError)
        assert error.status_code == 400

    def test_missing_post_is_404(self):
        error = PostNotFoundError(42)
        assert isinstance(error, NotFoundError)
        assert error.status_code == 404
        assert error.post_id == 42
        assert "42" in error.message

    def test_dependency_failures_are_500(self):
        assert StorageFailedError("x").status_code == 500
        orphan = PersistFailedError("x", orphan_url="mock://a", orphan_key="media/a")
        assert isinstance(orphan, DependencyError)
        assert orphan.orphan_url == "mock://a"
