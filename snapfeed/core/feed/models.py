"""
Domain models for the media feed.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs. The database layer builds them
from rows; the API layer turns them into response models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaKind(Enum):
    """What kind of media a post holds, as detected at upload time."""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"

    @classmethod
    def from_mime(cls, mime_type: Optional[str]) -> "MediaKind":
        """
        Map a MIME type to a media kind.

        Only the top-level type matters: image/png and image/heic are
        both images. Anything unknown or missing is OTHER.
        """
        if not mime_type:
            return cls.OTHER

        top_level = mime_type.split("/", 1)[0].strip().lower()
        try:
            kind = cls(top_level)
        except ValueError:
            return cls.OTHER
        return kind


class IdentityKind(Enum):
    """
    Where a client identity came from.

    NETWORK_ADDRESS is weak: users behind the same NAT share it and it
    can be spoofed. SESSION is for a signed session or account id once
    something upstream can vouch for one.
    """
    NETWORK_ADDRESS = "network_address"
    SESSION = "session"


@dataclass(frozen=True)
class ClientIdentity:
    """
    The value used to deduplicate likes.

    Frozen because identities are values. `key` is what gets stored in
    the likes table, so changing its format invalidates existing likes.
    """
    kind: IdentityKind
    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Client identity cannot be empty")

    @classmethod
    def from_address(cls, address: str) -> "ClientIdentity":
        return cls(kind=IdentityKind.NETWORK_ADDRESS, value=address.strip() if address else "")

    @classmethod
    def from_session(cls, session_id: str) -> "ClientIdentity":
        return cls(kind=IdentityKind.SESSION, value=session_id)

    @property
    def key(self) -> str:
        if self.kind is IdentityKind.NETWORK_ADDRESS:
            return self.value
        return f"session:{self.value}"


@dataclass(frozen=True)
class BlobReference:
    """
    A durable pointer into the object store.

    Returned by the storage client only after the object is fully
    written, so a reference always points at real content.
    """
    url: str
    media_kind: MediaKind
    storage_key: str
    size_bytes: int = 0
    content_type: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Blob reference must have a url")


@dataclass
class Post:
    """
    A piece of uploaded media plus its interaction counters.

    Counters are owned by the database: like_count always equals the
    number of like rows and comment_count the number of comment rows.
    Nothing in the application should adjust them in memory.
    """
    id: int
    url: str
    media_kind: MediaKind = MediaKind.OTHER
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Post url cannot be empty")
        if self.like_count < 0 or self.comment_count < 0:
            raise ValueError("Post counters cannot be negative")


@dataclass
class Comment:
    """A comment on a post. Never edited or deleted once written."""
    id: int
    post_id: int
    text: str
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise ValueError("Comment text cannot be empty")


@dataclass(frozen=True)
class Like:
    """One like per (post, client identity key)."""
    post_id: int
    client_key: str
    created_at: datetime = field(default_factory=utcnow)
