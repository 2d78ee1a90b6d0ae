"""
Likes, comments, and the read side of the feed.

The interaction service validates requests and decides what counts as
a duplicate; the store does the actual counting. Correctness under
concurrency comes from the store's primitives (atomic increments and
the unique constraint on likes), not from locks in this process.
"""

import logging
from typing import Optional, Protocol

from .errors import AlreadyLikedError, InvalidInputError
from .models import ClientIdentity, Comment, Post

logger = logging.getLogger(__name__)


class InteractionStore(Protocol):
    """What the interaction service needs from the metadata store."""

    def get_post(self, post_id: int) -> Post: ...
    def list_posts(self) -> list[Post]: ...
    def has_like(self, post_id: int, client_key: str) -> bool: ...
    def like_post(self, post_id: int, client_key: str) -> Post: ...
    def add_comment(self, post_id: int, text: str) -> Comment: ...
    def list_comments(self, post_id: int) -> list[Comment]: ...


class InteractionService:
    """
    Like deduplication and comment submission.

    like_post checks for an existing like first so repeat clicks fail
    without touching the counter. That check alone can't stop two
    simultaneous requests; the store's unique constraint does, and
    reports the loser as AlreadyLikedError as well.
    """

    def __init__(
        self,
        store: InteractionStore,
        max_comment_length: int = 2000,
    ) -> None:
        self._store = store
        self._max_comment_length = max_comment_length

    def like_post(self, post_id: int, identity: ClientIdentity) -> Post:
        if self._store.has_like(post_id, identity.key):
            logger.info(
                "Duplicate like rejected",
                extra={"post_id": post_id, "identity_kind": identity.kind.value}
            )
            raise AlreadyLikedError("You have already liked this post")

        post = self._store.like_post(post_id, identity.key)

        logger.info(
            "Post liked",
            extra={"post_id": post_id, "like_count": post.like_count}
        )
        return post

    def add_comment(self, post_id: Optional[int], text: Optional[str]) -> Comment:
        if not post_id or post_id < 1:
            raise InvalidInputError("Post id is required")

        if text is None or not text.strip():
            raise InvalidInputError("Comment text is required")

        if len(text) > self._max_comment_length:
            raise InvalidInputError(
                f"Comment text exceeds {self._max_comment_length} characters"
            )

        comment = self._store.add_comment(post_id, text)

        logger.info(
            "Comment added",
            extra={"post_id": post_id, "comment_id": comment.id}
        )
        return comment

    def list_posts(self) -> list[Post]:
        return self._store.list_posts()

    def list_comments(self, post_id: int) -> list[Comment]:
        return self._store.list_comments(post_id)

    def resolve_download(self, post_id: int) -> str:
        """Where to send a download request: the post's stored url."""
        return self._store.get_post(post_id).url
