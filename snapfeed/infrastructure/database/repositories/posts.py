"""
Repository for posts, comments and likes.

This module implements the repository pattern for feed data access.
The repository:
1. Translates between domain models and database rows
2. Encapsulates all SQL
3. Provides the atomic primitives the interaction service relies on

Every write that touches a counter runs in one transaction together
with the row it counts, and counters are only ever changed with
`SET x = x + 1` on the database side. Read-modify-write in Python would
lose updates under concurrent requests.
"""

import logging
from typing import Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.feed.errors import (
    AlreadyLikedError,
    PersistenceError,
    PostNotFoundError,
)
from ....core.feed.models import BlobReference, Comment, Like, MediaKind, Post, utcnow
from ..schema import comments, likes, posts

logger = logging.getLogger(__name__)


class PostRepository:
    """
    Repository for feed persistence.

    Holds the engine, not a connection: each method checks a connection
    out of the pool for exactly one transaction. Nothing here holds a
    connection while the caller talks to object storage.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # -----------------------------------------------------------------------
    # Posts
    # -----------------------------------------------------------------------

    def create_post(self, reference: BlobReference) -> Post:
        """Insert a post for an uploaded blob, with both counters at zero."""
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    insert(posts).values(
                        url=reference.url,
                        media_kind=reference.media_kind.value,
                        like_count=0,
                        comment_count=0,
                        created_at=utcnow(),
                    )
                )
                post_id = result.inserted_primary_key[0]
                return self._fetch_post(conn, post_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to insert post",
                extra={"url": reference.url, "error": str(e)}
            )
            raise PersistenceError(f"Database insert failed: {e}")

    def get_post(self, post_id: int) -> Post:
        try:
            with self._engine.connect() as conn:
                return self._fetch_post(conn, post_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to fetch post: {e}")

    def list_posts(self) -> list[Post]:
        """All posts, newest first. Ids increase, so newest means highest id."""
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(posts).order_by(posts.c.id.desc())).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to fetch posts: {e}")
        return [self._build_post(row) for row in rows]

    # -----------------------------------------------------------------------
    # Likes
    # -----------------------------------------------------------------------

    def has_like(self, post_id: int, client_key: str) -> bool:
        try:
            with self._engine.connect() as conn:
                found = conn.execute(
                    select(likes.c.id).where(
                        likes.c.post_id == post_id,
                        likes.c.user_ip == client_key,
                    )
                ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to check like: {e}")
        return found is not None

    def like_post(self, post_id: int, client_key: str) -> Post:
        """
        Record a like and bump the post's like counter atomically.

        The increment runs first so an unknown post is detected before
        any like row is written, and it locks the post row for the rest
        of the transaction. The unique constraint on (post_id, user_ip)
        is the final arbiter: if a concurrent request with the same key
        got there first, the insert fails and the rollback takes the
        increment with it.
        """
        try:
            with self._engine.begin() as conn:
                self._increment(conn, posts.c.like_count, post_id)
                conn.execute(
                    insert(likes).values(
                        post_id=post_id,
                        user_ip=client_key,
                        created_at=utcnow(),
                    )
                )
                return self._fetch_post(conn, post_id)
        except IntegrityError:
            raise AlreadyLikedError("You have already liked this post")
        except SQLAlchemyError as e:
            logger.error(
                "Failed to like post",
                extra={"post_id": post_id, "error": str(e)}
            )
            raise PersistenceError(f"Error liking post: {e}")

    def list_likes(self, post_id: int) -> list[Like]:
        """Likes on a post, oldest first."""
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    select(likes)
                    .where(likes.c.post_id == post_id)
                    .order_by(likes.c.id)
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to fetch likes: {e}")
        return [
            Like(post_id=row.post_id, client_key=row.user_ip, created_at=row.created_at)
            for row in rows
        ]

    def count_likes(self, post_id: int) -> int:
        try:
            with self._engine.connect() as conn:
                return conn.execute(
                    select(func.count()).select_from(likes).where(likes.c.post_id == post_id)
                ).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count likes: {e}")

    # -----------------------------------------------------------------------
    # Comments
    # -----------------------------------------------------------------------

    def add_comment(self, post_id: int, text: str) -> Comment:
        """Insert a comment and bump the comment counter in one transaction."""
        try:
            with self._engine.begin() as conn:
                self._increment(conn, posts.c.comment_count, post_id)
                result = conn.execute(
                    insert(comments).values(
                        post_id=post_id,
                        text=text,
                        created_at=utcnow(),
                    )
                )
                comment_id = result.inserted_primary_key[0]
                row = conn.execute(
                    select(comments).where(comments.c.id == comment_id)
                ).one()
                return self._build_comment(row)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to add comment",
                extra={"post_id": post_id, "error": str(e)}
            )
            raise PersistenceError(f"Error posting comment: {e}")

    def list_comments(self, post_id: int) -> list[Comment]:
        """Comments for a post, newest first. Id breaks timestamp ties."""
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    select(comments)
                    .where(comments.c.post_id == post_id)
                    .order_by(comments.c.created_at.desc(), comments.c.id.desc())
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to fetch comments: {e}")
        return [self._build_comment(row) for row in rows]

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _increment(self, conn: Connection, column, post_id: int) -> None:
        """Atomic store-side `column = column + 1`. Raises if the post is missing."""
        result = conn.execute(
            update(posts)
            .where(posts.c.id == post_id)
            .values({column: column + 1})
        )
        if result.rowcount == 0:
            raise PostNotFoundError(post_id)

    def _fetch_post(self, conn: Connection, post_id: int) -> Post:
        row: Optional[Row] = conn.execute(
            select(posts).where(posts.c.id == post_id)
        ).first()
        if row is None:
            raise PostNotFoundError(post_id)
        return self._build_post(row)

    def _build_post(self, row: Row) -> Post:
        return Post(
            id=row.id,
            url=row.url,
            media_kind=MediaKind(row.media_kind),
            like_count=row.like_count,
            comment_count=row.comment_count,
            created_at=row.created_at,
        )

    def _build_comment(self, row: Row) -> Comment:
        return Comment(
            id=row.id,
            post_id=row.post_id,
            text=row.text,
            created_at=row.created_at,
        )
