"""
Table definitions for the metadata store.

Three tables: posts, comments, likes. The unique constraint on
likes(post_id, user_ip) is what makes like deduplication safe under
concurrency. Without it two simultaneous requests could both pass the
existence check and both insert.

Counters on posts are denormalized. They are kept in step with the
comment and like rows by the repository, which changes both inside one
transaction.
"""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

metadata = MetaData()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer(), "sqlite")


posts = Table(
    "posts",
    metadata,
    Column("id", IdType, primary_key=True, autoincrement=True),
    Column("url", Text, nullable=False),
    Column("media_kind", String(16), nullable=False),
    Column("like_count", Integer, nullable=False, server_default="0"),
    Column("comment_count", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("like_count >= 0", name="ck_posts_like_count_non_negative"),
    CheckConstraint("comment_count >= 0", name="ck_posts_comment_count_non_negative"),
)


comments = Table(
    "comments",
    metadata,
    Column("id", IdType, primary_key=True, autoincrement=True),
    Column(
        "post_id",
        IdType,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("text", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("idx_comments_post_created", "post_id", "created_at"),
)


likes = Table(
    "likes",
    metadata,
    Column("id", IdType, primary_key=True, autoincrement=True),
    Column(
        "post_id",
        IdType,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Opaque client identity key; a network address for anonymous users
    Column("user_ip", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("post_id", "user_ip", name="uq_likes_post_user_ip"),
)
