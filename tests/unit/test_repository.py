"""
Tests for PostRepository against SQLite.

These use the real schema and statements, so the unique constraint,
foreign keys and atomic increments are the database's, not a mock's.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import select

from snapfeed.core.feed.errors import AlreadyLikedError, PostNotFoundError
from snapfeed.core.feed.models import BlobReference, MediaKind
from snapfeed.infrastructure.database.repositories.posts import PostRepository
from snapfeed.infrastructure.database.schema import likes


def make_reference(name: str = "a.png", kind: MediaKind = MediaKind.IMAGE) -> BlobReference:
    return BlobReference(
        url=f"mock://storage/media/{kind.value}/{name}",
        media_kind=kind,
        storage_key=f"media/{kind.value}/{name}",
    )


class TestPosts:
    def test_created_post_starts_at_zero(self, repository):
        post = repository.create_post(make_reference())

        assert post.id >= 1
        assert post.url == "mock://storage/media/image/a.png"
        assert post.media_kind is MediaKind.IMAGE
        assert post.like_count == 0
        assert post.comment_count == 0

    def test_list_posts_newest_first(self, repository):
        first = repository.create_post(make_reference("1.png"))
        second = repository.create_post(make_reference("2.png"))
        third = repository.create_post(make_reference("3.mp4", MediaKind.VIDEO))

        assert [p.id for p in repository.list_posts()] == [third.id, second.id, first.id]

    def test_get_missing_post_raises(self, repository):
        with pytest.raises(PostNotFoundError):
            repository.get_post(999)


class TestLikes:
    def test_like_increments_and_records(self, repository):
        post = repository.create_post(make_reference())

        liked = repository.like_post(post.id, "1.2.3.4")

        assert liked.like_count == 1
        assert repository.has_like(post.id, "1.2.3.4")
        assert repository.count_likes(post.id) == 1

    def test_duplicate_like_rolls_back_increment(self, repository):
        """The unique constraint fires after the increment; the rollback undoes it."""
        post = repository.create_post(make_reference())
        repository.like_post(post.id, "1.2.3.4")

        with pytest.raises(AlreadyLikedError):
            repository.like_post(post.id, "1.2.3.4")

        assert repository.get_post(post.id).like_count == 1
        assert repository.count_likes(post.id) == 1

    def test_like_on_missing_post_writes_nothing(self, repository, engine):
        with pytest.raises(PostNotFoundError):
            repository.like_post(999, "1.2.3.4")

        with engine.connect() as conn:
            assert conn.execute(select(likes)).all() == []

    def test_list_likes_returns_one_per_identity(self, repository):
        post = repository.create_post(make_reference())
        repository.like_post(post.id, "1.2.3.4")
        repository.like_post(post.id, "session:abc")

        liked = repository.list_likes(post.id)

        assert [like.client_key for like in liked] == ["1.2.3.4", "session:abc"]
        assert all(like.post_id == post.id for like in liked)
        assert len(liked) == repository.get_post(post.id).like_count

    def test_same_identity_may_like_different_posts(self, repository):
        a = repository.create_post(make_reference("a.png"))
        b = repository.create_post(make_reference("b.png"))

        assert repository.like_post(a.id, "1.2.3.4").like_count == 1
        assert repository.like_post(b.id, "1.2.3.4").like_count == 1


class TestComments:
    def test_comment_increments_counter(self, repository):
        post = repository.create_post(make_reference())

        comment = repository.add_comment(post.id, "hi")

        assert comment.post_id == post.id
        assert comment.text == "hi"
        assert repository.get_post(post.id).comment_count == 1

    def test_comments_newest_first(self, repository):
        post = repository.create_post(make_reference())
        first = repository.add_comment(post.id, "first")
        second = repository.add_comment(post.id, "second")

        assert [c.id for c in repository.list_comments(post.id)] == [second.id, first.id]

    def test_comment_on_missing_post_writes_nothing(self, repository):
        with pytest.raises(PostNotFoundError):
            repository.add_comment(999, "hello?")

        assert repository.list_comments(999) == []


class TestConcurrency:
    """
    Lost updates only show up with real parallel connections, so these
    use a file-backed database with a connection pool.
    """

    def test_parallel_distinct_likes_are_all_counted(self, file_engine):
        repository = PostRepository(file_engine)
        post = repository.create_post(make_reference())
        workers = 12

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(
                lambda i: repository.like_post(post.id, f"10.0.0.{i}"),
                range(workers),
            ))

        assert len(results) == workers
        assert repository.get_post(post.id).like_count == workers
        assert repository.count_likes(post.id) == workers

    def test_parallel_comments_are_all_counted(self, file_engine):
        repository = PostRepository(file_engine)
        post = repository.create_post(make_reference())
        workers = 12

        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(
                lambda i: repository.add_comment(post.id, f"comment {i}"),
                range(workers),
            ))

        assert repository.get_post(post.id).comment_count == workers
        assert len(repository.list_comments(post.id)) == workers
