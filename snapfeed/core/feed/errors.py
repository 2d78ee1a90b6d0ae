"""
Feed error taxonomy.

Every failure the feed can report falls into one of four families, each
tied to the HTTP status the API answers with:

- InputError: the client sent something unusable (400)
- ConflictError: the request clashes with existing state (400)
- NotFoundError: the referenced post doesn't exist (404)
- DependencyError: object storage or the database failed (500)

Routes only need to know `status_code`; the subclasses exist so that
callers and tests can tell the concrete cases apart.
"""


class FeedError(Exception):
    """Base class for all feed errors."""
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(FeedError):
    status_code = 400


class NoFileError(InputError):
    """Upload without a file, or with an empty one."""
    pass


class PayloadTooLargeError(InputError):
    status_code = 413


class InvalidInputError(InputError):
    """Comment without text or without a usable post id."""
    pass


class ConflictError(FeedError):
    status_code = 400


class AlreadyLikedError(ConflictError):
    pass


class NotFoundError(FeedError):
    status_code = 404


class PostNotFoundError(NotFoundError):
    def __init__(self, post_id: int) -> None:
        super().__init__(f"Post {post_id} not found")
        self.post_id = post_id


class DependencyError(FeedError):
    status_code = 500


class StorageFailedError(DependencyError):
    """The object store rejected or never finished the upload."""
    pass


class PersistFailedError(DependencyError):
    """
    The blob was stored but the post row could not be written.

    The stored object is left behind as an orphan; `orphan_url` and
    `orphan_key` identify it for whoever reconciles storage later.
    """

    def __init__(self, message: str, orphan_url: str, orphan_key: str) -> None:
        super().__init__(message)
        self.orphan_url = orphan_url
        self.orphan_key = orphan_key


class PersistenceError(DependencyError):
    """A database operation failed."""
    pass
