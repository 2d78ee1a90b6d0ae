"""
Translation from feed errors to HTTP errors.

Every FeedError knows its status code, so routes only have to catch
FeedError and re-raise what this returns. Raw database errors keep a
generic message: the details are in the server log, not the response.
"""

from fastapi import HTTPException

from ..core.feed.errors import FeedError, PersistenceError


def to_http_exception(error: FeedError, fallback_detail: str) -> HTTPException:
    detail = fallback_detail if isinstance(error, PersistenceError) else error.message
    return HTTPException(status_code=error.status_code, detail=detail)
