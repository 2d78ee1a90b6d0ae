"""
Post API endpoints: listing, likes, comments and downloads.

These routes are plain `def` functions. Everything they do is a short
database call, and FastAPI runs sync routes in its thread pool, so
requests are served concurrently without blocking the event loop.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Path, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from ...core.feed.errors import FeedError
from ...core.feed.models import Comment, Post
from ..dependencies import ClientIdentityDep, InteractionServiceDep
from ..errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()

# Ids are BIGINT; anything outside that range can't name a post
MAX_POST_ID = 2**63 - 1

PostId = Annotated[int, Path(ge=1, le=MAX_POST_ID, description="Post identifier")]


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class PostResponse(BaseModel):
    """A post with its interaction counters."""
    id: int = Field(description="Post identifier, increasing with upload order")
    url: str = Field(description="Durable url of the media in object storage")
    media_kind: str = Field(description="image, video, audio or other")
    like_count: int = Field(description="Number of likes")
    comment_count: int = Field(description="Number of comments")
    created_at: datetime = Field(description="When the post was created")

    @classmethod
    def from_domain(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            url=post.url,
            media_kind=post.media_kind.value,
            like_count=post.like_count,
            comment_count=post.comment_count,
            created_at=post.created_at,
        )


class CommentRequest(BaseModel):
    """
    Request to comment on a post.

    `text` is optional here so that a missing text is reported by the
    interaction service as a 400 like any other invalid comment.
    """
    text: Optional[str] = Field(default=None, description="Comment text")


class CommentResponse(BaseModel):
    id: int = Field(description="Comment identifier")
    post_id: int = Field(description="Post the comment belongs to")
    text: str = Field(description="Comment text")
    created_at: datetime = Field(description="When the comment was posted")

    @classmethod
    def from_domain(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            text=comment.text,
            created_at=comment.created_at,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[PostResponse],
    status_code=status.HTTP_200_OK,
    summary="List posts",
    description="All posts, newest first",
)
def list_posts(service: InteractionServiceDep) -> list[PostResponse]:
    try:
        posts = service.list_posts()
    except FeedError as e:
        raise to_http_exception(e, "Failed to fetch posts")
    return [PostResponse.from_domain(post) for post in posts]


@router.post(
    "/{post_id}/like",
    response_model=PostResponse,
    status_code=status.HTTP_200_OK,
    summary="Like a post",
    description="One like per post per client address",
)
def like_post(
    post_id: PostId,
    identity: ClientIdentityDep,
    service: InteractionServiceDep,
) -> PostResponse:
    """
    Like a post.

    The client address is the identity, so everyone behind the same NAT
    shares a single like. A second like from the same address is a 400.
    """
    try:
        post = service.like_post(post_id, identity)
    except FeedError as e:
        logger.info(
            "Like rejected",
            extra={"post_id": post_id, "status": e.status_code, "error": e.message}
        )
        raise to_http_exception(e, "Error liking post")
    return PostResponse.from_domain(post)


@router.get(
    "/{post_id}/comments",
    response_model=list[CommentResponse],
    status_code=status.HTTP_200_OK,
    summary="List comments",
    description="Comments on a post, newest first",
)
def list_comments(
    post_id: PostId,
    service: InteractionServiceDep,
) -> list[CommentResponse]:
    try:
        comments = service.list_comments(post_id)
    except FeedError as e:
        raise to_http_exception(e, "Failed to fetch comments")
    return [CommentResponse.from_domain(comment) for comment in comments]


@router.post(
    "/{post_id}/comment",
    response_model=CommentResponse,
    status_code=status.HTTP_200_OK,
    summary="Comment on a post",
)
def add_comment(
    post_id: PostId,
    service: InteractionServiceDep,
    comment_request: Optional[CommentRequest] = None,
) -> CommentResponse:
    text = comment_request.text if comment_request is not None else None

    try:
        comment = service.add_comment(post_id, text)
    except FeedError as e:
        raise to_http_exception(e, "Error posting comment")
    return CommentResponse.from_domain(comment)


@router.get(
    "/{post_id}/download",
    status_code=status.HTTP_302_FOUND,
    summary="Download a post's media",
    description="Redirects to the media url in object storage",
    responses={404: {"description": "Post not found"}},
)
def download_post(
    post_id: PostId,
    service: InteractionServiceDep,
) -> RedirectResponse:
    try:
        url = service.resolve_download(post_id)
    except FeedError as e:
        raise to_http_exception(e, "Error downloading post")
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
