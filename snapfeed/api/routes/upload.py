"""
Media upload endpoint.

The upload is handed to the ingestion coordinator as the spooled file
FastAPI already holds; it is streamed to object storage from there, never
read into one big bytes object here.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, UploadFile, status

from ...core.feed.errors import FeedError
from ..dependencies import IngestionCoordinatorDep
from ..errors import to_http_exception
from .posts import PostResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/upload",
    response_model=PostResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload media",
    description="Store an image, video or audio file and create a post for it",
    responses={
        400: {"description": "No file uploaded"},
        413: {"description": "File too large"},
        500: {"description": "Storage or database failure"},
    },
)
async def upload_media(
    coordinator: IngestionCoordinatorDep,
    file: Annotated[Optional[UploadFile], File(description="Media file")] = None,
) -> PostResponse:
    """
    Upload a file and create a post.

    The file goes to object storage first; the post is only created
    once the upload has succeeded. If storage fails, no post is created.
    If the database fails afterwards, the stored file is left orphaned
    and the request still fails with a 500.
    """
    try:
        post = await coordinator.ingest(
            file.file if file is not None else None,
            content_type=file.content_type if file is not None else None,
        )
    except FeedError as e:
        logger.warning(
            "Media upload failed",
            extra={
                "upload_filename": file.filename if file is not None else None,
                "status": e.status_code,
                "error": e.message,
            }
        )
        raise to_http_exception(e, "Error uploading file")

    return PostResponse.from_domain(post)
