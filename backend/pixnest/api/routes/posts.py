"""Post Routes: upload, delete, feed, and direct lookup.

Invariants:
    - /upload stores the image BEFORE creating the post record
    - /delete succeeds only for the post's owner (403 otherwise)
    - Feed and lookup are public; mutations require a live session
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import RedirectResponse

from pixnest.api.dependencies import (
    get_current_user_id, get_media_ingestor, get_post_registry,
)
from pixnest.config import Settings, get_settings
from pixnest.core.domain_types import UserId
from pixnest.core.errors import ErrorContext, UnsupportedMediaError
from pixnest.schemas.post import (
    CAPTION_MAX, FeedItem, FeedOwner, FeedResponse, PostResponse,
)
from pixnest.services.media_ingestor import MediaIngestor
from pixnest.services.post_registry import PostRegistry

logger = logging.getLogger(__name__)
router = APIRouter(tags=["posts"])


@router.post(
    "/upload", response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_post(
    file: UploadFile | None = File(None),
    filecaption: str | None = Form(None, max_length=CAPTION_MAX),
    user_id: UserId = Depends(get_current_user_id),
    ingestor: MediaIngestor = Depends(get_media_ingestor),
    posts: PostRegistry = Depends(get_post_registry),
    settings: Settings = Depends(get_settings),
):
    """Publish an image post for the calling user."""
    if file is None:
        raise UnsupportedMediaError("No file was uploaded")
    reference = await ingestor.ingest(
        file, file.size, file.content_type, settings.post_folder,
        ErrorContext(user_id=str(user_id)),
    )
    caption = filecaption.strip() if filecaption else None
    post_id = await posts.create(user_id, reference, caption or None)
    return PostResponse.model_validate(await posts.get(post_id))


@router.post("/delete/{post_id}")
async def delete_post(
    post_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    posts: PostRegistry = Depends(get_post_registry),
):
    await posts.delete(post_id, user_id)
    return RedirectResponse("/profile", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/feed", response_model=FeedResponse)
async def feed(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    posts: PostRegistry = Depends(get_post_registry),
):
    """All posts, newest first, with their owners."""
    rows = await posts.feed(limit=limit, offset=offset)
    return FeedResponse(
        items=[
            FeedItem(
                post=PostResponse.model_validate(post),
                owner=FeedOwner.model_validate(owner),
            )
            for post, owner in rows
        ],
        limit=limit,
        offset=offset,
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: UUID, posts: PostRegistry = Depends(get_post_registry),
):
    return PostResponse.model_validate(await posts.get(post_id))
