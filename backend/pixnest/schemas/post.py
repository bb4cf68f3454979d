"""Post Schemas: responses for created posts and the feed."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

CAPTION_MAX = 2200


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    image: str
    caption: str | None
    owner_id: UUID
    created_at: datetime


class FeedOwner(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    avatar: str


class FeedItem(BaseModel):
    post: PostResponse
    owner: FeedOwner


class FeedResponse(BaseModel):
    items: list[FeedItem]
    limit: int
    offset: int
