"""Post-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .comment import CommentResponse

MAX_IMAGES = 5
MAX_VIDEOS = 1


class VideoDescriptor(BaseModel):
    """Uploaded video reference."""

    url: str
    thumbnail: str | None = None
    duration: float | None = Field(None, ge=0)


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field("", max_length=5000, description="Post text")
    images: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    videos: list[VideoDescriptor] = Field(default_factory=list, max_length=MAX_VIDEOS)
    tags: list[str] = Field(default_factory=list, description="Manual tags")
    feed_type: Literal["global", "college", "area"] | None = Field(None, alias="feedType")
    college: str | None = None
    area: str | None = None
    ghost_circle_id: int | None = Field(None, alias="ghostCircleId")

    model_config = ConfigDict(populate_by_name=True)


class PostUpdate(BaseModel):
    """Schema for editing a post; omitted fields are left unchanged."""

    content: str | None = Field(None, max_length=5000)
    images: list[str] | None = Field(None, max_length=MAX_IMAGES)
    videos: list[VideoDescriptor] | None = Field(None, max_length=MAX_VIDEOS)
    tags: list[str] | None = None


class LikeResponse(BaseModel):
    """A single like entry."""

    user_id: int
    anonymous_alias: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    author_id: int | None
    content: str
    images: list[str]
    videos: list[VideoDescriptor]
    anonymous_alias: str
    avatar_emoji: str
    created_at: datetime
    expires_at: datetime
    college: str | None
    area: str | None
    ghost_circle_id: int | None
    tags: list[str]
    likes: list[LikeResponse]
    like_count: int
    comments: list[CommentResponse]
    share_count: int
    is_seed: bool

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def comment_count(self) -> int:
        """Number of comments and replies at every depth."""
        pending = list(self.comments)
        total = 0
        while pending:
            node = pending.pop()
            total += 1
            pending.extend(node.replies)
        return total


class LikeToggleResponse(BaseModel):
    """Like state after a toggle."""

    message: str
    liked: bool
    like_count: int


class ShareResponse(BaseModel):
    """Share counter after an increment."""

    post_id: int
    share_count: int


class PostDeleted(BaseModel):
    """Identifier of a deleted post."""

    id: int
