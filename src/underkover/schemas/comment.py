"""Comment-tree Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    """Schema for adding a comment or a reply."""

    content: str = Field("", max_length=2000, description="Comment text")


class CommentUpdate(BaseModel):
    """Schema for editing a comment or a reply."""

    content: str = Field("", max_length=2000, description="Replacement text")


class CommentResponse(BaseModel):
    """One node of a post's comment tree, replies included."""

    id: str
    kind: Literal["comment", "reply"]
    user_id: int
    anonymous_alias: str
    avatar_emoji: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    replies: list[CommentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CommentTreeResponse(BaseModel):
    """All comments of a post."""

    post_id: int
    comments: list[CommentResponse]


class CommentDeleted(BaseModel):
    """Identifier of a removed comment or reply."""

    id: str
    removed: int = Field(..., description="Nodes removed, replies included")
