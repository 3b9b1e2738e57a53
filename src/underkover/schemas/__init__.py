"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import (
    CommentCreate,
    CommentDeleted,
    CommentResponse,
    CommentTreeResponse,
    CommentUpdate,
)
from .feed import FeedPageResponse, TagFeedPageResponse
from .post import (
    LikeToggleResponse,
    PostCreate,
    PostDeleted,
    PostResponse,
    PostUpdate,
    ShareResponse,
    VideoDescriptor,
)
from .tag import TagResponse, TagSearchResponse, TrendingTagsResponse

__all__ = [
    "CommentCreate", "CommentDeleted", "CommentResponse", "CommentTreeResponse", "CommentUpdate",
    "FeedPageResponse", "TagFeedPageResponse",
    "LikeToggleResponse", "PostCreate", "PostDeleted", "PostResponse",
    "PostUpdate", "ShareResponse", "VideoDescriptor",
    "TagResponse", "TagSearchResponse", "TrendingTagsResponse",
]
