"""Tag-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TimeFilter = Literal["today", "week", "month", "all"]


class TagResponse(BaseModel):
    """Schema for tag statistics returned by the API."""

    id: int
    name: str
    display_name: str
    post_count: int
    trending_score: int
    category: str
    last_updated: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TrendingTagsResponse(BaseModel):
    """Trending tags for a time window."""

    tags: list[TagResponse]
    time_filter: TimeFilter = Field(..., alias="timeFilter")
    count: int

    model_config = ConfigDict(populate_by_name=True)


class TagSearchResponse(BaseModel):
    """Tags matching a search query."""

    tags: list[TagResponse]
