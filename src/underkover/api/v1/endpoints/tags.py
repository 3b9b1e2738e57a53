# src/underkover/api/v1/endpoints/tags.py
"""Tag statistics and tag feed endpoints for the Underkover API."""

from fastapi import APIRouter, Query

from underkover.api.v1.dependencies import SessionDep
from underkover.core.errors import ValidationFailed
from underkover.core.settings import settings
from underkover.schemas.feed import TagFeedPageResponse
from underkover.schemas.tag import (
    TagResponse,
    TagSearchResponse,
    TimeFilter,
    TrendingTagsResponse,
)
from underkover.services.feed import FeedScope, FeedService
from underkover.services.tag_stats import TagStatsService

router = APIRouter(prefix="/tags", tags=["tags"])

MIN_QUERY_LENGTH = 2


@router.get("/trending", response_model=TrendingTagsResponse)
async def get_trending_tags(
    db: SessionDep,
    limit: int = Query(settings.trending_default_limit, description="Number of tags (max 20)"),
    time_filter: TimeFilter = Query("all", alias="timeFilter"),
) -> TrendingTagsResponse:
    """Return the highest-scoring tags updated within ``timeFilter``."""
    if limit <= 0:
        limit = settings.trending_default_limit
    limit = min(limit, settings.trending_max_limit)
    tags = TagStatsService(db).trending(limit, time_filter)
    return TrendingTagsResponse(
        tags=[TagResponse.model_validate(tag) for tag in tags],
        time_filter=time_filter,
        count=len(tags),
    )


@router.get("/search", response_model=TagSearchResponse)
async def search_tags(
    db: SessionDep,
    q: str = Query("", description="Substring of the tag name"),
) -> TagSearchResponse:
    """Search tags in use by name or display name."""
    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise ValidationFailed("Search query must be at least 2 characters long")
    tags = TagStatsService(db).search(query, settings.tag_search_limit)
    return TagSearchResponse(tags=[TagResponse.model_validate(tag) for tag in tags])


@router.get("/{tag_name}/posts", response_model=TagFeedPageResponse)
async def get_tag_posts(
    tag_name: str,
    db: SessionDep,
    limit: int | None = Query(None),
    after: int | None = Query(None),
) -> TagFeedPageResponse:
    """Return a page of public posts carrying ``tag_name``."""
    page = FeedService(db).page(FeedScope.tag(tag_name), cursor=after, limit=limit)
    return TagFeedPageResponse(posts=page.posts, has_more=page.has_more, tag=tag_name)
