# src/underkover/api/v1/endpoints/ghost_circles.py
"""Ghost circle feed endpoint for the Underkover API."""

from fastapi import APIRouter, Query

from underkover.api.v1.dependencies import CurrentUserDep, FeedCacheDep, SessionDep
from underkover.schemas.feed import FeedPageResponse
from underkover.services.feed import FeedScope, FeedService
from underkover.services.posts import PostService

router = APIRouter(prefix="/ghost-circles", tags=["ghost-circles"])


@router.get("/{circle_id}/posts", response_model=FeedPageResponse)
async def get_circle_posts(
    circle_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
    limit: int | None = Query(None),
    after: int | None = Query(None),
) -> FeedPageResponse:
    """Return a page of a ghost circle's posts to its creator or members."""
    PostService(db).circle_for_member(circle_id, current_user)
    page = FeedService(db, cache).page(FeedScope.ghost(circle_id), cursor=after, limit=limit)
    return FeedPageResponse(posts=page.posts, has_more=page.has_more)
