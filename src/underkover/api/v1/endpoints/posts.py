# src/underkover/api/v1/endpoints/posts.py
"""Post and feed endpoints for the Underkover API."""

from fastapi import APIRouter, Query, status

from underkover.api.v1.dependencies import (
    CurrentUserDep,
    FeedCacheDep,
    OptionalUserDep,
    SessionDep,
    TagDispatcherDep,
)
from underkover.schemas.feed import FeedPageResponse
from underkover.schemas.post import (
    LikeToggleResponse,
    PostCreate,
    PostDeleted,
    PostResponse,
    PostUpdate,
    ShareResponse,
)
from underkover.services.feed import FeedScope, FeedService
from underkover.services.posts import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


def _feed_page(
    db: SessionDep,
    cache: FeedCacheDep,
    scope: FeedScope,
    after: int | None,
    limit: int | None,
) -> FeedPageResponse:
    page = FeedService(db, cache).page(scope, cursor=after, limit=limit)
    return FeedPageResponse(posts=page.posts, has_more=page.has_more)


@router.get("", response_model=FeedPageResponse)
async def get_global_feed(
    db: SessionDep,
    cache: FeedCacheDep,
    limit: int | None = Query(None, description="Page size (capped at 50)"),
    after: int | None = Query(None, description="Return posts with an id below this cursor"),
) -> FeedPageResponse:
    """Return a page of the global feed, newest first.

    The first page is served from the feed cache when possible and is
    topped up with seed posts when there are not enough organic posts.
    """
    return _feed_page(db, cache, FeedScope.global_feed(), after, limit)


@router.get("/college", response_model=FeedPageResponse)
async def get_college_feed(
    db: SessionDep,
    cache: FeedCacheDep,
    college: str | None = Query(None, description="College name"),
    limit: int | None = Query(None),
    after: int | None = Query(None),
) -> FeedPageResponse:
    """Return a page of posts scoped to one college."""
    return _feed_page(db, cache, FeedScope.college(college), after, limit)


@router.get("/area", response_model=FeedPageResponse)
async def get_area_feed(
    db: SessionDep,
    cache: FeedCacheDep,
    area: str | None = Query(None, description="Area name"),
    limit: int | None = Query(None),
    after: int | None = Query(None),
) -> FeedPageResponse:
    """Return a page of posts scoped to one area."""
    return _feed_page(db, cache, FeedScope.area(area), after, limit)


@router.get("/user/{user_id}", response_model=list[PostResponse])
async def get_user_posts(
    user_id: int,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> list[PostResponse]:
    """Return a user's live posts outside ghost circles."""
    posts = PostService(db).list_for_user(user_id)
    return [PostResponse.model_validate(post) for post in posts]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> PostResponse:
    """Get a live post by ID; ghost-circle posts are visible to members only."""
    post = PostService(db).get_visible(post_id, viewer)
    return PostResponse.model_validate(post)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
    tag_dispatcher: TagDispatcherDep,
) -> PostResponse:
    """Create a new post.

    Tag statistics for the post's tags are recomputed in the background;
    the response does not wait for them.
    """
    post = PostService(db, cache, tag_dispatcher).create(current_user, post_data)
    return PostResponse.model_validate(post)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
    tag_dispatcher: TagDispatcherDep,
) -> PostResponse:
    """Edit a post owned by the caller."""
    post = PostService(db, cache, tag_dispatcher).update(post_id, current_user, post_data)
    return PostResponse.model_validate(post)


@router.delete("/{post_id}", response_model=PostDeleted)
async def delete_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
    tag_dispatcher: TagDispatcherDep,
) -> PostDeleted:
    """Delete a post owned by the caller."""
    deleted_id = PostService(db, cache, tag_dispatcher).delete(post_id, current_user)
    return PostDeleted(id=deleted_id)


@router.put("/{post_id}/like", response_model=LikeToggleResponse)
async def like_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> LikeToggleResponse:
    """Like a post, or remove the caller's like if it is already there."""
    liked, like_count = PostService(db, cache).toggle_like(post_id, current_user)
    return LikeToggleResponse(
        message="Post liked" if liked else "Post unliked",
        liked=liked,
        like_count=like_count,
    )


@router.post("/{post_id}/share", response_model=ShareResponse)
async def share_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    cache: FeedCacheDep,
) -> ShareResponse:
    """Increment a post's share counter."""
    share_count = PostService(db, cache).share(post_id, current_user)
    return ShareResponse(post_id=post_id, share_count=share_count)
