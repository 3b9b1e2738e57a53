"""Service-level helpers for creating and changing posts."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from underkover.core.errors import (
    ConcurrentModification,
    GhostCircleNotFound,
    NotAuthorized,
    PostNotFound,
    ValidationFailed,
)
from underkover.core.settings import settings
from underkover.db.time import utcnow
from underkover.models import GhostCircle, Post, PostLike, User
from underkover.repositories.post_repo import PostRepository
from underkover.schemas.post import PostCreate, PostUpdate
from underkover.services.feed_cache import FeedCache, cache_key_for_post
from underkover.services.tagging import extract_hashtags, normalize_tags

logger = logging.getLogger(__name__)


class TagUpdateSink(Protocol):
    """Receives tag names whose statistics are out of date."""

    def submit(self, tag_names: Iterable[str]) -> None: ...


def _has_body(content: str | None, images: list[str], videos: list[object]) -> bool:
    return bool((content and content.strip()) or images or videos)


class PostService:
    """Post writes, plus the cache and tag statistics side effects they cause."""

    def __init__(
        self,
        session: Session,
        cache: FeedCache | None = None,
        tag_updates: TagUpdateSink | None = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.tag_updates = tag_updates
        self.posts = PostRepository(session)

    def _after_write(self, ghost_circle_id: int | None, tags: Iterable[str]) -> None:
        if self.cache is not None:
            self.cache.invalidate(cache_key_for_post(ghost_circle_id))
        names = list(tags)
        if names and self.tag_updates is not None:
            self.tag_updates.submit(names)

    def _commit(self) -> None:
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise ConcurrentModification("Post was modified concurrently, please retry") from exc
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def get_visible(self, post_id: int, viewer: User | None = None) -> Post:
        """Return a live post; ghost-circle posts only to circle members."""
        post = self.posts.get_live(post_id)
        if post is None:
            raise PostNotFound()
        if post.ghost_circle_id is not None:
            if viewer is None:
                raise PostNotFound()
            try:
                self.circle_for_member(post.ghost_circle_id, viewer)
            except (GhostCircleNotFound, NotAuthorized) as exc:
                raise PostNotFound() from exc
        return post

    def get_owned(self, post_id: int, actor: User) -> Post:
        post = self.posts.get_live(post_id)
        if post is None:
            raise PostNotFound()
        if post.author_id != actor.id:
            raise NotAuthorized("User not authorized")
        return post

    def list_for_user(self, user_id: int, limit: int | None = None) -> list[Post]:
        return self.posts.list_for_author(user_id, limit or settings.feed_max_limit)

    def circle_for_member(self, circle_id: int, user: User, now: datetime | None = None) -> GhostCircle:
        """Return a live ghost circle that ``user`` created or belongs to.

        Raises:
            GhostCircleNotFound: The circle is absent or expired.
            NotAuthorized: The user is neither its creator nor a member.
        """
        circle = self.session.scalars(
            select(GhostCircle).where(
                GhostCircle.id == circle_id,
                GhostCircle.expires_at > (now or utcnow()),
            )
        ).first()
        if circle is None:
            raise GhostCircleNotFound()
        if circle.creator_id != user.id and not self.posts.is_circle_member(circle.id, user.id):
            raise NotAuthorized("You are not a member of this ghost circle")
        return circle

    def create(self, author: User, payload: PostCreate) -> Post:
        """Create a post in the global, college, area or ghost-circle scope.

        Raises:
            ValidationFailed: No content or media, missing scope field, or the
                author has no anonymous identity.
            GhostCircleNotFound: The target circle is absent or expired.
            NotAuthorized: The author is not a member of the target circle.
        """
        content = payload.content or ""
        videos = [video.model_dump() for video in payload.videos]
        if not _has_body(content, payload.images, videos):
            raise ValidationFailed("Please add some content, image or video")
        if not author.anonymous_alias or not author.avatar_emoji:
            raise ValidationFailed("User alias or avatar not found")

        now = utcnow()
        college: str | None = None
        area: str | None = None
        expires_at = now + timedelta(hours=settings.post_ttl_hours)

        if payload.ghost_circle_id is not None:
            circle = self.circle_for_member(payload.ghost_circle_id, author, now)
            expires_at = circle.expires_at
        else:
            feed_type = payload.feed_type
            if feed_type is None:
                if payload.college and payload.area:
                    raise ValidationFailed("A post can target a college or an area, not both")
                feed_type = "college" if payload.college else "area" if payload.area else "global"
            if feed_type == "college":
                if not payload.college:
                    raise ValidationFailed("College is required for college feed posts")
                college = payload.college
            elif feed_type == "area":
                if not payload.area:
                    raise ValidationFailed("Area is required for area feed posts")
                area = payload.area

        tags = normalize_tags(payload.tags, content)
        post = Post(
            author_id=author.id,
            content=content,
            images=list(payload.images),
            videos=videos,
            anonymous_alias=author.anonymous_alias,
            avatar_emoji=author.avatar_emoji,
            created_at=now,
            expires_at=expires_at,
            college=college,
            area=area,
            ghost_circle_id=payload.ghost_circle_id,
            comments=[],
            share_count=0,
            is_seed=False,
        )
        post.set_tags(tags)
        # One transaction: the post, its tag links and its circle scope land together.
        self.session.add(post)
        self._commit()
        self.session.refresh(post)
        logger.info("Created post %s with %d tags", post.id, len(tags))

        self._after_write(post.ghost_circle_id, tags)
        return post

    def update(self, post_id: int, actor: User, payload: PostUpdate) -> Post:
        """Edit an owned post; tags are re-derived from manual tags and content."""
        post = self.get_owned(post_id, actor)
        old_tags = post.tags
        old_hashtags = set(extract_hashtags(post.content))

        content = post.content if payload.content is None else payload.content
        images = post.images if payload.images is None else list(payload.images)
        videos = (
            post.videos
            if payload.videos is None
            else [video.model_dump() for video in payload.videos]
        )
        if not _has_body(content, images, videos):
            raise ValidationFailed("Please add some content, image or video")

        manual = (
            payload.tags
            if payload.tags is not None
            else [tag for tag in old_tags if tag not in old_hashtags]
        )
        new_tags = normalize_tags(manual, content)

        post.content = content
        post.images = images
        post.videos = videos
        post.set_tags(new_tags)
        self._commit()
        self.session.refresh(post)

        self._after_write(post.ghost_circle_id, dict.fromkeys([*old_tags, *new_tags]))
        return post

    def delete(self, post_id: int, actor: User) -> int:
        """Delete an owned post with its likes and tag links."""
        post = self.get_owned(post_id, actor)
        tags = post.tags
        ghost_circle_id = post.ghost_circle_id
        self.session.delete(post)
        self._commit()
        logger.info("Deleted post %s", post_id)
        self._after_write(ghost_circle_id, tags)
        return post_id

    def toggle_like(self, post_id: int, user: User) -> tuple[bool, int]:
        """Like the post, or remove the user's like if present.

        Returns:
            Whether the post is now liked by ``user`` and the new like count.
        """
        post = self.get_visible(post_id, user)
        if not user.anonymous_alias:
            raise ValidationFailed("User alias not found")

        existing = next((like for like in post.likes if like.user_id == user.id), None)
        if existing is not None:
            post.likes.remove(existing)
            liked = False
        else:
            post.likes.append(PostLike(user_id=user.id, anonymous_alias=user.anonymous_alias))
            liked = True
        self._commit()
        self.session.refresh(post)

        self._after_write(post.ghost_circle_id, ())
        return liked, post.like_count

    def share(self, post_id: int, viewer: User | None = None) -> int:
        """Increment the share counter and return its new value."""
        post = self.get_visible(post_id, viewer)
        self.session.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(share_count=Post.share_count + 1)
            .execution_options(synchronize_session=False)
        )
        self._commit()
        self.session.refresh(post)

        self._after_write(post.ghost_circle_id, ())
        return post.share_count
