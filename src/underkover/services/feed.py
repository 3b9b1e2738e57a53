"""Cursor-paginated feed queries.

Feeds are read newest first by post id. A page holds the posts whose id is
strictly below the cursor, so a client paging with the last id it saw is not
disturbed by posts created in the meantime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import ValidationError
from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from underkover.core.errors import ValidationFailed
from underkover.core.settings import Settings, settings as default_settings
from underkover.db.time import utcnow
from underkover.models import Post, PostTag
from underkover.repositories.post_repo import live_posts
from underkover.schemas.post import PostResponse
from underkover.services.feed_cache import GLOBAL_FEED_KEY, FeedCache, ghost_feed_key

logger = logging.getLogger(__name__)

ScopeKind = Literal["global", "college", "area", "tag", "ghost"]


@dataclass(frozen=True)
class FeedScope:
    """Which slice of posts a feed shows."""

    kind: ScopeKind
    value: str | int | None = None

    @classmethod
    def global_feed(cls) -> FeedScope:
        return cls("global")

    @classmethod
    def college(cls, name: str | None) -> FeedScope:
        if not name:
            raise ValidationFailed("College parameter is required")
        return cls("college", name)

    @classmethod
    def area(cls, name: str | None) -> FeedScope:
        if not name:
            raise ValidationFailed("Area parameter is required")
        return cls("area", name)

    @classmethod
    def tag(cls, name: str | None) -> FeedScope:
        if not name or not name.strip():
            raise ValidationFailed("Tag name is required")
        return cls("tag", name.strip().lower())

    @classmethod
    def ghost(cls, circle_id: int) -> FeedScope:
        return cls("ghost", circle_id)

    @property
    def cache_key(self) -> str | None:
        """Key under which this scope's default first page is cached."""
        if self.kind == "global":
            return GLOBAL_FEED_KEY
        if self.kind == "ghost":
            return ghost_feed_key(int(self.value))  # type: ignore[arg-type]
        return None


@dataclass
class FeedPage:
    """One page of a feed."""

    posts: list[PostResponse]
    has_more: bool


def _with_scope(stmt: Select[tuple[Post]], scope: FeedScope) -> Select[tuple[Post]]:
    if scope.kind == "global":
        return stmt.where(
            Post.college.is_(None),
            Post.area.is_(None),
            Post.ghost_circle_id.is_(None),
        )
    if scope.kind == "college":
        return stmt.where(Post.college == scope.value)
    if scope.kind == "area":
        return stmt.where(Post.area == scope.value)
    if scope.kind == "tag":
        tagged = select(PostTag.post_id).where(PostTag.tag_name == scope.value)
        return stmt.where(Post.id.in_(tagged), Post.ghost_circle_id.is_(None))
    if scope.kind == "ghost":
        return stmt.where(Post.ghost_circle_id == scope.value)
    raise ValidationFailed(f"Unknown feed scope: {scope.kind}")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored time is UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class FeedService:
    """Builds feed pages from the post table, reading through an optional cache."""

    def __init__(
        self,
        session: Session,
        cache: FeedCache | None = None,
        config: Settings | None = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.config = config or default_settings

    def effective_limit(self, limit: int | None, cap: int | None = None) -> int:
        """Clamp a requested page size to the configured cap."""
        if limit is None or limit <= 0:
            limit = self.config.feed_default_limit
        return min(limit, cap if cap is not None else self.config.feed_max_limit)

    def page(
        self,
        scope: FeedScope,
        cursor: int | None = None,
        limit: int | None = None,
        cap: int | None = None,
        now: datetime | None = None,
    ) -> FeedPage:
        """Return one page of ``scope`` below ``cursor``.

        Args:
            scope: Feed to read.
            cursor: Exclusive upper bound on post ids; None for the first page.
            limit: Requested page size; defaults to the configured default.
            cap: Maximum page size; defaults to the configured maximum.
            now: Reference time for expiry; defaults to the current UTC time.

        Returns:
            The posts in descending id order and whether another page may
            exist. ``has_more`` is true whenever the page is full, so a scope
            holding exactly ``limit`` posts reports one extra, empty page.
        """
        effective = self.effective_limit(limit, cap)
        cache_key = scope.cache_key
        cacheable = (
            self.cache is not None
            and cache_key is not None
            and cursor is None
            and effective == self.config.feed_default_limit
        )

        now = now or utcnow()
        if cacheable:
            cached = self._cached_page(cache_key, now)  # type: ignore[arg-type]
            if cached is not None:
                return FeedPage(posts=cached, has_more=len(cached) == effective)

        posts = self._query(scope, cursor, effective, now)
        page = [PostResponse.model_validate(post) for post in posts]

        if cacheable and len(page) >= self.config.feed_cache_min_rows:
            self.cache.put(  # type: ignore[union-attr]
                cache_key,  # type: ignore[arg-type]
                [item.model_dump(mode="json") for item in page],
            )

        return FeedPage(posts=page, has_more=len(page) == effective)

    def _query(
        self,
        scope: FeedScope,
        cursor: int | None,
        limit: int,
        now: datetime,
    ) -> list[Post]:
        stmt = _with_scope(live_posts(now).where(Post.is_seed.is_(False)), scope)
        if cursor is not None:
            stmt = stmt.where(Post.id < cursor)
        posts = list(self.session.scalars(self._ordered(stmt, limit)))

        # New deployments would otherwise open on an empty global feed.
        if scope.kind == "global" and cursor is None and len(posts) < limit:
            seeds = live_posts(now).where(Post.is_seed.is_(True))
            if posts:
                # Seeds stay below the last organic id so the next cursor skips nothing.
                seeds = seeds.where(Post.id < posts[-1].id)
            posts.extend(self.session.scalars(self._ordered(seeds, limit - len(posts))))

        return posts

    @staticmethod
    def _ordered(stmt: Select[tuple[Post]], limit: int) -> Select[tuple[Post]]:
        return (
            stmt.options(selectinload(Post.tag_links), selectinload(Post.likes))
            .order_by(Post.id.desc())
            .limit(limit)
        )

    def _cached_page(self, key: str, now: datetime) -> list[PostResponse] | None:
        raw: Any = self.cache.get(key)  # type: ignore[union-attr]
        if raw is None:
            return None
        if not isinstance(raw, list) or len(raw) < self.config.feed_cache_min_rows:
            logger.warning("Discarding malformed feed cache entry %s", key)
            self.cache.invalidate(key)  # type: ignore[union-attr]
            return None
        try:
            page = [PostResponse.model_validate(row) for row in raw]
        except ValidationError as exc:
            logger.warning("Discarding feed cache entry %s: %s", key, exc)
            self.cache.invalidate(key)  # type: ignore[union-attr]
            return None
        if any(_as_utc(post.expires_at) <= _as_utc(now) for post in page):
            logger.debug("Feed cache entry %s holds an expired post", key)
            self.cache.invalidate(key)  # type: ignore[union-attr]
            return None
        return page
