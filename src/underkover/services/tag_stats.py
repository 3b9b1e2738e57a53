"""Tag statistics: post counts, trending scores and categories."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Final

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from underkover.db.time import utcnow
from underkover.models import Post, PostTag, Tag

logger = logging.getLogger(__name__)

DAILY_WEIGHT: Final[int] = 3
DAY: Final[timedelta] = timedelta(hours=24)
WEEK: Final[timedelta] = timedelta(days=7)
MONTH: Final[timedelta] = timedelta(days=30)

# First matching category wins, so the order here is part of the behaviour.
CATEGORY_KEYWORDS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("confession", ("confess", "secret", "admit", "truth", "guilt")),
    ("crush", ("crush", "love", "heart", "romantic", "dating")),
    ("controversy", ("controversy", "debate", "argue", "fight", "drama")),
    ("government", ("government", "politics", "policy", "law", "authority")),
    ("danger", ("danger", "risk", "warning", "unsafe", "threat")),
    ("lifestyle", ("lifestyle", "health", "fitness", "food", "hobby")),
    ("work", ("work", "job", "career", "office", "boss", "colleague")),
    ("relationship", ("relationship", "friend", "family", "partner", "marriage")),
)
DEFAULT_CATEGORY: Final[str] = "other"


def infer_category(tag_name: str) -> str:
    """Return the first category with a keyword contained in ``tag_name``."""
    lowered = tag_name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def display_name_for(tag_name: str) -> str:
    """Capitalise the first letter of a tag name."""
    return tag_name[:1].upper() + tag_name[1:]


def trending_score(daily_posts: int, weekly_posts: int) -> int:
    """Recency-weighted popularity: three points per post today, one per post this week."""
    return DAILY_WEIGHT * daily_posts + weekly_posts


class TagStatsService:
    """Recomputes tag rows from the posts that currently carry each tag."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _count(self, tag_name: str, now: datetime, created_since: datetime | None = None) -> int:
        stmt = (
            select(func.count())
            .select_from(PostTag)
            .join(Post, Post.id == PostTag.post_id)
            .where(
                PostTag.tag_name == tag_name,
                Post.expires_at > now,
                Post.is_seed.is_(False),
            )
        )
        if created_since is not None:
            stmt = stmt.where(Post.created_at >= created_since)
        return int(self.session.scalar(stmt) or 0)

    def _upsert(
        self,
        tag_name: str,
        post_count: int,
        score: int,
        category: str,
        now: datetime,
    ) -> Tag:
        tag = self.session.scalars(select(Tag).where(Tag.name == tag_name)).first()
        if tag is None:
            # Explicit display names (seeded tags) are kept on later updates.
            tag = Tag(name=tag_name, display_name=display_name_for(tag_name), created_at=now)
            self.session.add(tag)
        tag.post_count = post_count
        tag.trending_score = score
        tag.category = category
        tag.last_updated = now
        self.session.commit()
        return tag

    def recompute(self, tag_name: str, now: datetime | None = None) -> Tag:
        """Count live non-seed posts for ``tag_name`` and upsert its tag row.

        Args:
            tag_name: Lowercase tag name as stored on posts.
            now: Reference time; defaults to the current UTC time.

        Returns:
            The persisted tag row.

        Notes:
            Running this twice with no post changes in between stores the
            same count, score and category.
        """
        now = now or utcnow()
        post_count = self._count(tag_name, now)
        daily = self._count(tag_name, now, now - DAY)
        weekly = self._count(tag_name, now, now - WEEK)

        score = trending_score(daily, weekly)
        category = infer_category(tag_name)

        try:
            tag = self._upsert(tag_name, post_count, score, category, now)
        except IntegrityError:
            # Another writer inserted the row first; update theirs.
            self.session.rollback()
            tag = self._upsert(tag_name, post_count, score, category, now)
        logger.debug(
            "Recomputed tag %s: count=%d score=%d category=%s",
            tag_name,
            tag.post_count,
            tag.trending_score,
            tag.category,
        )
        return tag

    def recompute_all(self, now: datetime | None = None) -> int:
        """Recompute every known tag, skipping the ones that fail.

        Returns:
            The number of tags recomputed successfully.
        """
        now = now or utcnow()
        names = list(self.session.scalars(select(Tag.name).order_by(Tag.name)))
        updated = 0
        for name in names:
            try:
                self.recompute(name, now=now)
            except Exception:
                self.session.rollback()
                logger.error("Failed to recompute tag %s", name, exc_info=True)
                continue
            updated += 1
        logger.info("Recomputed %d of %d tags", updated, len(names))
        return updated

    def trending(self, limit: int, time_filter: str = "all", now: datetime | None = None) -> list[Tag]:
        """Return tags in use, highest trending score first.

        ``time_filter`` keeps tags recomputed since midnight UTC (``today``),
        in the last 7 days (``week``) or the last 30 days (``month``).
        """
        now = now or utcnow()
        stmt = select(Tag).where(Tag.post_count > 0)
        since = {
            "today": now.replace(hour=0, minute=0, second=0, microsecond=0),
            "week": now - WEEK,
            "month": now - MONTH,
        }.get(time_filter)
        if since is not None:
            stmt = stmt.where(Tag.last_updated >= since)
        stmt = stmt.order_by(Tag.trending_score.desc(), Tag.post_count.desc()).limit(limit)
        return list(self.session.scalars(stmt))

    def search(self, query: str, limit: int) -> list[Tag]:
        """Case-insensitive substring search over tag names and display names."""
        needle = query.lower()
        stmt = (
            select(Tag)
            .where(
                or_(
                    func.lower(Tag.name).contains(needle, autoescape=True),
                    func.lower(Tag.display_name).contains(needle, autoescape=True),
                ),
                Tag.post_count > 0,
            )
            .order_by(Tag.post_count.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))
