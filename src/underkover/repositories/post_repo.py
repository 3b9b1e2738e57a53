"""Data access helpers for working with posts."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, exists, select
from sqlalchemy.orm import Session

from underkover.db.time import utcnow
from underkover.models import GhostCircleMember, Post

__all__ = ["PostRepository", "live_posts"]


def live_posts(now: datetime) -> Select[tuple[Post]]:
    """Return a select over posts that have not expired at ``now``."""
    return select(Post).where(Post.expires_at > now)


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_live(self, post_id: int, now: datetime | None = None) -> Post | None:
        """Return a non-expired post by identifier."""
        stmt = live_posts(now or utcnow()).where(Post.id == post_id)
        return self.session.scalars(stmt).first()

    def list_for_author(self, author_id: int, limit: int, now: datetime | None = None) -> list[Post]:
        """Return an author's live posts outside ghost circles, newest first."""
        stmt = (
            live_posts(now or utcnow())
            .where(Post.author_id == author_id, Post.ghost_circle_id.is_(None))
            .order_by(Post.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def is_circle_member(self, circle_id: int, user_id: int) -> bool:
        """Return True if ``user_id`` belongs to the ghost circle."""
        stmt = select(
            exists().where(
                GhostCircleMember.circle_id == circle_id,
                GhostCircleMember.user_id == user_id,
            )
        )
        return bool(self.session.scalar(stmt))
