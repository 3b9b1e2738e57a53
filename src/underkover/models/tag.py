# src/underkover/models/tag.py
"""SQLAlchemy model for tag statistics rows."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from underkover.db.session import Base
from underkover.db.time import utcnow

TAG_CATEGORIES = (
    "confession",
    "crush",
    "controversy",
    "government",
    "danger",
    "lifestyle",
    "work",
    "relationship",
    "other",
)


class Tag(Base):
    """Per-tag counters, keyed by the lowercase tag name used on posts.

    Rows are upserted by the tag statistics engine the first time a post
    uses a name; they never need to exist beforehand.
    """

    __tablename__ = "tag"
    __table_args__ = (
        Index("ix_tag_trending_score", "trending_score"),
        Index("ix_tag_post_count", "post_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    post_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trending_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str] = mapped_column(Text, nullable=False, default="other")
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
