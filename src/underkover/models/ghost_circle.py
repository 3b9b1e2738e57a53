# src/underkover/models/ghost_circle.py
"""Models for private, time-bounded ghost circles."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from underkover.db.session import Base
from underkover.db.time import utcnow


class GhostCircle(Base):
    """Private group scope; posts inside inherit the circle's expiry."""

    __tablename__ = "ghost_circle"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    creator_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class GhostCircleMember(Base):
    """Join table mapping users into ghost circles."""

    __tablename__ = "ghost_circle_member"

    circle_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ghost_circle.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # No timestamps; presence implies membership.
