# src/underkover/models/post.py
"""SQLAlchemy models for posts, their likes and their tag links."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from underkover.db.session import Base
from underkover.db.time import utcnow


class Post(Base):
    """Ephemeral post.

    The integer primary key is allocated in increasing order and doubles as
    the feed cursor. Comments and their replies are embedded as one JSON
    tree and rewritten as a whole; ``version_id`` guards those rewrites.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_expires_at", "expires_at"),
        Index("ix_post_college_id", "college", "id"),
        Index("ix_post_area_id", "area", "id"),
        Index("ix_post_ghost_circle_id", "ghost_circle_id", "id"),
        Index("ix_post_is_seed_id", "is_seed", "id"),
        Index("ix_post_author_id", "author_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Seed posts are editorial filler and have no author.
    author_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    videos: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Snapshot of the author's anonymous identity at creation time.
    anonymous_alias: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_emoji: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # At most one scope is set; none of them means the global feed.
    college: Mapped[str | None] = mapped_column(Text, nullable=True)
    area: Mapped[str | None] = mapped_column(Text, nullable=True)
    ghost_circle_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("ghost_circle.id", ondelete="CASCADE"),
        nullable=True,
    )

    comments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_seed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    tag_links: Mapped[list[PostTag]] = relationship(
        "PostTag",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostTag.position",
    )
    likes: Mapped[list[PostLike]] = relationship(
        "PostLike",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostLike.created_at",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def tags(self) -> list[str]:
        """Return tag names in insertion order."""
        return [link.tag_name for link in self.tag_links]

    def set_tags(self, names: Iterable[str]) -> None:
        """Replace the tag links, reusing rows for names that stay."""
        existing = {link.tag_name: link for link in self.tag_links}
        links: list[PostTag] = []
        for position, name in enumerate(names):
            link = existing.pop(name, None)
            if link is None:
                link = PostTag(tag_name=name)
            link.position = position
            links.append(link)
        self.tag_links = links

    @property
    def like_count(self) -> int:
        return len(self.likes)


class PostTag(Base):
    """Link between a post and a lowercase tag name."""

    __tablename__ = "post_tag"
    __table_args__ = (Index("ix_post_tag_tag_name_post_id", "tag_name", "post_id"),)

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_name: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    post: Mapped[Post] = relationship("Post", back_populates="tag_links")


class PostLike(Base):
    """Per-user like on a post.

    The composite primary key prevents duplicate likes from the same user;
    unliking deletes the row.
    """

    __tablename__ = "post_like"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    anonymous_alias: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship("Post", back_populates="likes")
