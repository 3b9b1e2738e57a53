# src/underkover/models/__init__.py
"""SQLAlchemy models for the Underkover application."""

from .ghost_circle import GhostCircle, GhostCircleMember
from .post import Post, PostLike, PostTag
from .tag import TAG_CATEGORIES, Tag
from .user import User

__all__ = [
    "GhostCircle", "GhostCircleMember",
    "Post", "PostLike", "PostTag",
    "TAG_CATEGORIES", "Tag",
    "User",
]
