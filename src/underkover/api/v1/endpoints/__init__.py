# src/underkover/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .comments import router as comments_router
from .ghost_circles import router as ghost_circles_router
from .posts import router as posts_router
from .tags import router as tags_router

__all__ = [
    "posts_router",
    "comments_router",
    "tags_router",
    "ghost_circles_router",
]
