# src/underkover/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    comments_router,
    ghost_circles_router,
    posts_router,
    tags_router,
)

__all__ = [
    "posts_router",
    "comments_router",
    "tags_router",
    "ghost_circles_router",
]
