# src/underkover/services/__init__.py
"""Business logic services for the Underkover application."""

from .comment_tree import CommentNode, CommentTreeService
from .feed import FeedPage, FeedScope, FeedService
from .feed_cache import InMemoryFeedCache, NullFeedCache, RedisFeedCache, build_feed_cache
from .posts import PostService
from .tag_dispatch import TagStatsDispatcher, TagSweepWorker
from .tag_stats import TagStatsService

__all__ = [
    "CommentNode",
    "CommentTreeService",
    "FeedPage",
    "FeedScope",
    "FeedService",
    "InMemoryFeedCache",
    "NullFeedCache",
    "RedisFeedCache",
    "build_feed_cache",
    "PostService",
    "TagStatsDispatcher",
    "TagSweepWorker",
    "TagStatsService",
]
