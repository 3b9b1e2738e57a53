"""Cache for the first page of the global and ghost-circle feeds.

The cache is derived state: every entry can be rebuilt by re-running the
feed query, so any backend failure degrades to a cache miss.
"""

from __future__ import annotations

import json
import logging
import time
from threading import Lock
from typing import Any, Protocol

import redis

from underkover.core.settings import Settings

logger = logging.getLogger(__name__)

GLOBAL_FEED_KEY = "feed:global"

Rows = list[dict[str, Any]]


def ghost_feed_key(circle_id: int) -> str:
    return f"feed:ghost:{circle_id}"


class FeedCache(Protocol):
    """Key/value store for serialized feed pages."""

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, rows: Rows, ttl_seconds: int | None = None) -> None: ...

    def invalidate(self, key: str) -> None: ...


class NullFeedCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Any | None:
        return None

    def put(self, key: str, rows: Rows, ttl_seconds: int | None = None) -> None:
        return None

    def invalidate(self, key: str) -> None:
        return None

    def close(self) -> None:
        return None


class InMemoryFeedCache:
    """Process-local cache with per-entry expiry."""

    def __init__(self, ttl_seconds: int) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: dict[str, tuple[float, Rows]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expiry, rows = entry
            if expiry <= now:
                self._entries.pop(key, None)
                return None
            return rows

    def put(self, key: str, rows: Rows, ttl_seconds: int | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, list(rows))

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def close(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisFeedCache:
    """Redis-backed cache storing pages as JSON with an expiry."""

    def __init__(self, client: redis.Redis, ttl_seconds: int) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> RedisFeedCache:
        return cls(redis.from_url(url), ttl_seconds)  # type: ignore[no-untyped-call]

    def get(self, key: str) -> Any | None:
        try:
            raw = self._redis.get(key)
        except redis.RedisError as exc:
            logger.warning("Feed cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Feed cache entry %s is not valid JSON: %s", key, exc)
            self.invalidate(key)
            return None

    def put(self, key: str, rows: Rows, ttl_seconds: int | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        try:
            self._redis.set(key, json.dumps(rows), ex=int(ttl))
        except redis.RedisError as exc:
            logger.warning("Feed cache write failed for %s: %s", key, exc)

    def invalidate(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as exc:
            logger.warning("Feed cache invalidation failed for %s: %s", key, exc)

    def close(self) -> None:
        try:
            self._redis.close()
        except redis.RedisError as exc:  # pragma: no cover - best effort
            logger.debug("Error closing feed cache client: %s", exc)


def build_feed_cache(settings: Settings) -> NullFeedCache | InMemoryFeedCache | RedisFeedCache:
    """Construct the configured feed cache backend."""
    if settings.feed_cache_backend == "redis":
        return RedisFeedCache.from_url(settings.redis_url, settings.feed_cache_ttl_seconds)
    if settings.feed_cache_backend == "memory":
        return InMemoryFeedCache(settings.feed_cache_ttl_seconds)
    return NullFeedCache()


def cache_key_for_post(ghost_circle_id: int | None) -> str:
    """Key of the cached first page a post in this scope can appear on."""
    if ghost_circle_id is not None:
        return ghost_feed_key(ghost_circle_id)
    return GLOBAL_FEED_KEY
