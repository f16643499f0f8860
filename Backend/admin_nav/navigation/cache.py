"""
Navigation Cache

Time-boxed in-memory cache for built navigation trees, keyed by
(store_id, query_shape). Entries expire passively after the TTL and are
dropped explicitly when navigation data is written.

A TTL of 0 disables caching, so every request rebuilds its tree.

For multiple API workers each process keeps its own cache; writes made
through another worker are only seen after the TTL elapses.

Usage:
    cache = NavigationCache(ttl_seconds=300)
    service = NavigationService(..., cache=cache)
    cache.clear_store("store-1")
"""

import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Hashable]


class NavigationCache:
    """In-memory TTL cache with periodic sweeping of expired entries."""

    def __init__(
        self,
        ttl_seconds: float = 0,
        cleanup_interval: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        # Structure: {(store_id, query_shape): (expires_at, value)}
        self._entries: Dict[CacheKey, Tuple[float, Any]] = {}
        self._last_cleanup = clock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def __len__(self) -> int:
        return len(self._entries)

    def _cleanup_expired(self) -> None:
        now = self._clock()
        if now - self._last_cleanup < self.cleanup_interval:
            return

        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

        self._last_cleanup = now
        logger.debug(f"Navigation cache cleanup: {len(expired)} expired, {len(self._entries)} kept")

    def get(self, store_id: str, query_shape: Hashable) -> Optional[Any]:
        if not self.enabled:
            return None
        self._cleanup_expired()

        entry = self._entries.get((store_id, query_shape))
        if entry is None:
            return None

        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[(store_id, query_shape)]
            return None
        return value

    def set(self, store_id: str, query_shape: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        self._cleanup_expired()
        self._entries[(store_id, query_shape)] = (self._clock() + self.ttl_seconds, value)

    def clear_store(self, store_id: str) -> int:
        """Drop every entry for one store. Returns the number of entries removed."""
        keys = [key for key in self._entries if key[0] == store_id]
        for key in keys:
            del self._entries[key]
        if keys:
            logger.debug(f"Navigation cache cleared for store {store_id}: {len(keys)} entries")
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
