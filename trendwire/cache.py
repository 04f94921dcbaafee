"""
In-process caches for the aggregation orchestrator.

This module provides two small caches:
- TTLCache: short-lived response cache keyed by request shape
- ItemCache: bounded id -> NewsItem map for detail lookups
"""

from __future__ import annotations

import time
from typing import Any, Callable

from .core.types import NewsItem


class TTLCache:
    """Key/value cache whose entries expire after a fixed lifetime.

    Attributes:
        ttl_seconds: Lifetime of each entry; 0 or less disables the cache
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store value under key; ttl_seconds overrides the cache-wide lifetime."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if self.ttl_seconds <= 0 or ttl <= 0:
            return
        now = self.clock()
        self.prune(now)
        self._entries[key] = (now + ttl, value)

    def prune(self, now: float | None = None) -> int:
        """Drop every expired entry; returns how many were dropped."""
        now = self.clock() if now is None else now
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ItemCache:
    """Bounded cache of recently served items, keyed by item id.

    When the cache grows past max_items, the oldest insertions are dropped:
    at least evict_count of them, and always enough to get back to max_items.
    """

    def __init__(self, max_items: int = 500, evict_count: int = 100):
        self.max_items = max_items
        self.evict_count = evict_count
        self._items: dict[str, NewsItem] = {}

    def add_many(self, items: list[NewsItem]) -> None:
        for item in items:
            self._items[item.id] = item
        overflow = len(self._items) - self.max_items
        if overflow > 0:
            for key in list(self._items)[: max(self.evict_count, overflow)]:
                del self._items[key]

    def get(self, item_id: str) -> NewsItem | None:
        return self._items.get(item_id)

    def __len__(self) -> int:
        return len(self._items)
