"""Tests for the aggregator response and item caches."""

from __future__ import annotations

from datetime import datetime, timezone

from trendwire.cache import ItemCache, TTLCache
from trendwire.core.types import Category, NewsItem


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _item(n: int) -> NewsItem:
    return NewsItem(
        id=f"n_{n}",
        title=f"기사 {n}",
        url=f"https://news.example.com/{n}",
        source="naver",
        source_name="연합뉴스",
        category=Category.SOCIETY,
        published_at=datetime(2025, 1, 15, tzinfo=timezone.utc),
    )


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set("trending", ["a"])

    clock.now += 59
    assert cache.get("trending") == ["a"]

    clock.now += 1
    assert cache.get("trending") is None
    assert len(cache) == 0


def test_ttl_cache_disabled_with_zero_ttl():
    cache = TTLCache(ttl_seconds=0)
    cache.set("trending", ["a"])

    assert cache.get("trending") is None


def test_item_cache_evicts_oldest_batch():
    cache = ItemCache(max_items=5, evict_count=2)
    cache.add_many([_item(n) for n in range(6)])

    assert len(cache) == 4
    assert cache.get("n_0") is None
    assert cache.get("n_1") is None
    assert cache.get("n_5").title == "기사 5"


def test_ttl_cache_drops_expired_entries_on_write():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)

    for n in range(1000):
        cache.set(f"search:{n}", [n])
        clock.now += 61

    assert len(cache) == 1
    assert cache.get("search:999") == [999]


def test_ttl_cache_per_entry_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set("search:금리", ["a"], ttl_seconds=30)
    cache.set("trending", ["b"])

    clock.now += 31
    assert cache.get("search:금리") is None
    assert cache.get("trending") == ["b"]


def test_item_cache_never_exceeds_max_items():
    cache = ItemCache(max_items=5, evict_count=2)
    cache.add_many([_item(n) for n in range(12)])

    assert len(cache) == 5
    assert cache.get("n_6") is None
    assert [cache.get(f"n_{n}").title for n in range(7, 12)] == [f"기사 {n}" for n in range(7, 12)]
