"""
Aggregation orchestrator for the trending, latest-news and search paths.

The trending and latest paths fan out crawlers concurrently under a deadline.
A crawler that raises, or is still running when the deadline passes,
contributes nothing; the orchestrator itself never raises because of a
source. Each round records one crawl log entry per dispatched source with the
health tracker, timed over that source's own branches, and sources the
tracker reports as skipped are not dispatched at all.

The search path reads a keyword feed from the searchable source and related
keywords from the hot-issue source concurrently, each under its own deadline.
A failed or late feed yields no results; late or failed suggestions fall back
to keyword variations. Search does not touch crawl health.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable

from .cache import ItemCache, TTLCache
from .config import AggregateConfig, DedupConfig
from .core.dedup import dedup_by_title, dedup_by_url, process_news_items
from .core.scoring import cluster_by_topic, score_trending
from .core.types import (
    Category,
    CommunityPost,
    CrawlMethod,
    NewsItem,
    NewsPage,
    SearchResult,
    TrendingResult,
    utcnow,
)
from .health import CrawlHealthTracker, elapsed_ms
from .llm.tracing import set_span_output, start_span
from .sources.base import CommunityCrawler, HotIssueSource, SearchableSource, SourceCrawler
from .utils.deadline import Settled, settle_all, with_deadline
from .utils.logging import log_event

logger = logging.getLogger(__name__)

# Categories without a dedicated section are crawled through related ones and
# filtered afterwards.
CRAWL_FALLBACK: dict[Category, list[Category]] = {
    Category.INCIDENT: [Category.SOCIETY, Category.POLITICS],
    Category.OTHER: [Category.SOCIETY, Category.ECONOMY],
}


def target_categories(category: Category | None, default: list[Category]) -> list[Category]:
    if category is None:
        return list(default)
    return list(CRAWL_FALLBACK.get(category, [category]))


def paginate(items: list[NewsItem], page: int, limit: int) -> tuple[list[NewsItem], bool]:
    """Slice one page; returns (page items, has_more)."""
    page = max(page, 1)
    offset = (page - 1) * limit
    return items[offset : offset + limit], offset + limit < len(items)


SEARCH_SORTS = ("relevance", "latest")


def suggestion_fallback(keyword: str, timed_out: bool) -> list[str]:
    """Keyword variations offered when hot issues are unavailable."""
    variations = [f"{keyword} 최신", f"{keyword} 원인"]
    return variations if timed_out else [*variations, f"{keyword} 오늘"]


class NewsAggregator:
    """Merge, deduplicate and rank items from all configured crawlers.

    Args:
        sources: News source crawlers
        communities: Community board crawlers (trending path only)
        health: Crawl health tracker shared across rounds
        config: Deadlines, limits and cache settings
        dedup: Near-duplicate thresholds for each path
        cache: Response cache (defaults to a TTLCache with config.cache_ttl_seconds)
        searcher: Source answering keyword searches (defaults to the first
            SearchableSource among sources)
        issues: Source of hot keywords for suggestions (defaults to the first
            HotIssueSource among sources)
    """

    def __init__(
        self,
        sources: list[SourceCrawler],
        communities: list[CommunityCrawler] | None = None,
        health: CrawlHealthTracker | None = None,
        config: AggregateConfig | None = None,
        dedup: DedupConfig | None = None,
        cache: TTLCache | None = None,
        searcher: SearchableSource | None = None,
        issues: HotIssueSource | None = None,
    ):
        self.sources = sources
        self.communities = communities or []
        self.health = health or CrawlHealthTracker()
        self.config = config or AggregateConfig()
        self.dedup = dedup or DedupConfig()
        self.cache = cache if cache is not None else TTLCache(self.config.cache_ttl_seconds)
        self.items = ItemCache(self.config.item_cache_max)
        self.searcher = searcher or next((s for s in sources if isinstance(s, SearchableSource)), None)
        self.issues = issues or next((s for s in sources if isinstance(s, HotIssueSource)), None)

    async def trending(self) -> TrendingResult:
        """Collect headlines from every source and rank them by community buzz."""
        cached = self.cache.get("trending")
        if cached is not None:
            return cached

        cfg = self.config
        with start_span("aggregate.trending", kind="chain") as span:
            raw = await self._crawl_sources([None], cfg.trending_per_source)
            posts = await self._crawl_communities()

            unique = process_news_items(raw, self.dedup.aggregate_threshold)
            candidates = dedup_by_title(unique, self.dedup.trending_threshold)
            ranked = score_trending(candidates, posts, min_score=0, limit=cfg.trending_limit)
            set_span_output(span, {"raw": len(raw), "posts": len(posts), "ranked": len(ranked)})

        log_event(
            logger,
            f"Trending: {len(raw)} raw, {len(unique)} unique, {len(posts)} posts, {len(ranked)} ranked",
            event="trending",
            raw=len(raw),
            unique=len(unique),
            posts=len(posts),
            ranked=len(ranked),
        )
        self.items.add_many(ranked)
        result = TrendingResult(items=ranked, updated_at=utcnow())
        self.cache.set("trending", result)
        return result

    async def latest(self, category: Category | None = None, page: int = 1, limit: int = 10) -> NewsPage:
        """Collect recent items for a category (or the default set) and paginate."""
        key = f"latest:{category.value if category else 'all'}:{page}:{limit}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        cfg = self.config
        default = [Category(value) for value in cfg.default_categories]
        with start_span(
            "aggregate.latest",
            kind="chain",
            attributes={"category": category.value if category else None, "page": page},
        ) as span:
            raw = await self._crawl_sources(target_categories(category, default), cfg.latest_per_category)
            items = process_news_items(raw, self.dedup.aggregate_threshold)
            if category is not None:
                items = [item for item in items if item.category is category]
            page_items, has_more = paginate(items, page, limit)
            set_span_output(span, {"raw": len(raw), "total": len(items)})

        self.items.add_many(items)
        result = NewsPage(items=page_items, total=len(items), page=page, has_more=has_more, updated_at=utcnow())
        self.cache.set(key, result)
        return result

    async def search(self, keyword: str, sort: str = "relevance", page: int = 1, limit: int = 10) -> SearchResult:
        """Search news for a keyword and group one page of results into clusters.

        Args:
            keyword: Free-text keyword; blank keywords return an empty result
            sort: "relevance" keeps the feed's order, "latest" puts the newest first
            page: 1-based page number
            limit: Items per page, before clustering

        Returns:
            SearchResult whose total counts every deduplicated item

        Raises:
            ValueError: If sort is not one of SEARCH_SORTS
        """
        if sort not in SEARCH_SORTS:
            raise ValueError(f"Unknown sort {sort!r}; expected one of {', '.join(SEARCH_SORTS)}")
        keyword = keyword.strip()
        if not keyword:
            return SearchResult(keyword=keyword, total=0, clusters=[], suggestions=[], page=page)

        key = f"search:{keyword}:{sort}:{page}:{limit}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        cfg = self.config
        with start_span(
            "aggregate.search",
            kind="chain",
            attributes={"keyword": keyword, "sort": sort, "page": page},
        ) as span:
            raw, suggestions = await asyncio.gather(self._search_feed(keyword), self._suggestions(keyword))
            items = dedup_by_title(dedup_by_url(raw), self.dedup.aggregate_threshold)
            if sort == "latest":
                items.sort(key=lambda item: item.published_at, reverse=True)
            page_items, has_more = paginate(items, page, limit)
            clusters = cluster_by_topic(page_items, keyword)
            set_span_output(span, {"raw": len(raw), "total": len(items), "clusters": len(clusters)})

        log_event(
            logger,
            f"Search {keyword!r}: {len(raw)} raw, {len(items)} unique, {len(clusters)} clusters",
            event="search",
            keyword=keyword,
            raw=len(raw),
            unique=len(items),
            clusters=len(clusters),
        )
        self.items.add_many(items)
        result = SearchResult(
            keyword=keyword,
            total=len(items),
            clusters=clusters,
            suggestions=suggestions,
            page=page,
            has_more=has_more,
            updated_at=utcnow(),
        )
        self.cache.set(key, result, cfg.search_cache_ttl_seconds)
        return result

    def get_cached_item(self, item_id: str) -> NewsItem | None:
        """Look up an item served by a recent trending, latest or search call."""
        return self.items.get(item_id)

    async def _search_feed(self, keyword: str) -> list[NewsItem]:
        if self.searcher is None:
            logger.warning("No searchable source configured; search returns nothing")
            return []
        cfg = self.config
        try:
            items = await with_deadline(self.searcher.search(keyword, cfg.search_limit), cfg.search_deadline_seconds, None)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Search feed failed for %r: %s: %s", keyword, type(exc).__name__, exc)
            return []
        if items is None:
            logger.warning("Search feed timed out after %ss for %r", cfg.search_deadline_seconds, keyword)
            return []
        return items

    async def _suggestions(self, keyword: str) -> list[str]:
        if self.issues is None:
            return []
        cfg = self.config
        try:
            issues = await with_deadline(self.issues.hot_issues(), cfg.suggestion_deadline_seconds, None)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Hot issues unavailable: %s", exc)
            return suggestion_fallback(keyword, timed_out=False)
        if issues is None:
            return suggestion_fallback(keyword, timed_out=True)
        return [issue for issue in issues if issue != keyword][: cfg.max_suggestions]

    async def _crawl_sources(self, categories: list[Category | None], limit: int) -> list[NewsItem]:
        """Crawl every active source once per category under the news deadline."""
        methods: dict[int, CrawlMethod] = {}
        durations: dict[int, int] = {}
        operations: dict[tuple[int, int], Awaitable[list[NewsItem]]] = {}

        for s_index, source in enumerate(self.sources):
            if self.health.is_skipped(source.source):
                self.health.note_skipped(source.source)
                log_event(logger, f"Skipping source {source.source}", event="source_skipped_round", source=source.source)
                continue
            methods[s_index] = self.health.recommended_method(source.source)
            for c_index, category in enumerate(categories):
                crawl = source.crawl(category, limit, methods[s_index])
                operations[(s_index, c_index)] = _timed(crawl, durations, s_index)

        outcomes = await settle_all(operations, self.config.news_deadline_seconds)

        merged: list[NewsItem] = []
        for s_index, method in methods.items():
            name = self.sources[s_index].source
            results = [outcomes[(s_index, c_index)] for c_index in range(len(categories))]
            collected, failed = self._absorb(name, results, merged)
            self.health.record(name, collected, failed, method, durations.get(s_index, 0))
        return merged

    def _absorb(self, name: str, results: list[Settled], merged: list[NewsItem]) -> tuple[int, int]:
        collected = 0
        failed = 0
        for outcome in results:
            if outcome.timed_out:
                failed += 1
                logger.warning("Source %s timed out after %ss", name, self.config.news_deadline_seconds)
            elif outcome.error is not None:
                failed += 1
                logger.warning("Source %s failed: %s: %s", name, type(outcome.error).__name__, outcome.error)
            else:
                items = outcome.value or []
                collected += len(items)
                merged.extend(items)
        return collected, failed

    async def _crawl_communities(self) -> list[CommunityPost]:
        if not self.communities:
            return []
        cfg = self.config
        operations = {
            index: crawler.crawl(cfg.community_limit) for index, crawler in enumerate(self.communities)
        }
        outcomes = await settle_all(operations, cfg.community_deadline_seconds)

        posts: list[CommunityPost] = []
        for index, crawler in enumerate(self.communities):
            outcome = outcomes[index]
            if outcome.timed_out:
                logger.warning("Community %s timed out after %ss", crawler.source, cfg.community_deadline_seconds)
            elif outcome.error is not None:
                logger.warning("Community %s failed: %s", crawler.source, outcome.error)
            else:
                posts.extend(outcome.value or [])
        return posts


async def _timed(operation: Awaitable[list[NewsItem]], durations: dict[int, int], key: int) -> list[NewsItem]:
    """Await a crawl branch, keeping the longest branch time per source in durations."""
    started = time.perf_counter()
    try:
        return await operation
    finally:
        durations[key] = max(durations.get(key, 0), elapsed_ms(started))
