"""
Abstract contracts for news and community crawlers.

New sources should inherit from SourceCrawler (news articles) or
CommunityCrawler (board posts used as a trend signal) and implement crawl.
Sources that also serve keyword search or hot-issue keywords mix in
SearchableSource or HotIssueSource.
Crawlers may raise; the aggregator absorbs failures at its fan-out boundary
and records them against the source's health.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from ..config import FetchConfig
from ..core.types import Category, CommunityPost, CrawlMethod, NewsItem
from ..fetch import fetch_text


class _HttpCrawler:
    """Fetch plumbing shared by the concrete adapters.

    Attributes:
        fetch_config: Timeout, retry and User-Agent settings
        client: Optional shared httpx.AsyncClient (the caller keeps ownership)
        headers: Extra headers sent with every request of this adapter
    """

    headers: dict[str, str] = {}

    def __init__(self, fetch_config: FetchConfig | None = None, client: httpx.AsyncClient | None = None):
        self.fetch_config = fetch_config or FetchConfig()
        self.client = client

    async def _fetch(self, url: str, headers: dict[str, str] | None = None) -> str:
        cfg = self.fetch_config
        return await fetch_text(
            url,
            timeout=cfg.timeout_seconds,
            retries=cfg.retries,
            headers={"User-Agent": cfg.user_agent, **self.headers, **(headers or {})},
            base_delay=cfg.base_delay,
            client=self.client,
            trust_env=cfg.trust_env,
        )


class SourceCrawler(_HttpCrawler, ABC):
    """A news source producing canonical NewsItem candidates.

    Attributes:
        source: Source tag written on every item (e.g. "naver")
        display_name: Human-readable name of the source
    """

    source: str = ""
    display_name: str = ""

    @abstractmethod
    async def crawl(
        self,
        category: Category | None = None,
        limit: int = 20,
        method: CrawlMethod = CrawlMethod.PRIMARY,
    ) -> list[NewsItem]:
        """Collect up to limit items.

        Args:
            category: Category to crawl, or None for the source's headlines
            limit: Maximum number of items to return
            method: Fetch strategy recommended by the health tracker; what
                "fallback" means is up to the adapter

        Returns:
            List of NewsItem candidates (may be empty)
        """
        raise NotImplementedError


class CommunityCrawler(_HttpCrawler, ABC):
    """A discussion board whose "best of" page yields CommunityPosts."""

    source: str = ""

    @abstractmethod
    async def crawl(self, limit: int = 30) -> list[CommunityPost]:
        """Collect up to limit popular posts with extracted keywords."""
        raise NotImplementedError


class SearchableSource(ABC):
    """A source that can answer free-text keyword searches."""

    @abstractmethod
    async def search(self, keyword: str, limit: int = 100) -> list[NewsItem]:
        """Return up to limit items matching keyword, in the source's relevance order."""
        raise NotImplementedError


class HotIssueSource(ABC):
    """A source that publishes a list of currently hot keywords."""

    @abstractmethod
    async def hot_issues(self) -> list[str]:
        """Return the hot keywords, most prominent first, without duplicates."""
        raise NotImplementedError
