"""
Article metadata enrichment from the <head> of article pages.

Adapters that scrape RSS or ranking pages often leave thumbnail and summary
empty. MetaEnricher fetches each such article, reads only up to </head>, and
fills the missing fields from og:image and og:description (or the plain
description meta tag). Fields an adapter already set are never overwritten,
and any failure leaves the item unchanged.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
import httpx

from ..config import FetchConfig
from ..core.types import NewsItem
from ..sources.utils import clean_summary
from ..utils.logging import log_event
from .fetcher import DEFAULT_HEADERS

logger = logging.getLogger(__name__)

# Site-wide placeholder images that say nothing about the article.
GENERIC_IMAGE_MARKERS = ("og_image_default", "/static.news/image/news/ogtag/", "noimage", "no_image")


@dataclass(frozen=True)
class ArticleMeta:
    thumbnail: str | None = None
    description: str | None = None

    @property
    def empty(self) -> bool:
        return self.thumbnail is None and self.description is None


def is_generic_image(url: str) -> bool:
    return any(marker in url for marker in GENERIC_IMAGE_MARKERS)


def parse_head(html: str, page_url: str) -> ArticleMeta:
    """Extract og:image and the description from an HTML head fragment."""
    soup = BeautifulSoup(html, "html.parser")

    def content(**attrs: str) -> str | None:
        tag = soup.find("meta", attrs=attrs)
        value = tag.get("content") if tag is not None else None
        return value.strip() if value and value.strip() else None

    image = content(property="og:image")
    if image is not None:
        image = urljoin(page_url, image)
        if is_generic_image(image) or not image.startswith("http"):
            image = None

    description = content(property="og:description") or content(name="description")
    return ArticleMeta(thumbnail=image, description=clean_summary(description))


class MetaEnricher:
    """Fill missing thumbnails and summaries from article page metadata.

    Args:
        fetch_config: meta_timeout_seconds, meta_concurrency, meta_max_chars
            and the User-Agent are read from here
        client: Optional shared httpx.AsyncClient (the caller keeps ownership)
    """

    def __init__(self, fetch_config: FetchConfig | None = None, client: httpx.AsyncClient | None = None):
        self.fetch_config = fetch_config or FetchConfig()
        self.client = client

    async def fetch(self, url: str, client: httpx.AsyncClient | None = None) -> ArticleMeta:
        """Fetch one article's metadata; returns an empty ArticleMeta on any failure."""
        if urlparse(url).scheme not in ("http", "https"):
            return ArticleMeta()
        client = client or self.client
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True, trust_env=self.fetch_config.trust_env) as owned:
                return await self.fetch(url, owned)

        timeout = self.fetch_config.meta_timeout_seconds
        try:
            return await asyncio.wait_for(self._read_head(url, client), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("Meta fetch timed out after %ss: %s", timeout, url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Meta fetch failed for %s: %s", url, exc)
        return ArticleMeta()

    async def enrich(self, items: list[NewsItem]) -> list[NewsItem]:
        """Return items with missing thumbnail/summary filled where metadata was found.

        Order and length are preserved. Items are fetched meta_concurrency at a time.
        """
        targets = [index for index, item in enumerate(items) if item.thumbnail is None or item.summary is None]
        if not targets:
            return list(items)

        if self.client is None:
            async with httpx.AsyncClient(follow_redirects=True, trust_env=self.fetch_config.trust_env) as owned:
                return await self._enrich(items, targets, owned)
        return await self._enrich(items, targets, self.client)

    async def _enrich(self, items: list[NewsItem], targets: list[int], client: httpx.AsyncClient) -> list[NewsItem]:
        enriched = list(items)
        filled = 0
        chunk_size = max(self.fetch_config.meta_concurrency, 1)
        for start in range(0, len(targets), chunk_size):
            chunk = targets[start : start + chunk_size]
            metas = await asyncio.gather(*(self.fetch(items[index].url, client) for index in chunk))
            for index, meta in zip(chunk, metas):
                item = items[index]
                updated = replace(
                    item,
                    thumbnail=item.thumbnail or meta.thumbnail,
                    summary=item.summary or meta.description,
                )
                if updated != item:
                    enriched[index] = updated
                    filled += 1

        log_event(
            logger,
            f"Meta enrichment: {filled}/{len(targets)} items filled",
            event="meta_enrichment",
            targets=len(targets),
            filled=filled,
        )
        return enriched

    async def _read_head(self, url: str, client: httpx.AsyncClient) -> ArticleMeta:
        max_chars = self.fetch_config.meta_max_chars
        headers = {**DEFAULT_HEADERS, "User-Agent": self.fetch_config.user_agent}
        async with client.stream("GET", url, headers=headers, follow_redirects=True) as resp:
            final_url = str(resp.url)
            # Google News links that never leave google.com carry no article metadata.
            if "news.google.com" in url and "google.com" in (resp.url.host or ""):
                return ArticleMeta()
            if not resp.is_success or "html" not in resp.headers.get("content-type", ""):
                return ArticleMeta()

            head = ""
            async for chunk in resp.aiter_text():
                head += chunk
                if "</head>" in head.lower() or len(head) >= max_chars:
                    break
        return parse_head(head[:max_chars], final_url)
