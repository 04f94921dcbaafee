"""Google News (Korea) RSS adapter."""

from __future__ import annotations

import logging
from urllib.parse import quote

from bs4 import BeautifulSoup
import feedparser

from ..core.dedup import stable_id
from ..core.types import Category, CrawlMethod, NewsItem, utcnow
from ..errors import SourceError
from .base import SearchableSource, SourceCrawler
from .utils import clean_summary, guess_category, to_datetime

logger = logging.getLogger(__name__)

RSS_BASE = "https://news.google.com/rss"
LOCALE = "hl=ko&gl=KR&ceid=KR:ko"

HEADLINES_FEED = f"{RSS_BASE}?{LOCALE}"

TOPIC_FEEDS: dict[Category, str] = {
    Category.ECONOMY: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGx6TVdZU0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
    Category.SOCIETY: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGRqTVhZU0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
    Category.POLITICS: f"{RSS_BASE}/topics/CAAqIQgKIhtDQkFTRGdvSUwyMHZNRFZ4ZERBU0FtdHZLQUFQAQ?{LOCALE}",
    Category.SCIENCE: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGRqTVhZU0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
    Category.SPORTS: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNR1ptZDNZU0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
    Category.ENTERTAINMENT: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNREpxYW5RU0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
    Category.WORLD: f"{RSS_BASE}/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGx1YlY4U0FtdHZHZ0pMVWlnQVAB?{LOCALE}",
}

SEARCH_TERMS: dict[Category, str] = {
    Category.ECONOMY: "경제",
    Category.INCIDENT: "사건 사고",
    Category.SOCIETY: "사회",
    Category.POLITICS: "정치",
    Category.WORLD: "국제",
    Category.SCIENCE: "IT 과학",
    Category.ENTERTAINMENT: "연예",
    Category.SPORTS: "스포츠",
    Category.OTHER: "뉴스",
}


def search_feed(term: str) -> str:
    return f"{RSS_BASE}/search?q={quote(term)}&{LOCALE}"


def feed_url(category: Category | None, method: CrawlMethod) -> str:
    """Pick the feed for a category.

    The primary method reads curated topic feeds; the fallback method (and
    categories without a topic feed) uses the keyword search feed.
    """
    if category is None:
        return HEADLINES_FEED if method is CrawlMethod.PRIMARY else search_feed(SEARCH_TERMS[Category.OTHER])
    if method is CrawlMethod.PRIMARY and category in TOPIC_FEEDS:
        return TOPIC_FEEDS[category]
    return search_feed(SEARCH_TERMS[category])


def _thumbnail(entry: dict) -> str | None:
    for key in ("media_thumbnail", "media_content"):
        media = entry.get(key) or []
        if media and media[0].get("url"):
            return media[0]["url"]
    return None


def parse_feed(
    xml: str,
    category: Category | None,
    limit: int,
    source: str = "google",
    default_name: str = "구글뉴스",
) -> list[NewsItem]:
    """Parse RSS XML into NewsItems.

    Args:
        xml: RSS document text
        category: Category to stamp on every item, or None to guess from the title
        limit: Maximum number of items
        source: Source tag written on the items
        default_name: Publisher name used when an entry has no <source>

    Returns:
        List of NewsItem

    Raises:
        SourceError: If the document is not a feed at all
    """
    parsed = feedparser.parse(xml)
    if parsed.bozo and not parsed.entries:
        raise SourceError(f"Unparseable feed: {parsed.get('bozo_exception')}")

    items: list[NewsItem] = []
    collected_at = utcnow()
    for entry in parsed.entries[:limit]:
        title = (entry.get("title") or "").strip()
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue
        description = entry.get("summary") or ""
        if description:
            description = BeautifulSoup(description, "html.parser").get_text(" ", strip=True)
        publisher = (entry.get("source") or {}).get("title") or default_name
        items.append(
            NewsItem(
                id=stable_id(link, "g"),
                title=title,
                url=link,
                source=source,
                source_name=publisher,
                category=category or guess_category(title),
                published_at=to_datetime(entry.get("published") or entry.get("updated")),
                collected_at=collected_at,
                summary=clean_summary(description),
                thumbnail=_thumbnail(entry),
            )
        )
    return items


class GoogleNewsCrawler(SourceCrawler, SearchableSource):
    """Google News RSS: topic feeds by default, keyword search feeds as fallback and for search."""

    source = "google"
    display_name = "구글뉴스"

    async def crawl(
        self,
        category: Category | None = None,
        limit: int = 20,
        method: CrawlMethod = CrawlMethod.PRIMARY,
    ) -> list[NewsItem]:
        url = feed_url(category, method)
        xml = await self._fetch(url)
        items = parse_feed(xml, category, limit, source=self.source, default_name=self.display_name)
        logger.debug("Google News %s (%s): %d items", category.value if category else "headlines", method.value, len(items))
        return items

    async def search(self, keyword: str, limit: int = 100) -> list[NewsItem]:
        """Read the keyword search feed; categories are guessed from titles."""
        xml = await self._fetch(search_feed(keyword))
        return parse_feed(xml, None, limit, source=self.source, default_name=self.display_name)
