"""
Naver News HTML adapter.

The primary method scrapes the per-category section pages, which carry
thumbnails and ledes. The fallback method scrapes the daily ranking page
and keeps the items whose guessed category matches the request.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re

from bs4 import BeautifulSoup

from ..core.dedup import stable_id
from ..core.types import Category, CrawlMethod, NewsItem, utcnow
from .base import SourceCrawler
from .utils import absolute_url, category_for, clean_summary, guess_category, to_datetime

logger = logging.getLogger(__name__)

BASE_URL = "https://news.naver.com"
RANKING_URL = f"{BASE_URL}/main/ranking/popularDay.naver"

SECTION_IDS: dict[Category, str] = {
    Category.POLITICS: "100",
    Category.ECONOMY: "101",
    Category.SOCIETY: "102",
    Category.WORLD: "104",
    Category.SCIENCE: "105",
    Category.ENTERTAINMENT: "106",
    Category.SPORTS: "107",
}

# Sections crawled for the headline (category-less) request.
HEADLINE_SECTIONS = [Category.ECONOMY, Category.SOCIETY, Category.POLITICS, Category.SCIENCE]

_IMAGE_SIZE_RE = re.compile(r"\?type=.*$")


def section_url(category: Category) -> str:
    return f"{BASE_URL}/section/{SECTION_IDS.get(category, SECTION_IDS[Category.SOCIETY])}"


def _image_url(tag) -> str | None:
    img = tag.select_one("img")
    if img is None:
        return None
    src = img.get("data-src") or img.get("src") or ""
    if src.startswith("//"):
        src = f"https:{src}"
    if "pstatic.net" in src and "?type=" in src:
        src = _IMAGE_SIZE_RE.sub("?type=w647", src)
    return src if src.startswith("http") else None


def parse_section(html: str, limit: int, section: Category | None = None) -> list[NewsItem]:
    """Parse a section page (.sa_item cards) into NewsItems.

    Categories are guessed from titles; a title with no telling keyword takes
    the category of the section it was listed in.
    """
    soup = BeautifulSoup(html, "html.parser")
    items: list[NewsItem] = []
    collected_at = utcnow()

    for card in soup.select(".sa_item"):
        if len(items) >= limit:
            break
        title_el = card.select_one(".sa_text_title")
        if title_el is None:
            continue
        title = title_el.get_text(strip=True)
        link_el = card.select_one("a.sa_thumb_link") or title_el.find_parent("a")
        link = link_el.get("href") if link_el is not None else None
        if not title or not link or len(title) < 4:
            continue

        press = card.select_one(".sa_text_press")
        date_el = card.select_one(".sa_text_datetime_bullet")
        lede = card.select_one(".sa_text_lede, .sa_desc, .lede")
        items.append(
            NewsItem(
                id=stable_id(link, "n"),
                title=title,
                url=link,
                source="naver",
                source_name=(press.get_text(strip=True) if press else "") or "네이버뉴스",
                category=category_for(title, section),
                published_at=to_datetime(date_el.get_text(strip=True) if date_el else None),
                collected_at=collected_at,
                summary=clean_summary(lede.get_text(" ", strip=True) if lede else None),
                thumbnail=_image_url(card),
            )
        )
    return items


def parse_ranking(html: str, limit: int) -> list[NewsItem]:
    """Parse the daily ranking page into NewsItems."""
    soup = BeautifulSoup(html, "html.parser")
    items: list[NewsItem] = []
    collected_at = utcnow()

    for row in soup.select("li.rankingnews_list_item, .ct_li"):
        if len(items) >= limit:
            break
        anchor = row.select_one("a")
        if anchor is None:
            continue
        title = anchor.get_text(strip=True)
        href = anchor.get("href") or ""
        if not title or not href:
            continue
        url = absolute_url(href, BASE_URL)
        press = row.select_one(".press, .info_group em")
        items.append(
            NewsItem(
                id=stable_id(url, "n"),
                title=title,
                url=url,
                source="naver",
                source_name=(press.get_text(strip=True) if press else "") or "네이버뉴스",
                category=guess_category(title),
                published_at=collected_at,
                collected_at=collected_at,
                thumbnail=_image_url(row),
            )
        )
    return items


class NaverNewsCrawler(SourceCrawler):
    source = "naver"
    display_name = "네이버뉴스"
    headers = {"Referer": "https://news.naver.com/"}

    async def crawl(
        self,
        category: Category | None = None,
        limit: int = 20,
        method: CrawlMethod = CrawlMethod.PRIMARY,
    ) -> list[NewsItem]:
        if method is CrawlMethod.FALLBACK:
            return await self._crawl_ranking(category, limit)
        if category is None:
            return await self._crawl_headlines(limit)
        html = await self._fetch(section_url(category))
        return parse_section(html, limit, category)

    async def _crawl_headlines(self, limit: int) -> list[NewsItem]:
        per_section = math.ceil(limit / len(HEADLINE_SECTIONS))
        pages = await asyncio.gather(
            *(self._fetch(section_url(category)) for category in HEADLINE_SECTIONS),
            return_exceptions=True,
        )
        errors = [page for page in pages if isinstance(page, BaseException)]
        if len(errors) == len(pages):
            raise errors[0]
        items: list[NewsItem] = []
        for category, page in zip(HEADLINE_SECTIONS, pages):
            if not isinstance(page, BaseException):
                items.extend(parse_section(page, per_section, category))
        return items[:limit]

    async def _crawl_ranking(self, category: Category | None, limit: int) -> list[NewsItem]:
        html = await self._fetch(RANKING_URL)
        items = parse_ranking(html, limit * 3 if category else limit)
        if category is not None:
            items = [item for item in items if item.category is category]
        logger.debug("Naver ranking fallback: %d items", len(items))
        return items[:limit]
