"""
Daum News HTML adapter.

The primary method scrapes the per-category section pages. The fallback
method scrapes the news home page, which lists headlines from every section,
and keeps the items whose guessed category matches the request. The home page
also carries the hot-issue keyword list used for search suggestions.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from urllib.parse import unquote

from bs4 import BeautifulSoup

from ..core.dedup import stable_id
from ..core.types import Category, CrawlMethod, NewsItem, utcnow
from .base import HotIssueSource, SourceCrawler
from .utils import absolute_url, category_for, clean_summary, to_datetime

logger = logging.getLogger(__name__)

BASE_URL = "https://news.daum.net"

SECTION_PATHS: dict[Category, str] = {
    Category.ECONOMY: "economy",
    Category.SOCIETY: "society",
    Category.POLITICS: "politics",
    Category.ENTERTAINMENT: "entertain",
    Category.SPORTS: "sports",
    Category.WORLD: "foreign",
}

HEADLINE_SECTIONS = [Category.ECONOMY, Category.SOCIETY, Category.POLITICS]

ARTICLE_SELECTOR = "a.item_newsheadline2, .list_news2 .item_issue2 a, .list_news .item_issue a"
ISSUE_SELECTOR = "a.link_issue, .issue_list a, .realtime_issue a, .hot_issue a"
DATE_SELECTOR = ".info_view, .txt_time, .date, .info_date, time"
SUMMARY_SELECTOR = ".desc_txt, .desc, .tit_desc, .news_desc"

MAX_HOT_ISSUES = 20

_FNAME_RE = re.compile(r"fname=(https?[^&\s]+)")
_RELATIVE_TIME_RE = re.compile(r"\d+분 전|\d+시간 전|어제|방금|\d+일 전|\d{4}\.")


def section_url(category: Category) -> str:
    return f"{BASE_URL}/{SECTION_PATHS.get(category, SECTION_PATHS[Category.SOCIETY])}"


def image_from_srcset(srcset: str) -> str | None:
    """Pull the original image URL out of a Daum thumbnail srcset.

    Daum thumbnails go through an image proxy whose fname= parameter holds
    the original URL; without one, the first srcset candidate is used.
    """
    if not srcset:
        return None
    match = _FNAME_RE.search(srcset)
    if match:
        return unquote(match.group(1))
    first = srcset.split(",")[0].strip().split(" ")[0]
    if first.startswith("//"):
        return f"https:{first}"
    return first or None


def _image_url(anchor) -> str | None:
    source = anchor.select_one("picture source")
    from_srcset = image_from_srcset(source.get("srcset", "")) if source is not None else None
    if from_srcset:
        return from_srcset

    img = anchor.select_one("img")
    if img is None:
        return None
    candidates = [img.get("data-src") or "", img.get("src") or ""]
    src = next((c for c in candidates if c and not c.startswith("data:")), "")
    if src.startswith("//"):
        src = f"https:{src}"
    return src if src.startswith("http") else None


def _date_text(anchor) -> str | None:
    stamped = anchor.select_one("[data-published-time]")
    if stamped is not None:
        return stamped.get("data-published-time")
    timed = anchor.select_one("[datetime]")
    if timed is not None:
        return timed.get("datetime")
    shown = anchor.select_one(DATE_SELECTOR)
    if shown is not None and shown.get_text(strip=True):
        return shown.get_text(strip=True)
    for info in anchor.select(".txt_info"):
        text = info.get_text(strip=True)
        if _RELATIVE_TIME_RE.search(text):
            return text
    return None


def parse_section(html: str, limit: int, section: Category | None = None) -> list[NewsItem]:
    """Parse a Daum section (or home) page into NewsItems."""
    soup = BeautifulSoup(html, "html.parser")
    items: list[NewsItem] = []
    collected_at = utcnow()

    for anchor in soup.select(ARTICLE_SELECTOR):
        if len(items) >= limit:
            break
        title_el = anchor.select_one(".tit_txt, strong")
        title = title_el.get_text(strip=True) if title_el is not None else ""
        href = anchor.get("href") or ""
        if not title or not href or len(title) < 4:
            continue

        url = absolute_url(href, BASE_URL)
        press = anchor.select_one(".info_cp, .txt_cp")
        lede = anchor.select_one(SUMMARY_SELECTOR)
        items.append(
            NewsItem(
                id=stable_id(url, "d"),
                title=title,
                url=url,
                source="daum",
                source_name=(press.get_text(strip=True) if press else "") or "다음뉴스",
                category=category_for(title, section),
                published_at=to_datetime(_date_text(anchor)),
                collected_at=collected_at,
                summary=clean_summary(lede.get_text(" ", strip=True) if lede else None),
                thumbnail=_image_url(anchor),
            )
        )
    return items


def parse_hot_issues(html: str, limit: int = MAX_HOT_ISSUES) -> list[str]:
    """Collect the hot-issue keywords linked from the Daum news home page."""
    soup = BeautifulSoup(html, "html.parser")
    keywords: list[str] = []
    for anchor in soup.select(ISSUE_SELECTOR):
        text = anchor.get_text(strip=True)
        if 1 < len(text) < 20 and text not in keywords:
            keywords.append(text)
    return keywords[:limit]


class DaumNewsCrawler(SourceCrawler, HotIssueSource):
    source = "daum"
    display_name = "다음뉴스"
    headers = {
        "Referer": "https://news.daum.net/",
        "Accept-Language": "ko-KR,ko;q=0.9",
    }

    async def crawl(
        self,
        category: Category | None = None,
        limit: int = 20,
        method: CrawlMethod = CrawlMethod.PRIMARY,
    ) -> list[NewsItem]:
        if method is CrawlMethod.FALLBACK:
            return await self._crawl_home(category, limit)
        if category is None:
            return await self._crawl_headlines(limit)
        html = await self._fetch(section_url(category))
        return parse_section(html, limit, category)

    async def hot_issues(self) -> list[str]:
        html = await self._fetch(f"{BASE_URL}/")
        return parse_hot_issues(html)

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

    async def _crawl_home(self, category: Category | None, limit: int) -> list[NewsItem]:
        html = await self._fetch(f"{BASE_URL}/")
        items = parse_section(html, limit * 3 if category else limit)
        if category is not None:
            items = [item for item in items if item.category is category]
        logger.debug("Daum home fallback: %d items", len(items))
        return items[:limit]
