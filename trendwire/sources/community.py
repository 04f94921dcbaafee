"""
Community board "best of" adapters.

Posts are only a trend signal: their titles are reduced to keywords that the
trend scorer matches against article titles.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from ..core.keywords import extract_keywords
from ..core.types import CommunityPost
from ..errors import FetchError
from .base import CommunityCrawler
from .utils import absolute_url, digits

logger = logging.getLogger(__name__)

_TRAILING_COUNT_RE = re.compile(r"\[(\d+)\]\s*$")


def _post(source: str, title: str, url: str, comments: int = 0, views: int = 0) -> CommunityPost:
    return CommunityPost(
        source=source,
        title=title,
        url=url,
        comment_count=comments,
        view_count=views,
        keywords=extract_keywords(title),
    )


def parse_dcinside(html: str, limit: int) -> list[CommunityPost]:
    soup = BeautifulSoup(html, "html.parser")
    posts: list[CommunityPost] = []
    for row in soup.select("tr.ub-content, .gall_list tr, tr[data-no]"):
        if len(posts) >= limit:
            break
        # .ub-word is a span without href; only the anchor carries the link
        anchor = row.select_one(".gall_tit a:not(.reply_num)")
        if anchor is None:
            continue
        title = anchor.get_text(strip=True)
        href = anchor.get("href") or ""
        if len(title) < 3 or not href or href.startswith("javascript:"):
            continue
        if href.startswith("?"):
            url = f"https://gall.dcinside.com/board/view/{href}"
        else:
            url = absolute_url(href, "https://gall.dcinside.com")
        comments = row.select_one(".reply_num, .gall_comment")
        views = row.select_one(".gall_count")
        posts.append(
            _post(
                "dcinside",
                title,
                url,
                digits(comments.get_text() if comments else ""),
                digits(views.get_text() if views else ""),
            )
        )
    return posts


def parse_fmkorea(html: str, limit: int) -> list[CommunityPost]:
    """Parse fmkorea best posts: <li><h3><a href="/best/ID">title [N]</a></h3></li>."""
    soup = BeautifulSoup(html, "html.parser")
    posts: list[CommunityPost] = []
    for anchor in soup.select("li h3 > a"):
        if len(posts) >= limit:
            break
        raw = anchor.get_text(strip=True)
        href = anchor.get("href") or ""
        if not raw or not href.startswith("/best/"):
            continue
        match = _TRAILING_COUNT_RE.search(raw)
        title = _TRAILING_COUNT_RE.sub("", raw).strip()
        if len(title) < 3:
            continue
        posts.append(_post("fmkorea", title, f"https://www.fmkorea.com{href}", int(match.group(1)) if match else 0))
    return posts


def parse_clien(html: str, limit: int) -> list[CommunityPost]:
    soup = BeautifulSoup(html, "html.parser")
    posts: list[CommunityPost] = []
    for row in soup.select("div.list_item"):
        if len(posts) >= limit:
            break
        anchor = row.select_one("a.subject_fixed, a.list_subject")
        if anchor is None:
            continue
        title = anchor.get_text(strip=True)
        if len(title) < 3:
            continue
        comments = row.select_one(".list_reply_cnt, .comment_count")
        views = row.select_one(".list_hit, .view_count")
        posts.append(
            _post(
                "clien",
                title,
                absolute_url(anchor.get("href") or "", "https://www.clien.net"),
                digits(comments.get_text() if comments else ""),
                digits(views.get_text() if views else ""),
            )
        )
    return posts


class DcinsideCrawler(CommunityCrawler):
    """dcinside real-time best; the portal index page is tried when the board is empty."""

    source = "dcinside"
    headers = {"Referer": "https://www.dcinside.com/", "Cookie": "DCID=1"}
    urls = [
        "https://gall.dcinside.com/board/lists/?id=dcbest",
        "https://www.dcinside.com/index.php",
    ]

    async def crawl(self, limit: int = 30) -> list[CommunityPost]:
        last_error: FetchError | None = None
        for url in self.urls:
            try:
                posts = parse_dcinside(await self._fetch(url), limit)
            except FetchError as exc:
                last_error = exc
                logger.warning("dcinside fetch failed for %s: %s", url, exc)
                continue
            if posts:
                return posts
        if last_error is not None:
            raise last_error
        return []


class FmkoreaCrawler(CommunityCrawler):
    source = "fmkorea"
    headers = {"Referer": "https://www.fmkorea.com/", "Cookie": "fm_visited=1"}
    url = "https://www.fmkorea.com/best"

    async def crawl(self, limit: int = 30) -> list[CommunityPost]:
        return parse_fmkorea(await self._fetch(self.url), limit)


class ClienCrawler(CommunityCrawler):
    source = "clien"
    headers = {"Referer": "https://www.clien.net/"}
    url = "https://www.clien.net/service/board/park?od=T33"

    async def crawl(self, limit: int = 30) -> list[CommunityPost]:
        return parse_clien(await self._fetch(self.url), limit)
