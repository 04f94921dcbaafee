"""Tests for article metadata enrichment."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx

from trendwire.config import FetchConfig
from trendwire.core.types import Category, NewsItem
from trendwire.fetch.meta import ArticleMeta, MetaEnricher, is_generic_image, parse_head

ARTICLE_URL = "https://www.hankyung.com/article/1"

HEAD = """<html><head>
<meta property="og:image" content="https://img.hankyung.com/photo/a.jpg">
<meta property="og:description" content="원달러 환율이 2년 만에 1400원을 넘어섰다.">
</head><body>본문</body></html>"""

HTML = {"content-type": "text/html; charset=utf-8"}


def _item(n: int, url: str = ARTICLE_URL, summary: str | None = None, thumbnail: str | None = None) -> NewsItem:
    return NewsItem(
        id=f"g_{n}",
        title=f"환율 기사 {n}",
        url=url,
        source="google",
        source_name="한국경제",
        category=Category.ECONOMY,
        published_at=datetime(2025, 1, 15, tzinfo=timezone.utc),
        summary=summary,
        thumbnail=thumbnail,
    )


def _run(handler, coro_fn, **config):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_fn(MetaEnricher(FetchConfig(**config), client))

    return asyncio.run(go())


def test_parse_head_resolves_and_filters_images():
    relative = '<head><meta property="og:image" content="/photo/b.jpg"><meta name="description" content="요약문입니다"></head>'
    generic = '<head><meta property="og:image" content="https://static.example.com/og_image_default.png"></head>'

    assert parse_head(relative, ARTICLE_URL) == ArticleMeta("https://www.hankyung.com/photo/b.jpg", "요약문입니다")
    assert parse_head(generic, ARTICLE_URL).empty
    assert is_generic_image("https://imgnews.example.com/static.news/image/news/ogtag/naver.png")
    assert not is_generic_image("https://img.hankyung.com/photo/a.jpg")


def test_fetch_reads_og_tags():
    meta = _run(lambda request: httpx.Response(200, text=HEAD, headers=HTML), lambda e: e.fetch(ARTICLE_URL))

    assert meta.thumbnail == "https://img.hankyung.com/photo/a.jpg"
    assert meta.description == "원달러 환율이 2년 만에 1400원을 넘어섰다."


def test_fetch_stops_reading_at_max_chars():
    padded = "<html><head><!--" + "x" * 200 + "-->" + HEAD.split("<head>", 1)[1]

    meta = _run(lambda request: httpx.Response(200, text=padded, headers=HTML), lambda e: e.fetch(ARTICLE_URL), meta_max_chars=100)

    assert meta.empty


def test_fetch_returns_empty_on_failures():
    def handler(request):
        if request.url.path == "/json":
            return httpx.Response(200, json={"og:image": "x"})
        if request.url.path == "/missing":
            return httpx.Response(404, text=HEAD, headers=HTML)
        raise httpx.ConnectError("connection refused", request=request)

    async def fetch_all(enricher):
        return [
            await enricher.fetch("https://news.example.com/json"),
            await enricher.fetch("https://news.example.com/missing"),
            await enricher.fetch("https://news.example.com/down"),
            await enricher.fetch("ftp://news.example.com/file"),
        ]

    assert all(meta.empty for meta in _run(handler, fetch_all))


def test_fetch_follows_google_news_redirects():
    def handler(request):
        if request.url.path == "/rss/articles/abc":
            return httpx.Response(302, headers={"location": ARTICLE_URL})
        return httpx.Response(200, text=HEAD, headers=HTML)

    async def fetch_both(enricher):
        return (
            await enricher.fetch("https://news.google.com/rss/articles/abc"),
            await enricher.fetch("https://news.google.com/rss/articles/stuck"),
        )

    followed, stuck = _run(handler, fetch_both)

    assert followed.thumbnail == "https://img.hankyung.com/photo/a.jpg"
    assert stuck.empty


def test_enrich_fills_only_missing_fields():
    requested: list[str] = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, text=HEAD, headers=HTML)

    items = [
        _item(1, "https://www.hankyung.com/article/1", summary="크롤러가 수집한 요약"),
        _item(2, "https://www.hankyung.com/article/2", summary="요약", thumbnail="https://img.example.com/own.jpg"),
        _item(3, "https://www.hankyung.com/article/3"),
    ]

    enriched = _run(handler, lambda e: e.enrich(items), meta_concurrency=1)

    assert sorted(requested) == ["/article/1", "/article/3"]
    assert enriched[0].summary == "크롤러가 수집한 요약"
    assert enriched[0].thumbnail == "https://img.hankyung.com/photo/a.jpg"
    assert enriched[1] is items[1]
    assert enriched[2].summary == "원달러 환율이 2년 만에 1400원을 넘어섰다."
    assert [item.id for item in enriched] == ["g_1", "g_2", "g_3"]
