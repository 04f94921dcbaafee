"""Tests for source adapters and their parsing helpers, using inline fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from trendwire.config import FetchConfig
from trendwire.core.dedup import stable_id
from trendwire.core.types import Category, CrawlMethod, utcnow
from trendwire.errors import FetchError, SourceError
from trendwire.sources.community import (
    ClienCrawler,
    DcinsideCrawler,
    FmkoreaCrawler,
    parse_clien,
    parse_dcinside,
    parse_fmkorea,
)
from trendwire.sources.daum import DaumNewsCrawler, image_from_srcset, parse_hot_issues
from trendwire.sources.daum import parse_section as parse_daum_section
from trendwire.sources.google_news import TOPIC_FEEDS, GoogleNewsCrawler, feed_url, parse_feed, search_feed
from trendwire.sources.naver import RANKING_URL, NaverNewsCrawler, parse_ranking, parse_section, section_url
from trendwire.sources.utils import clean_summary, guess_category, parse_korean_date, to_datetime

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

NAVER_SECTION = """
<ul>
  <li class="sa_item">
    <a class="sa_thumb_link" href="https://n.news.naver.com/mnews/article/001/0000001">
      <img data-src="https://imgnews.pstatic.net/image/001/a.jpg?type=nf106_72">
    </a>
    <a href="https://n.news.naver.com/mnews/article/001/0000001"><strong class="sa_text_title">코스피 2600선 회복 마감</strong></a>
    <div class="sa_text_lede">코스피가 외국인 매수에 힘입어 상승했다. 무단 전재 및 재배포 금지</div>
    <div class="sa_text_press">연합뉴스</div>
    <div class="sa_text_datetime_bullet">3시간 전</div>
  </li>
  <li class="sa_item">
    <a href="https://n.news.naver.com/mnews/article/002/0000002"><strong class="sa_text_title">주말 나들이 인파 몰려</strong></a>
    <div class="sa_text_press">한겨레</div>
  </li>
  <li class="sa_item">
    <a href="https://n.news.naver.com/mnews/article/003/0000003"><strong class="sa_text_title">짧음</strong></a>
  </li>
</ul>
"""

NAVER_RANKING = """
<ul>
  <li class="rankingnews_list_item"><a href="/mnews/article/005/0000005">환율 1400원 돌파 마감</a><span class="press">한국경제</span></li>
  <li class="rankingnews_list_item"><a href="/mnews/article/006/0000006">고속도로 추돌 교통사고</a><span class="press">KBS</span></li>
</ul>
"""

GOOGLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>Google 뉴스</title>
<item>
<title>환율 1400원 돌파 - 한국경제</title>
<link>https://news.google.com/rss/articles/abc?oc=5</link>
<pubDate>Wed, 15 Jan 2025 06:00:00 GMT</pubDate>
<description>&lt;a href="https://www.hankyung.com/1"&gt;환율 1400원 돌파&lt;/a&gt;</description>
<source url="https://www.hankyung.com">한국경제</source>
</item>
<item>
<title>프로야구 개막전 매진</title>
<link>https://news.google.com/rss/articles/def</link>
<pubDate>Wed, 15 Jan 2025 05:00:00 GMT</pubDate>
</item>
</channel>
</rss>
"""

DAUM_SECTION = """
<div class="box_comp">
  <a class="item_newsheadline2" href="https://v.daum.net/v/20250115090000001">
    <div class="item_thumb">
      <picture><source srcset="https://img1.daumcdn.net/thumb/S320x200/?fname=https%3A%2F%2Ft1.daumcdn.net%2Fnews%2F202501%2Fa.jpg 1x"></picture>
    </div>
    <strong class="tit_txt">코스피 2600선 회복 마감</strong>
    <p class="desc_txt">코스피가 외국인 매수에 힘입어 상승했다. 무단 전재 및 재배포 금지</p>
    <span class="txt_cp">연합뉴스</span>
    <span class="txt_info">3시간 전</span>
  </a>
  <a class="item_newsheadline2" href="/v/20250115090000002">
    <img src="data:image/gif;base64,R0lGOD" data-src="//t1.daumcdn.net/news/b.jpg">
    <strong class="tit_txt">주말 나들이 인파 몰려</strong>
    <span data-published-time="2025-01-15T09:00:00+09:00"></span>
  </a>
  <a class="item_newsheadline2" href="/v/20250115090000003"><strong class="tit_txt">짧음</strong></a>
</div>
"""

DAUM_HOME = """
<div class="hot_issue">
  <a href="/issue/1">금리</a>
  <a href="/issue/2">환율</a>
  <a href="/issue/1">금리</a>
  <a href="/issue/3">가</a>
  <a href="/issue/4">아주아주아주아주아주아주긴 이슈 키워드입니다</a>
</div>
<ul class="issue_list"><li><a href="/issue/5">부동산</a></li></ul>
"""

FMKOREA = """
<ul>
  <li><h3 class="title"><a href="/best/123">삼성전자 반도체 공장 화재 [45]</a></h3></li>
  <li><h3><a href="https://ads.example.com/x">광고 배너 입니다</a></h3></li>
</ul>
"""

CLIEN = """
<div class="list_item">
  <a class="list_subject" href="/service/board/park/1"><span class="subject_fixed">전세 사기 피해 대책 발표</span></a>
  <span class="list_reply_cnt">12</span>
  <span class="list_hit">1,234</span>
</div>
"""

DCINSIDE = """
<table class="gall_list"><tbody>
  <tr class="ub-content" data-no="1">
    <td class="gall_tit"><a href="/board/view/?id=dcbest&amp;no=1">환율 폭등 실화냐</a><a class="reply_num">[33]</a></td>
    <td class="gall_count">5,000</td>
  </tr>
</tbody></table>
"""


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _crawl(crawler_cls, handler, *args):
    async def go():
        async with _client(handler) as client:
            crawler = crawler_cls(FetchConfig(retries=0, base_delay=0), client)
            return await crawler.crawl(*args)

    return asyncio.run(go())


def test_parse_korean_relative_dates():
    assert parse_korean_date("5분 전", NOW) == NOW - timedelta(minutes=5)
    assert parse_korean_date("3시간 전", NOW) == NOW - timedelta(hours=3)
    assert parse_korean_date("어제", NOW) == NOW - timedelta(days=1)
    assert parse_korean_date("방금 전", NOW) == NOW
    assert parse_korean_date("Wed, 15 Jan 2025", NOW) is None


def test_to_datetime_formats():
    assert to_datetime("2025.01.15. 오후 3:45", NOW) == datetime(2025, 1, 15, 6, 45, tzinfo=timezone.utc)
    assert to_datetime("2025.01.15. 오전 12:10", NOW) == datetime(2025, 1, 14, 15, 10, tzinfo=timezone.utc)
    assert to_datetime("Wed, 15 Jan 2025 06:00:00 GMT", NOW) == datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc)
    assert to_datetime("2025-01-15T09:00:00+09:00", NOW) == datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)
    assert to_datetime("언젠가", NOW) == NOW
    assert to_datetime(None, NOW) == NOW


def test_clean_summary_strips_noise():
    assert clean_summary("본문 내용입니다. ⓒ 한국경제 무단전재") == "본문 내용입니다."
    assert clean_summary("홍길동 기자") is None
    assert clean_summary("   ") is None
    assert clean_summary(None) is None
    assert len(clean_summary("가" * 500)) == 300


def test_guess_category():
    assert guess_category("코스피 급등 마감") is Category.ECONOMY
    assert guess_category("국회 본회의 개최") is Category.POLITICS
    assert guess_category("손흥민 경기 출전") is Category.SPORTS
    assert guess_category("오늘 날씨 맑음") is Category.OTHER


def test_parse_naver_section():
    items = parse_section(NAVER_SECTION, 10, Category.SOCIETY)

    assert len(items) == 2
    first, second = items
    assert first.title == "코스피 2600선 회복 마감"
    assert first.category is Category.ECONOMY
    assert first.source == "naver"
    assert first.source_name == "연합뉴스"
    assert first.summary == "코스피가 외국인 매수에 힘입어 상승했다."
    assert first.thumbnail == "https://imgnews.pstatic.net/image/001/a.jpg?type=w647"
    assert abs(first.published_at - (utcnow() - timedelta(hours=3))) < timedelta(minutes=1)
    assert first.id == stable_id("https://n.news.naver.com/mnews/article/001/0000001", "n")
    assert second.category is Category.SOCIETY
    assert second.thumbnail is None


def test_parse_naver_ranking():
    items = parse_ranking(NAVER_RANKING, 10)

    assert [item.url for item in items] == [
        "https://news.naver.com/mnews/article/005/0000005",
        "https://news.naver.com/mnews/article/006/0000006",
    ]
    assert items[0].category is Category.ECONOMY
    assert items[1].source_name == "KBS"


def test_naver_fallback_uses_ranking_page():
    requested: list[str] = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=NAVER_RANKING)

    items = _crawl(NaverNewsCrawler, handler, Category.ECONOMY, 10, CrawlMethod.FALLBACK)

    assert requested == [RANKING_URL]
    assert [item.title for item in items] == ["환율 1400원 돌파 마감"]


def test_naver_primary_uses_section_page_with_referer():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["referer"] = request.headers.get("Referer")
        return httpx.Response(200, text=NAVER_SECTION)

    items = _crawl(NaverNewsCrawler, handler, Category.SOCIETY, 10)

    assert seen["url"] == section_url(Category.SOCIETY)
    assert seen["referer"] == "https://news.naver.com/"
    assert len(items) == 2


def test_naver_headlines_tolerate_partial_failure():
    def handler(request):
        if request.url.path.endswith("/101"):
            return httpx.Response(200, text=NAVER_SECTION)
        return httpx.Response(500)

    items = _crawl(NaverNewsCrawler, handler, None, 20)

    assert [item.title for item in items] == ["코스피 2600선 회복 마감", "주말 나들이 인파 몰려"]
    assert items[1].category is Category.ECONOMY


def test_naver_headlines_raise_when_every_section_fails():
    def handler(request):
        return httpx.Response(500)

    with pytest.raises(FetchError):
        _crawl(NaverNewsCrawler, handler, None, 20)


def test_parse_google_feed():
    items = parse_feed(GOOGLE_RSS, None, 10)

    assert len(items) == 2
    first = items[0]
    assert first.id == stable_id("https://news.google.com/rss/articles/abc", "g")
    assert first.source == "google"
    assert first.source_name == "한국경제"
    assert first.category is Category.ECONOMY
    assert first.published_at == datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc)
    assert items[1].source_name == "구글뉴스"
    assert parse_feed(GOOGLE_RSS, Category.WORLD, 1)[0].category is Category.WORLD


def test_parse_google_feed_rejects_non_feed():
    with pytest.raises(SourceError):
        parse_feed("this is not a feed", None, 10)


def test_google_feed_url_by_method():
    assert feed_url(Category.ECONOMY, CrawlMethod.PRIMARY) == TOPIC_FEEDS[Category.ECONOMY]
    assert "/search?q=" in feed_url(Category.ECONOMY, CrawlMethod.FALLBACK)
    assert "/search?q=" in feed_url(Category.INCIDENT, CrawlMethod.PRIMARY)


def test_parse_fmkorea():
    posts = parse_fmkorea(FMKOREA, 10)

    assert len(posts) == 1
    assert posts[0].title == "삼성전자 반도체 공장 화재"
    assert posts[0].comment_count == 45
    assert posts[0].url == "https://www.fmkorea.com/best/123"
    assert "삼성전자" in posts[0].keywords


def test_parse_clien():
    posts = parse_clien(CLIEN, 10)

    assert posts[0].title == "전세 사기 피해 대책 발표"
    assert posts[0].url == "https://www.clien.net/service/board/park/1"
    assert (posts[0].comment_count, posts[0].view_count) == (12, 1234)


def test_parse_dcinside():
    posts = parse_dcinside(DCINSIDE, 10)

    assert len(posts) == 1
    assert posts[0].title == "환율 폭등 실화냐"
    assert posts[0].url == "https://gall.dcinside.com/board/view/?id=dcbest&no=1"
    assert (posts[0].comment_count, posts[0].view_count) == (33, 5000)


def test_dcinside_falls_back_to_second_url():
    def handler(request):
        if request.url.host == "gall.dcinside.com":
            return httpx.Response(500)
        return httpx.Response(200, text=DCINSIDE)

    posts = _crawl(DcinsideCrawler, handler, 10)

    assert [post.title for post in posts] == ["환율 폭등 실화냐"]


def test_dcinside_raises_when_every_url_fails():
    def handler(request):
        return httpx.Response(403)

    with pytest.raises(FetchError):
        _crawl(DcinsideCrawler, handler, 10)


def test_community_crawlers_fetch_their_boards():
    def handler(request):
        return httpx.Response(200, text=FMKOREA if request.url.host == "www.fmkorea.com" else CLIEN)

    assert len(_crawl(FmkoreaCrawler, handler, 10)) == 1
    assert len(_crawl(ClienCrawler, handler, 10)) == 1


def test_image_from_srcset():
    proxied = "https://img1.daumcdn.net/thumb/S320x200/?fname=https%3A%2F%2Ft1.daumcdn.net%2Fnews%2Fa.jpg 1x"

    assert image_from_srcset(proxied) == "https://t1.daumcdn.net/news/a.jpg"
    assert image_from_srcset("//img.example.com/a.jpg 1x, //img.example.com/b.jpg 2x") == "https://img.example.com/a.jpg"
    assert image_from_srcset("") is None


def test_parse_daum_section():
    items = parse_daum_section(DAUM_SECTION, 10, Category.SOCIETY)

    assert len(items) == 2
    first, second = items
    assert first.title == "코스피 2600선 회복 마감"
    assert first.source == "daum"
    assert first.source_name == "연합뉴스"
    assert first.category is Category.ECONOMY
    assert first.summary == "코스피가 외국인 매수에 힘입어 상승했다."
    assert first.thumbnail == "https://t1.daumcdn.net/news/202501/a.jpg"
    assert abs(first.published_at - (utcnow() - timedelta(hours=3))) < timedelta(minutes=1)
    assert first.id == stable_id("https://v.daum.net/v/20250115090000001", "d")
    assert second.url == "https://news.daum.net/v/20250115090000002"
    assert second.source_name == "다음뉴스"
    assert second.category is Category.SOCIETY
    assert second.thumbnail == "https://t1.daumcdn.net/news/b.jpg"
    assert second.published_at == datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)


def test_parse_hot_issues():
    assert parse_hot_issues(DAUM_HOME) == ["금리", "환율", "부동산"]
    assert parse_hot_issues(DAUM_HOME, limit=1) == ["금리"]


def test_daum_primary_uses_section_page_with_referer():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["referer"] = request.headers.get("Referer")
        return httpx.Response(200, text=DAUM_SECTION)

    items = _crawl(DaumNewsCrawler, handler, Category.WORLD, 10)

    assert seen["url"] == "https://news.daum.net/foreign"
    assert seen["referer"] == "https://news.daum.net/"
    assert [item.category for item in items] == [Category.ECONOMY, Category.WORLD]


def test_daum_fallback_filters_home_page_by_category():
    requested: list[str] = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=DAUM_SECTION)

    items = _crawl(DaumNewsCrawler, handler, Category.ECONOMY, 10, CrawlMethod.FALLBACK)

    assert requested == ["https://news.daum.net/"]
    assert [item.title for item in items] == ["코스피 2600선 회복 마감"]


def test_daum_headlines_tolerate_partial_failure():
    def handler(request):
        if request.url.path == "/economy":
            return httpx.Response(200, text=DAUM_SECTION)
        return httpx.Response(500)

    items = _crawl(DaumNewsCrawler, handler, None, 20)

    assert [item.title for item in items] == ["코스피 2600선 회복 마감", "주말 나들이 인파 몰려"]
    assert items[1].category is Category.ECONOMY

    with pytest.raises(FetchError):
        _crawl(DaumNewsCrawler, lambda request: httpx.Response(500), None, 20)


def test_daum_hot_issues_read_home_page():
    requested: list[str] = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=DAUM_HOME)

    async def go():
        async with _client(handler) as client:
            return await DaumNewsCrawler(FetchConfig(retries=0, base_delay=0), client).hot_issues()

    assert asyncio.run(go()) == ["금리", "환율", "부동산"]
    assert requested == ["https://news.daum.net/"]


def test_google_search_reads_keyword_feed():
    requested: list[str] = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=GOOGLE_RSS)

    async def go():
        async with _client(handler) as client:
            return await GoogleNewsCrawler(FetchConfig(retries=0, base_delay=0), client).search("금리 인상", limit=1)

    items = asyncio.run(go())

    assert requested == [str(httpx.URL(search_feed("금리 인상")))]
    assert [item.title for item in items] == ["환율 1400원 돌파 - 한국경제"]
    assert items[0].category is Category.ECONOMY
