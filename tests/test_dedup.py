"""Tests for URL and near-duplicate title deduplication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from trendwire.core.dedup import (
    bigram_jaccard,
    canonical_url,
    dedup_by_title,
    dedup_by_url,
    normalize_title,
    process_news_items,
    stable_id,
)
from trendwire.core.types import Category, NewsItem

BASE = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def _item(title: str, url: str, minutes_ago: int = 0) -> NewsItem:
    return NewsItem(
        id=stable_id(url),
        title=title,
        url=url,
        source="naver",
        source_name="연합뉴스",
        category=Category.ECONOMY,
        published_at=BASE - timedelta(minutes=minutes_ago),
    )


def test_stable_id_ignores_query_string():
    assert stable_id("https://n.news.naver.com/article/001/1?sid=101") == stable_id(
        "https://n.news.naver.com/article/001/1"
    )
    assert stable_id("https://a.example.com/1", "g").startswith("g_")
    assert len(stable_id("https://a.example.com/1")) == len("n_") + 12


def test_canonical_url_strips_query():
    assert canonical_url("https://a.example.com/x?utm_source=feed&b=2") == "https://a.example.com/x"


def test_normalize_title_drops_tags_and_punctuation():
    assert normalize_title("[속보] 코스피, 2600선 회복!!") == "코스피 2600선 회복"
    assert normalize_title("【단독】  환율   급등") == "환율 급등"


def test_bigram_jaccard_bounds():
    assert bigram_jaccard("환율 급등", "환율 급등") == 1.0
    assert bigram_jaccard("", "") == 1.0
    assert bigram_jaccard("가", "환율 급등") == 0.0
    assert 0.0 < bigram_jaccard("환율 급등 마감", "환율 급등 출발") < 1.0


def test_dedup_by_url_keeps_first_occurrence():
    first = _item("코스피 상승 마감", "https://a.example.com/1?from=rss")
    second = _item("코스피 상승 마감 (종합)", "https://a.example.com/1")

    assert dedup_by_url([first, second]) == [first]


def test_dedup_by_title_first_wins():
    a = _item("[속보] 한국은행 기준금리 동결", "https://a.example.com/1")
    b = _item("한국은행, 기준금리 동결", "https://b.example.com/2")
    c = _item("프로야구 개막전 매진 기록", "https://c.example.com/3")

    assert dedup_by_title([a, b, c]) == [a, c]
    assert dedup_by_title([b, a, c]) == [b, c]


def test_dedup_is_idempotent():
    items = [
        _item("한국은행 기준금리 동결", "https://a.example.com/1"),
        _item("한국은행 기준금리 동결 결정", "https://b.example.com/2"),
        _item("서울 아파트값 3주 연속 상승", "https://c.example.com/3"),
        _item("서울 아파트값 3주 연속 상승", "https://c.example.com/3?x=1"),
    ]
    once = process_news_items(items)

    assert process_news_items(once) == once


def test_process_news_items_sorts_newest_first():
    old = _item("서울 아파트값 3주 연속 상승", "https://a.example.com/1", minutes_ago=30)
    new = _item("반도체 수출 두 달째 증가", "https://b.example.com/2", minutes_ago=5)

    assert process_news_items([old, new]) == [new, old]


def test_empty_batches():
    assert process_news_items([]) == []
    assert dedup_by_title([]) == []


def test_looser_threshold_drops_more():
    a = _item("삼성전자 4분기 영업이익 발표", "https://a.example.com/1")
    b = _item("삼성전자 4분기 영업이익 잠정 발표", "https://b.example.com/2")
    similarity = bigram_jaccard(normalize_title(a.title), normalize_title(b.title))

    assert dedup_by_title([a, b], threshold=similarity) == [a]
    assert dedup_by_title([a, b], threshold=min(1.0, similarity + 0.01)) == [a, b]
