"""Tests for pipeline wiring and the ingest / summarize / purge jobs."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from trendwire.aggregator import NewsAggregator
from trendwire.config import AppConfig
from trendwire.core.types import Category, CrawlMethod, NewsItem, SummaryRecord
from trendwire.health import CrawlHealthTracker
from trendwire.runner import (
    build_aggregator,
    build_communities,
    build_enricher,
    build_scheduler,
    build_sources,
    build_store,
    ingest_corpus,
    load_health,
    purge,
    run_summarization,
    save_health,
)
from trendwire.sources import DaumNewsCrawler, GoogleNewsCrawler
from trendwire.sources.base import SourceCrawler
from trendwire.store import ArticleRepository, InMemoryDocumentStore, JsonDocumentStore
from trendwire.summarize.scheduler import SummarizationScheduler

NOW = datetime.now(timezone.utc)


class StaticSource(SourceCrawler):
    source = "static"

    def __init__(self, items):
        super().__init__()
        self.items = items

    async def crawl(self, category=None, limit=20, method=CrawlMethod.PRIMARY):
        return [item for item in self.items if category is None or item.category is category][:limit]


def _item(n: int, title: str, category: Category) -> NewsItem:
    return NewsItem(
        id=f"n_{n}",
        title=title,
        url=f"https://news.example.com/{n}",
        source="static",
        source_name="연합뉴스",
        category=category,
        published_at=NOW - timedelta(minutes=n),
    )


def test_build_store_backends(tmp_path):
    cfg = AppConfig()
    cfg.store.backend = "memory"
    assert isinstance(build_store(cfg), InMemoryDocumentStore)

    cfg.store.backend = "json"
    cfg.store.path = str(tmp_path)
    assert isinstance(build_store(cfg), JsonDocumentStore)

    cfg.store.backend = "firestore"
    with pytest.raises(ValueError, match="Unsupported store backend"):
        build_store(cfg)


def test_build_crawlers_and_aggregator():
    cfg = AppConfig()

    assert [source.source for source in build_sources(cfg)] == ["naver", "daum", "google"]
    assert [board.source for board in build_communities(cfg)] == ["dcinside", "fmkorea", "clien"]
    aggregator = build_aggregator(cfg)
    assert isinstance(aggregator, NewsAggregator)
    assert isinstance(aggregator.searcher, GoogleNewsCrawler)
    assert isinstance(aggregator.issues, DaumNewsCrawler)
    assert aggregator.dedup.trending_threshold == 0.60


def test_build_scheduler_requires_provider_key(monkeypatch):
    cfg = AppConfig()
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(ValueError, match="Missing API key"):
        build_scheduler(cfg, InMemoryDocumentStore())

    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    assert isinstance(build_scheduler(cfg, InMemoryDocumentStore()), SummarizationScheduler)


def test_ingest_corpus_upserts_both_paths():
    items = [
        _item(1, "한국은행 기준금리 동결 결정", Category.ECONOMY),
        _item(2, "국회 예산안 본회의 통과", Category.POLITICS),
        _item(3, "프로야구 개막전 매진 기록", Category.SPORTS),
    ]
    aggregator = NewsAggregator([StaticSource(items)])
    repository = ArticleRepository(InMemoryDocumentStore())

    result = asyncio.run(ingest_corpus(aggregator, repository))

    # Sports is not among the default latest categories.
    assert result.trending == 3
    assert result.latest == 2
    assert result.unique == 3
    assert result.inserted == 3
    assert asyncio.run(repository.count_unsummarized()) == 3

    again = asyncio.run(ingest_corpus(NewsAggregator([StaticSource(items)]), repository))
    assert again.inserted == 0


class FakeEnricher:
    def __init__(self):
        self.seen: list[list[str]] = []

    async def enrich(self, items):
        self.seen.append([item.id for item in items])
        return [replace(item, thumbnail="https://img.example.com/og.jpg") for item in items]


def test_ingest_corpus_enriches_only_new_articles():
    items = [
        _item(1, "한국은행 기준금리 동결 결정", Category.ECONOMY),
        _item(2, "국회 예산안 본회의 통과", Category.POLITICS),
    ]
    repository = ArticleRepository(InMemoryDocumentStore())
    asyncio.run(repository.save_items(items[:1]))
    enricher = FakeEnricher()

    result = asyncio.run(ingest_corpus(NewsAggregator([StaticSource(items)]), repository, enricher=enricher))

    assert enricher.seen == [["n_2"]]
    assert (result.inserted, result.enriched) == (1, 1)
    docs = asyncio.run(repository.store.get("articles", ["n_1", "n_2"]))
    assert docs["n_1"]["thumbnail"] is None
    assert docs["n_2"]["thumbnail"] == "https://img.example.com/og.jpg"


def test_build_enricher_follows_config():
    cfg = AppConfig()
    assert build_enricher(cfg) is not None

    cfg.fetch.enrich_meta = False
    assert build_enricher(cfg) is None


def test_health_state_survives_between_commands(tmp_path):
    cfg = AppConfig()
    cfg.store.path = str(tmp_path)
    first = CrawlHealthTracker(cfg.health)
    for _ in range(3):
        first.record("google", collected=0, failed=1)
    first.record("naver", collected=8, failed=3)
    asyncio.run(save_health(cfg, build_store(cfg), first))

    second = CrawlHealthTracker(cfg.health)
    assert asyncio.run(load_health(cfg, build_store(cfg), second))

    assert second.is_skipped("google")
    assert second.recommended_method("naver") is CrawlMethod.FALLBACK
    assert second.state("google") == first.state("google")

    cfg.store.persist_health = False
    assert not asyncio.run(load_health(cfg, build_store(cfg), CrawlHealthTracker(cfg.health)))


def test_run_summarization_idle_on_empty_store(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    scheduler = build_scheduler(AppConfig(), InMemoryDocumentStore())

    result = asyncio.run(run_summarization(scheduler))

    assert result.status == "idle"


def test_purge_job_counts_deletions():
    repository = ArticleRepository(InMemoryDocumentStore(), article_ttl_days=1)
    asyncio.run(repository.save_items([_item(1, "오래된 기사 제목", Category.SOCIETY)], now=NOW - timedelta(days=2)))
    asyncio.run(repository.save_summaries([SummaryRecord("n_1", ["줄"], "", generated_at=NOW - timedelta(days=10))]))

    result = asyncio.run(purge(repository, summary_ttl_days=7))

    assert (result.summaries, result.articles) == (1, 1)
