"""
Pipeline wiring for the trendwire commands.

This module builds the runtime objects from an AppConfig and runs the
multi-step jobs:
1. Aggregation (trending and latest paths) over the configured crawlers
2. Corpus ingest: crawl both paths, fill missing thumbnails and ledes of new
   items from article page metadata, and upsert the items into the store
3. One summarization scheduler invocation
4. TTL purge of old summaries and expired articles

The HTTP client, health tracker and store are created here and injected;
none of them is a module-level singleton. Crawl health states are loaded from
and saved back to the store around each command (load_health, save_health)
when store.persist_health is set.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

import httpx

from .aggregator import NewsAggregator
from .config import AppConfig
from .core.types import NewsItem
from .fetch.meta import MetaEnricher
from .health import CrawlHealthTracker
from .llm.providers.factory import create_provider
from .llm.tracing import set_span_output, start_span
from .sources import (
    ClienCrawler,
    CommunityCrawler,
    DaumNewsCrawler,
    DcinsideCrawler,
    FmkoreaCrawler,
    GoogleNewsCrawler,
    NaverNewsCrawler,
    SourceCrawler,
)
from .store import ArticleRepository, DocumentStore, HealthStateStore, InMemoryDocumentStore, JsonDocumentStore
from .summarize.scheduler import BatchRunResult, SummarizationScheduler
from .utils.logging import log_event

logger = logging.getLogger(__name__)

INGEST_LATEST_LIMIT = 200


@dataclass
class IngestResult:
    """Counts from one corpus ingest.

    Attributes:
        trending: Items on the trending path
        latest: Items on the latest path
        unique: Distinct items offered to the store
        inserted: Items new to the corpus
        enriched: New items whose thumbnail or lede came from page metadata
    """

    trending: int
    latest: int
    unique: int
    inserted: int
    enriched: int = 0


@dataclass
class PurgeResult:
    summaries: int
    articles: int


def build_http_client(cfg: AppConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(follow_redirects=True, trust_env=cfg.fetch.trust_env)


def build_sources(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> list[SourceCrawler]:
    return [
        NaverNewsCrawler(cfg.fetch, client),
        DaumNewsCrawler(cfg.fetch, client),
        GoogleNewsCrawler(cfg.fetch, client),
    ]


def build_communities(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> list[CommunityCrawler]:
    return [
        DcinsideCrawler(cfg.fetch, client),
        FmkoreaCrawler(cfg.fetch, client),
        ClienCrawler(cfg.fetch, client),
    ]


def build_store(cfg: AppConfig) -> DocumentStore:
    """Create the configured document store backend.

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = cfg.store.backend.lower().strip()
    if backend == "memory":
        return InMemoryDocumentStore(cfg.store.max_batch_size)
    if backend == "json":
        return JsonDocumentStore(Path(cfg.store.path), cfg.store.max_batch_size)
    raise ValueError(f"Unsupported store backend: {cfg.store.backend}. Supported: json, memory")


def build_aggregator(
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
    health: CrawlHealthTracker | None = None,
) -> NewsAggregator:
    return NewsAggregator(
        sources=build_sources(cfg, client),
        communities=build_communities(cfg, client),
        health=health or CrawlHealthTracker(cfg.health),
        config=cfg.aggregate,
        dedup=cfg.dedup,
    )


def build_enricher(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> MetaEnricher | None:
    """Return the article metadata enricher, or None when enrichment is disabled."""
    if not cfg.fetch.enrich_meta:
        return None
    return MetaEnricher(cfg.fetch, client)


def build_scheduler(
    cfg: AppConfig,
    store: DocumentStore,
    llm_logger: logging.Logger | None = None,
    client: httpx.AsyncClient | None = None,
) -> SummarizationScheduler:
    provider = create_provider(cfg.provider, cfg.logging, llm_logger, client)
    repository = ArticleRepository(store, cfg.store.article_ttl_days)
    return SummarizationScheduler(repository, provider, cfg.summary)


async def ingest_corpus(
    aggregator: NewsAggregator,
    repository: ArticleRepository,
    latest_limit: int = INGEST_LATEST_LIMIT,
    enricher: MetaEnricher | None = None,
) -> IngestResult:
    """Crawl the trending and latest paths and upsert the union into the store.

    Items not yet in the corpus are passed through the enricher first, so the
    summarizer sees page ledes for sources that carry none. Articles already
    stored are not fetched again.
    """
    with start_span("ingest_corpus", kind="chain") as span:
        trending = await aggregator.trending()
        latest = await aggregator.latest(None, page=1, limit=latest_limit)
        unique: dict[str, NewsItem] = {}
        for item in [*trending.items, *latest.items]:
            unique.setdefault(item.id, item)

        enriched = 0
        if enricher is not None:
            known = await repository.existing_ids(list(unique))
            fresh = [item for item_id, item in unique.items() if item_id not in known]
            for before, after in zip(fresh, await enricher.enrich(fresh)):
                if after is not before:
                    unique[after.id] = after
                    enriched += 1

        inserted = await repository.save_items(list(unique.values()))
        result = IngestResult(
            trending=len(trending.items),
            latest=len(latest.items),
            unique=len(unique),
            inserted=inserted,
            enriched=enriched,
        )
        set_span_output(span, result.__dict__)

    log_event(logger, f"Ingested {result.unique} items ({result.inserted} new)", event="ingest", **result.__dict__)
    return result


async def run_summarization(scheduler: SummarizationScheduler) -> BatchRunResult:
    result = await scheduler.run()
    log_event(
        logger,
        f"Summarization {result.status}: {result.newly_summarized} new, {len(result.errors)} errors",
        event="summarize_run",
        status=result.status,
        newly_summarized=result.newly_summarized,
        errors=len(result.errors),
    )
    return result


async def purge(repository: ArticleRepository, summary_ttl_days: int = 7) -> PurgeResult:
    summaries = await repository.purge_expired_summaries(summary_ttl_days)
    articles = await repository.purge_expired_articles()
    log_event(logger, f"Purged {summaries} summaries and {articles} articles", event="purge", summaries=summaries, articles=articles)
    return PurgeResult(summaries=summaries, articles=articles)


async def load_health(cfg: AppConfig, store: DocumentStore, tracker: CrawlHealthTracker) -> bool:
    """Restore saved crawl health states into tracker when persistence is enabled."""
    if not cfg.store.persist_health:
        return False
    loaded = await HealthStateStore(store).load(tracker)
    if loaded:
        logger.debug("Loaded crawl health for %d sources", len(tracker.export_states()))
    return loaded


async def save_health(cfg: AppConfig, store: DocumentStore, tracker: CrawlHealthTracker) -> None:
    if cfg.store.persist_health:
        await HealthStateStore(store).save(tracker)
