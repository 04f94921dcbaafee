"""
Command-line interface for trendwire.

Uses Typer for commands and Rich for tables. Loads .env files so provider
API keys can live outside the config file. Commands that crawl restore the
source health states saved by the previous command and save them on exit.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .aggregator import SEARCH_SORTS, NewsAggregator
from .config import AppConfig, load_config
from .core.types import Category, NewsCluster, NewsItem
from .health import CrawlHealthTracker
from .llm.tracing import flush, setup_langfuse
from .runner import (
    build_aggregator,
    build_enricher,
    build_http_client,
    build_scheduler,
    build_store,
    ingest_corpus,
    load_health,
    purge as purge_store,
    run_summarization,
    save_health,
)
from .store import ArticleRepository, DocumentStore
from .utils.logging import setup_llm_logger, setup_logging

app = typer.Typer(add_completion=False, help="Korean news aggregation, trend scoring and batch summarization.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="Path to a YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _setup(config: Path | None, log_level: str | None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    setup_langfuse(cfg.langfuse)
    return cfg


def _news_table(title: str, items: list[NewsItem], show_score: bool = False) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right")
    if show_score:
        table.add_column("Score", justify="right")
    table.add_column("Category")
    table.add_column("Title", overflow="fold")
    table.add_column("Source")
    table.add_column("Published")
    for index, item in enumerate(items, start=1):
        row = [str(index)]
        if show_score:
            row.append("" if item.trend_score is None else str(item.trend_score))
        row += [
            item.category.value,
            item.title,
            item.source_name,
            item.published_at.strftime("%Y-%m-%d %H:%M"),
        ]
        table.add_row(*row)
    return table


def _health_table(health: CrawlHealthTracker) -> Table:
    table = Table(title="Source health")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Method")
    table.add_column("Success rate", justify="right")
    for source, stats in health.summary().items():
        table.add_row(
            source,
            str(stats["status"]),
            health.recommended_method(source).value,
            str(stats["success_rate"]),
        )
    return table


def _cluster_table(title: str, clusters: list[NewsCluster]) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Title", overflow="fold")
    table.add_column("Source")
    table.add_column("Published")
    for index, cluster in enumerate(clusters, start=1):
        for position, item in enumerate([cluster.representative, *cluster.related]):
            table.add_row(
                str(index) if position == 0 else "",
                item.title if position == 0 else f"  └ {item.title}",
                item.source_name,
                item.published_at.strftime("%Y-%m-%d %H:%M"),
            )
    return table


async def _with_aggregator(
    cfg: AppConfig,
    store: DocumentStore,
    action: Callable[[NewsAggregator, Any], Awaitable[Any]],
) -> Any:
    """Run action(aggregator, client) with health state carried through the store."""
    health = CrawlHealthTracker(cfg.health)
    await load_health(cfg, store, health)
    try:
        async with build_http_client(cfg) as client:
            return await action(build_aggregator(cfg, client, health), client)
    finally:
        await save_health(cfg, store, health)


@app.command()
def trending(config: Path | None = ConfigOption, log_level: str | None = LogLevelOption):
    """Crawl all sources and print the ranked trending set."""
    cfg = _setup(config, log_level)

    async def _trending(aggregator: NewsAggregator, _client):
        return await aggregator.trending(), aggregator.health

    result, health = asyncio.run(_with_aggregator(cfg, build_store(cfg), _trending))
    console.print(_news_table(f"Trending ({result.updated_at:%H:%M:%S} UTC)", result.items, show_score=True))
    console.print(_health_table(health))
    flush()


@app.command()
def latest(
    category: str | None = typer.Option(None, "--category", help="Category, e.g. 경제 or IT/과학."),
    page: int = typer.Option(1, "--page", min=1),
    limit: int = typer.Option(10, "--limit", min=1),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Print one page of the latest news, optionally for one category."""
    try:
        selected = Category(category) if category else None
    except ValueError:
        choices = ", ".join(c.value for c in Category)
        raise typer.BadParameter(f"Unknown category {category!r}. Choose from: {choices}")
    cfg = _setup(config, log_level)

    async def _latest(aggregator: NewsAggregator, _client):
        return await aggregator.latest(selected, page=page, limit=limit)

    result = asyncio.run(_with_aggregator(cfg, build_store(cfg), _latest))
    title = f"Latest {selected.value if selected else 'all'}: page {result.page} of {result.total} items"
    console.print(_news_table(title, result.items))
    if result.has_more:
        console.print(f"More available: --page {result.page + 1}")
    flush()


@app.command()
def search(
    keyword: str = typer.Argument(..., help="Keyword to search for."),
    sort: str = typer.Option("relevance", "--sort", help="relevance or latest."),
    page: int = typer.Option(1, "--page", min=1),
    limit: int = typer.Option(10, "--limit", min=1),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Search news for a keyword and print the results grouped by topic."""
    if sort not in SEARCH_SORTS:
        raise typer.BadParameter(f"Unknown sort {sort!r}. Choose from: {', '.join(SEARCH_SORTS)}")
    if not keyword.strip():
        console.print("No results: empty keyword")
        return
    cfg = _setup(config, log_level)

    async def _search(aggregator: NewsAggregator, _client):
        return await aggregator.search(keyword, sort=sort, page=page, limit=limit)

    result = asyncio.run(_with_aggregator(cfg, build_store(cfg), _search))
    if not result.clusters:
        console.print(f"No results for {result.keyword!r}")
    else:
        console.print(_cluster_table(f"Search {result.keyword!r}: page {result.page} of {result.total} items", result.clusters))
    if result.suggestions:
        console.print(f"Related: {', '.join(result.suggestions)}")
    if result.has_more:
        console.print(f"More available: --page {result.page + 1}")
    flush()


@app.command()
def ingest(config: Path | None = ConfigOption, log_level: str | None = LogLevelOption):
    """Crawl trending and latest news and upsert them into the store."""
    cfg = _setup(config, log_level)
    store = build_store(cfg)
    repository = ArticleRepository(store, cfg.store.article_ttl_days)

    async def _ingest(aggregator: NewsAggregator, client):
        return await ingest_corpus(aggregator, repository, enricher=build_enricher(cfg, client))

    with console.status("Crawling sources..."):
        result = asyncio.run(_with_aggregator(cfg, store, _ingest))
    console.print(
        f"Ingested {result.unique} items (trending {result.trending}, latest {result.latest}), "
        f"{result.inserted} new, {result.enriched} enriched"
    )
    flush()


@app.command()
def summarize(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = typer.Option(None, "--api-key", help="Override the provider API key."),
):
    """Run one summarization scheduler invocation."""
    cfg = _setup(config, log_level)
    if api_key:
        cfg.provider.api_key = api_key
    llm_logger = setup_llm_logger(cfg.logging)
    store = build_store(cfg)

    async def _run():
        async with build_http_client(cfg) as client:
            scheduler = build_scheduler(cfg, store, llm_logger, client)
            return await run_summarization(scheduler)

    try:
        result = asyncio.run(_run())
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if result.status == "cooling":
        console.print(f"Cooling down: retry in {result.wait_seconds}s")
    elif result.status == "idle":
        console.print("Nothing to summarize")
    else:
        cycle = result.cycle
        console.print(
            f"Batch {result.current_batch}/{result.total_batches}: {result.newly_summarized} summarized"
            + (f" (cycle {cycle.cycle_done}/{cycle.cycle_total})" if cycle else "")
        )
        for error in result.errors:
            console.print(f"[yellow]{error}[/yellow]")
    flush()


@app.command()
def purge(config: Path | None = ConfigOption, log_level: str | None = LogLevelOption):
    """Delete summaries older than the configured TTL and expired articles."""
    cfg = _setup(config, log_level)
    repository = ArticleRepository(build_store(cfg), cfg.store.article_ttl_days)
    result = asyncio.run(purge_store(repository, cfg.store.summary_ttl_days))
    console.print(f"Deleted {result.summaries} summaries and {result.articles} articles")


if __name__ == "__main__":
    app()
