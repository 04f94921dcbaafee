"""
YAML-backed settings for trendwire.

Every section is a dataclass with working defaults, so an empty or missing
config file yields a runnable setup. Unknown keys are ignored. Sections:
- FetchConfig: Source adapter HTTP client
- HealthConfig: Source health tracking thresholds
- DedupConfig: Near-duplicate thresholds for each call path
- AggregateConfig: Fan-out deadlines, limits and response caching
- SummaryConfig: Batch summarization scheduling
- StoreConfig: Document store backend and limits
- ProviderConfig: Summarization provider backend
- LoggingConfig: Console, file and LLM logs
- LangfuseConfig: Optional span tracing
- AppConfig: All of the above
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """Configuration for HTTP fetching by source adapters.

    Attributes:
        timeout_seconds: Bound on each single attempt
        retries: Number of retry attempts after the first failure
        base_delay: Retry delay unit; attempt n waits base_delay * n
        user_agent: HTTP User-Agent header string
        trust_env: Whether to respect system proxy settings
        enrich_meta: Fill missing summaries and thumbnails from og: tags on ingest
        meta_timeout_seconds: Bound on one article meta fetch
        meta_concurrency: Article pages fetched at once during enrichment
        meta_max_chars: Characters of an article page read while looking for </head>
    """

    timeout_seconds: float = 10.0
    retries: int = 2
    base_delay: float = 0.5
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    trust_env: bool = True
    enrich_meta: bool = True
    meta_timeout_seconds: float = 5.0
    meta_concurrency: int = 10
    meta_max_chars: int = 30000


@dataclass
class HealthConfig:
    """Configuration for the crawl health tracker.

    Attributes:
        failure_rate_threshold: Failure rate above which a primary-method crawl degrades
        skip_after_failures: Consecutive failed invocations before a source is skipped
        skip_rounds: Aggregation rounds a skipped source sits out before a retry crawl
        restore_primary_on_success: Revert to the primary method after a clean crawl
    """

    failure_rate_threshold: float = 0.2
    skip_after_failures: int = 3
    skip_rounds: int = 1
    restore_primary_on_success: bool = False


@dataclass
class DedupConfig:
    """Configuration for near-duplicate title detection.

    Attributes:
        aggregate_threshold: Bigram Jaccard threshold for the aggregation pass
        trending_threshold: Looser threshold for the trend-scoring pre-filter
    """

    aggregate_threshold: float = 0.65
    trending_threshold: float = 0.60


@dataclass
class AggregateConfig:
    """Configuration for the aggregation orchestrator.

    Attributes:
        news_deadline_seconds: Deadline for the source crawler fan-out
        community_deadline_seconds: Deadline for the community crawler fan-out
        trending_limit: Size of the trending set
        trending_per_source: Items requested from each source on the trending path
        latest_per_category: Items requested per category on the latest path
        community_limit: Posts requested from each community board
        default_categories: Categories crawled when no category is requested
        cache_ttl_seconds: Lifetime of cached responses (0 disables caching)
        item_cache_max: Maximum number of items kept for detail lookups
        search_limit: Items read from the search feed
        search_deadline_seconds: Deadline for the search feed fetch
        suggestion_deadline_seconds: Deadline for related-keyword suggestions
        search_cache_ttl_seconds: Lifetime of cached search responses
        max_suggestions: Related keywords returned with a search
    """

    news_deadline_seconds: float = 12.0
    community_deadline_seconds: float = 8.0
    trending_limit: int = 20
    trending_per_source: int = 20
    latest_per_category: int = 20
    community_limit: int = 30
    default_categories: list[str] = field(
        default_factory=lambda: ["경제", "사회", "사건사고", "정치", "IT/과학"]
    )
    cache_ttl_seconds: float = 60.0
    item_cache_max: int = 500
    search_limit: int = 100
    search_deadline_seconds: float = 8.0
    suggestion_deadline_seconds: float = 3.0
    search_cache_ttl_seconds: float = 30.0
    max_suggestions: int = 5


@dataclass
class SummaryConfig:
    """Configuration for the summarization batch scheduler.

    Attributes:
        max_per_run: Items one invocation processes at most
        chunk_size: Items per provider call at most
        token_budget: Estimated prompt tokens per provider call at most
        chars_per_token: Characters per token used by the estimator
        snippet_chars: Characters of article summary sent per item
        cooldown_seconds: Minimum interval between invocations
        inter_chunk_delay: Pause between sequential provider calls
        transient_retry_delay: Wait before the single retry after an overload
        conclusion_marker: Prefix of the conclusion line in provider output
        max_lines: Summary lines kept per item
    """

    max_per_run: int = 30
    chunk_size: int = 30
    token_budget: int = 6000
    chars_per_token: float = 2.0
    snippet_chars: int = 300
    cooldown_seconds: float = 50.0
    inter_chunk_delay: float = 2.0
    transient_retry_delay: float = 10.0
    conclusion_marker: str = "결론"
    max_lines: int = 3


@dataclass
class StoreConfig:
    """Configuration for the document store.

    Attributes:
        backend: "memory" for an in-process store, "json" for a file-backed store
        path: Directory for the json backend
        max_batch_size: Maximum writes per batch
        summary_ttl_days: Age after which summaries are purged
        article_ttl_days: Expiry written on stored articles
        persist_health: Keep source health state in the store between runs
    """

    backend: str = "json"
    path: str = ".trendwire"
    max_batch_size: int = 500
    summary_ttl_days: int = 7
    article_ttl_days: int = 7
    persist_health: bool = True


@dataclass
class ProviderConfig:
    """Configuration for the summarization provider.

    Attributes:
        name: Provider name ("gemini", "openai", "groq", "openai_compatible")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API (None uses the provider default)
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        temperature: Sampling temperature
        max_output_tokens: Response token limit
        timeout_seconds: HTTP timeout for one provider call
    """

    name: str = "gemini"
    model: str = "gemini-2.5-flash-lite"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str | None = None
    api_key: str | None = None
    trust_env: bool = True
    temperature: float = 0.4
    max_output_tokens: int = 4096
    timeout_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """Logging destinations and formats.

    Attributes:
        level: Level name applied to the trendwire logger tree
        console: Emit records through a rich console handler
        file: Also write records to directory/filename
        format: "jsonl" for JSON lines, anything else for key=value text
        filename: Main log file name
        directory: Directory holding all log files
        llm_log_enabled: Write provider traffic to a separate JSONL file
        llm_log_detail: "response_only" or "prompt_response"
        llm_log_redaction: "none", "redact_content" or "redact_urls"
        llm_log_file: Provider traffic log file name
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "run.jsonl"
    directory: str = "logs"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Span tracing around summarization runs (requires the langfuse extra).

    Attributes:
        enabled: Turn tracing on
        public_key: Falls back to LANGFUSE_PUBLIC_KEY
        secret_key: Falls back to LANGFUSE_SECRET_KEY
        host: Falls back to LANGFUSE_HOST
        environment: Environment label attached to traces
        release: Release label attached to traces
        redaction: Redaction mode applied to span input and output
        max_text_chars: Span payloads longer than this are truncated
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Complete application settings, one attribute per YAML section."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    aggregate: AggregateConfig = field(default_factory=AggregateConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS: dict[str, type] = {
    "fetch": FetchConfig,
    "health": HealthConfig,
    "dedup": DedupConfig,
    "aggregate": AggregateConfig,
    "summary": SummaryConfig,
    "store": StoreConfig,
    "provider": ProviderConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Read ``path`` as YAML over the defaults; no path means all defaults."""
    if not path:
        return AppConfig()

    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    return AppConfig(**{name: cls(**data[name]) for name, cls in _SECTIONS.items()})


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Inline ``api_key`` wins over the ``api_key_env`` variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
