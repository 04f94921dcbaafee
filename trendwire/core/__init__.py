"""
Core pipeline stages: data types, deduplication, keywords and trend scoring.
"""

from .dedup import (
    AGGREGATE_TITLE_THRESHOLD,
    TRENDING_TITLE_THRESHOLD,
    bigram_jaccard,
    canonical_url,
    dedup_by_title,
    dedup_by_url,
    normalize_title,
    process_news_items,
    stable_id,
)
from .keywords import STOP_WORDS, extract_keywords, to_mention
from .scoring import cluster_by_topic, match_score, score_trending
from .types import (
    Category,
    CommunityMention,
    CommunityPost,
    CrawlLogEntry,
    CrawlMethod,
    HealthStatus,
    NewsCluster,
    NewsItem,
    NewsPage,
    SearchResult,
    SourceHealthState,
    SummarizationCycle,
    SummaryRecord,
    TrendingResult,
)

__all__ = [
    "AGGREGATE_TITLE_THRESHOLD",
    "TRENDING_TITLE_THRESHOLD",
    "bigram_jaccard",
    "canonical_url",
    "dedup_by_title",
    "dedup_by_url",
    "normalize_title",
    "process_news_items",
    "stable_id",
    "STOP_WORDS",
    "extract_keywords",
    "to_mention",
    "cluster_by_topic",
    "match_score",
    "score_trending",
    "Category",
    "CommunityMention",
    "CommunityPost",
    "CrawlLogEntry",
    "CrawlMethod",
    "HealthStatus",
    "NewsCluster",
    "NewsItem",
    "NewsPage",
    "SearchResult",
    "SourceHealthState",
    "SummarizationCycle",
    "SummaryRecord",
    "TrendingResult",
]
