"""
Core data types for the trendwire pipeline.

This module defines the records that flow between the pipeline stages:
- NewsItem: Canonical article record emitted by source crawlers
- CommunityPost: Board post used only as a trend signal
- CommunityMention: Compact reference to a matching post, attached to NewsItem
- CrawlLogEntry: One record per crawl invocation of a source
- SourceHealthState: Derived per-source health state
- SummaryRecord: Generated summary lines for one NewsItem
- SummarizationCycle: Durable progress state of the batch scheduler
- TrendingResult, NewsPage, SearchResult: Aggregator responses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Fixed set of article categories."""

    ECONOMY = "경제"
    INCIDENT = "사건사고"
    SOCIETY = "사회"
    POLITICS = "정치"
    WORLD = "세계"
    SCIENCE = "IT/과학"
    ENTERTAINMENT = "연예"
    SPORTS = "스포츠"
    OTHER = "기타"


class CrawlMethod(str, Enum):
    """HTML-fetch strategy recommended to a source adapter."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    SKIPPED = "skipped"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string (or pass through a datetime) as aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class CommunityMention:
    """A board post that matched an article during trend scoring."""

    source: str
    post_title: str
    post_url: str
    comment_count: int
    view_count: int
    collected_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "post_title": self.post_title,
            "post_url": self.post_url,
            "comment_count": self.comment_count,
            "view_count": self.view_count,
            "collected_at": isoformat_utc(self.collected_at),
        }


@dataclass
class NewsItem:
    """Canonical article record.

    Attributes:
        id: Stable identifier derived from the canonical URL
        title: Article headline
        url: Link to the original article
        source: Source tag of the portal that produced the item (e.g. "naver")
        source_name: Display name of the publisher
        category: One of the fixed Category values
        published_at: Publication timestamp (aware)
        collected_at: Time the crawler collected the item (aware)
        summary: Optional lede or description text
        thumbnail: Optional thumbnail URL
        trend_score: Integer score, set on the trending path only
        community_mentions: Matching board posts, set on the trending path only
    """

    id: str
    title: str
    url: str
    source: str
    source_name: str
    category: Category
    published_at: datetime
    collected_at: datetime = field(default_factory=utcnow)
    summary: str | None = None
    thumbnail: str | None = None
    trend_score: int | None = None
    community_mentions: list[CommunityMention] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "source_name": self.source_name,
            "category": self.category.value,
            "published_at": isoformat_utc(self.published_at),
            "collected_at": isoformat_utc(self.collected_at),
            "summary": self.summary,
            "thumbnail": self.thumbnail,
        }
        if self.trend_score is not None:
            data["trend_score"] = self.trend_score
        if self.community_mentions is not None:
            data["community_mentions"] = [m.to_dict() for m in self.community_mentions]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NewsItem:
        mentions = data.get("community_mentions")
        return cls(
            id=data["id"],
            title=data["title"],
            url=data["url"],
            source=data.get("source", ""),
            source_name=data.get("source_name", ""),
            category=Category(data.get("category", Category.OTHER.value)),
            published_at=parse_timestamp(data.get("published_at")) or utcnow(),
            collected_at=parse_timestamp(data.get("collected_at")) or utcnow(),
            summary=data.get("summary"),
            thumbnail=data.get("thumbnail"),
            trend_score=data.get("trend_score"),
            community_mentions=(
                [
                    CommunityMention(
                        source=m["source"],
                        post_title=m["post_title"],
                        post_url=m["post_url"],
                        comment_count=m.get("comment_count", 0),
                        view_count=m.get("view_count", 0),
                        collected_at=parse_timestamp(m.get("collected_at")) or utcnow(),
                    )
                    for m in mentions
                ]
                if mentions is not None
                else None
            ),
        )


@dataclass
class CommunityPost:
    """Board post used as a trend signal. Never persisted."""

    source: str
    title: str
    url: str
    comment_count: int = 0
    view_count: int = 0
    keywords: list[str] = field(default_factory=list)


@dataclass
class CrawlLogEntry:
    """One record per crawl invocation of a source."""

    timestamp: datetime
    source: str
    method: CrawlMethod
    collected: int
    deduplicated: int
    filtered: int
    failed: int
    duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": isoformat_utc(self.timestamp),
            "source": self.source,
            "method": self.method.value,
            "collected": self.collected,
            "deduplicated": self.deduplicated,
            "filtered": self.filtered,
            "failed": self.failed,
            "duration_ms": self.duration_ms,
        }


@dataclass
class SourceHealthState:
    """Derived health state of one source."""

    consecutive_failures: int = 0
    recommended_method: CrawlMethod = CrawlMethod.PRIMARY
    skipped_rounds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "consecutive_failures": self.consecutive_failures,
            "recommended_method": self.recommended_method.value,
            "skipped_rounds": self.skipped_rounds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceHealthState:
        return cls(
            consecutive_failures=int(data.get("consecutive_failures") or 0),
            recommended_method=CrawlMethod(data.get("recommended_method") or CrawlMethod.PRIMARY.value),
            skipped_rounds=int(data.get("skipped_rounds") or 0),
        )


@dataclass
class SummaryRecord:
    """Generated summary for one NewsItem, keyed 1:1 by item id."""

    item_id: str
    lines: list[str]
    conclusion: str
    generated_at: datetime = field(default_factory=utcnow)


@dataclass
class SummarizationCycle:
    """Durable progress state of the summarization scheduler.

    A cycle is complete once cycle_done >= cycle_total.
    """

    cycle_total: int = 0
    cycle_done: int = 0
    last_run_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.cycle_done >= self.cycle_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_total": self.cycle_total,
            "cycle_done": self.cycle_done,
            "last_run_at": isoformat_utc(self.last_run_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SummarizationCycle:
        return cls(
            cycle_total=int(data.get("cycle_total") or 0),
            cycle_done=int(data.get("cycle_done") or 0),
            last_run_at=parse_timestamp(data.get("last_run_at")),
        )


@dataclass
class TrendingResult:
    items: list[NewsItem]
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class NewsPage:
    """One page of the latest-news path."""

    items: list[NewsItem]
    total: int
    page: int
    has_more: bool
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class NewsCluster:
    """Search results grouped around one representative article."""

    id: str
    topic: str
    representative: NewsItem
    related: list[NewsItem] = field(default_factory=list)


@dataclass
class SearchResult:
    """One page of keyword search results.

    Attributes:
        keyword: The searched keyword as given
        total: Deduplicated result count across all pages
        clusters: Clusters built from this page's items
        suggestions: Related keywords to offer next
        page: 1-based page number
        has_more: Whether another page exists
    """

    keyword: str
    total: int
    clusters: list[NewsCluster]
    suggestions: list[str]
    page: int = 1
    has_more: bool = False
    updated_at: datetime = field(default_factory=utcnow)
