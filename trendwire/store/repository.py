"""
Persistence helpers on top of a DocumentStore.

Collections:
- articles: one document per NewsItem id, with summary fields embedded
  (summary_lines, summary_conclusion, summary_generated_at) and expires_at
- summaries: one SummaryRecord per item id
- meta: scheduler cycle state (document "summarize") and crawl health
  states (document "crawl_health")

Timestamps are stored as UTC ISO 8601 strings so they order lexically.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging

from ..core.types import NewsItem, SummarizationCycle, SummaryRecord, isoformat_utc, parse_timestamp, utcnow
from ..health import CrawlHealthTracker
from ..utils.logging import log_event
from .base import DocumentStore, WriteOp, write_in_batches

ARTICLES = "articles"
SUMMARIES = "summaries"
META = "meta"
CYCLE_DOC = "summarize"
HEALTH_DOC = "crawl_health"

UNSUMMARIZED = [("summary_generated_at", "==", None)]

# Article fields owned by the summarizer; crawls never overwrite them.
SUMMARY_FIELDS = ("summary_lines", "summary_conclusion", "summary_generated_at")

# Optional fields a later crawl may lack; an empty value never replaces a stored one.
KEEP_IF_MISSING = ("summary", "thumbnail")

logger = logging.getLogger(__name__)


class ArticleRepository:
    """Article corpus and summary persistence.

    Attributes:
        store: Backing document store
        article_ttl_days: Lifetime written to new articles as expires_at
    """

    def __init__(self, store: DocumentStore, article_ttl_days: int = 7):
        self.store = store
        self.article_ttl_days = article_ttl_days

    async def save_items(self, items: list[NewsItem], now: datetime | None = None) -> int:
        """Upsert crawled items into the corpus.

        Existing articles keep their summary fields, and a stored lede or
        thumbnail is kept when the new crawl has none. New articles start
        unsummarized with an expiry.

        Returns:
            Number of newly inserted articles
        """
        if not items:
            return 0
        now = now or utcnow()
        unique = list({item.id: item for item in items}.values())
        existing = await self.store.get(ARTICLES, [item.id for item in unique])

        writes: list[WriteOp] = []
        inserted = 0
        for item in unique:
            data = item.to_dict()
            data.pop("trend_score", None)
            data.pop("community_mentions", None)
            if item.id in existing:
                for key in KEEP_IF_MISSING:
                    if data.get(key) is None:
                        data.pop(key, None)
                writes.append(WriteOp(ARTICLES, item.id, data, merge=True))
                continue
            data.update(dict.fromkeys(SUMMARY_FIELDS))
            data["expires_at"] = isoformat_utc(now + timedelta(days=self.article_ttl_days))
            writes.append(WriteOp(ARTICLES, item.id, data, merge=False))
            inserted += 1

        await write_in_batches(self.store, writes)
        log_event(logger, "Corpus saved", event="corpus_saved", total=len(unique), inserted=inserted)
        return inserted

    async def existing_ids(self, ids: list[str]) -> set[str]:
        """Return the subset of ids already stored as articles."""
        return set(await self.store.get(ARTICLES, ids))

    async def count_unsummarized(self) -> int:
        return await self.store.count(ARTICLES, UNSUMMARIZED)

    async def list_unsummarized(self, limit: int) -> list[NewsItem]:
        """Return up to limit unsummarized articles, newest first."""
        rows = await self.store.query(
            ARTICLES,
            where=UNSUMMARIZED,
            order_by="published_at",
            descending=True,
            limit=limit,
        )
        return [NewsItem.from_dict(doc) for _, doc in rows]

    async def get_summaries(self, ids: list[str]) -> dict[str, SummaryRecord]:
        docs = await self.store.get(SUMMARIES, ids)
        return {
            doc_id: SummaryRecord(
                item_id=doc_id,
                lines=list(doc.get("lines") or []),
                conclusion=doc.get("conclusion") or "",
                generated_at=parse_timestamp(doc.get("generated_at")) or utcnow(),
            )
            for doc_id, doc in docs.items()
        }

    async def save_summaries(self, records: list[SummaryRecord]) -> int:
        """Write summary records and mark their articles as summarized.

        Each record produces two writes (article merge, summary document). The
        pair is never split across batches. The article merge comes first so a
        store that applies collections one at a time persists the embedded
        summary, and with it the summarized flag, before the summary document.
        Re-writing a record for the same item id overwrites it.

        Returns:
            Number of records written
        """
        if not records:
            return 0
        per_batch = max(1, self.store.max_batch_size // 2)
        for start in range(0, len(records), per_batch):
            writes: list[WriteOp] = []
            for record in records[start : start + per_batch]:
                generated_at = isoformat_utc(record.generated_at)
                writes.append(
                    WriteOp(
                        ARTICLES,
                        record.item_id,
                        {
                            "summary_lines": list(record.lines),
                            "summary_conclusion": record.conclusion,
                            "summary_generated_at": generated_at,
                        },
                        merge=True,
                    )
                )
                writes.append(
                    WriteOp(
                        SUMMARIES,
                        record.item_id,
                        {
                            "item_id": record.item_id,
                            "lines": list(record.lines),
                            "conclusion": record.conclusion,
                            "generated_at": generated_at,
                        },
                        merge=False,
                    )
                )
            await self.store.batch_write(writes)
        return len(records)

    async def purge_expired_summaries(self, ttl_days: int = 7, now: datetime | None = None) -> int:
        """Delete summaries generated more than ttl_days ago.

        Returns:
            Number of deleted summary documents
        """
        cutoff = isoformat_utc((now or utcnow()) - timedelta(days=ttl_days))
        rows = await self.store.query(SUMMARIES, where=[("generated_at", "<", cutoff)])
        writes = [WriteOp(SUMMARIES, doc_id, delete=True) for doc_id, _ in rows]
        await write_in_batches(self.store, writes)
        return len(writes)

    async def purge_expired_articles(self, now: datetime | None = None) -> int:
        """Delete articles whose expires_at has passed."""
        rows = await self.store.query(ARTICLES, where=[("expires_at", "<", isoformat_utc(now or utcnow()))])
        writes = [WriteOp(ARTICLES, doc_id, delete=True) for doc_id, _ in rows]
        await write_in_batches(self.store, writes)
        return len(writes)


class CycleStore:
    """Durable SummarizationCycle state, one document per scheduler key."""

    def __init__(self, store: DocumentStore, key: str = CYCLE_DOC):
        self.store = store
        self.key = key

    async def load(self) -> SummarizationCycle | None:
        docs = await self.store.get(META, [self.key])
        doc = docs.get(self.key)
        return SummarizationCycle.from_dict(doc) if doc else None

    async def save(self, cycle: SummarizationCycle) -> None:
        await self.store.set(META, self.key, cycle.to_dict(), merge=False)


class HealthStateStore:
    """Crawl health states carried between processes in the meta collection."""

    def __init__(self, store: DocumentStore, key: str = HEALTH_DOC):
        self.store = store
        self.key = key

    async def load(self, tracker: CrawlHealthTracker) -> bool:
        """Load saved states into tracker; returns False when nothing was saved."""
        docs = await self.store.get(META, [self.key])
        doc = docs.get(self.key)
        if not doc:
            return False
        tracker.load_states(doc.get("sources") or {})
        return True

    async def save(self, tracker: CrawlHealthTracker) -> None:
        await self.store.set(
            META,
            self.key,
            {"sources": tracker.export_states(), "saved_at": isoformat_utc(utcnow())},
            merge=False,
        )
