"""
Summarization batch scheduler.

One run() call is one bounded invocation:

1. Cooling: refuse to run within cooldown_seconds of the last run
2. Selecting: count the backlog, plan the cycle, claim the run by persisting
   last_run_at, then load up to max_per_run items (newest first)
3. Chunking: split the selection under the chunk size and token budget
4. Invoking: call the provider chunk by chunk, never concurrently, pausing
   between chunks; an overload is retried once after a fixed delay
5. Persisting: write summary records in store-sized batches
6. Cooling: advance cycle_done and refresh last_run_at

A failed chunk is recorded in the result's error list and the run moves on.
Only store failures propagate.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
import logging
import math
from typing import Awaitable, Callable

from ..config import SummaryConfig
from ..core.types import NewsItem, SummarizationCycle, SummaryRecord, utcnow
from ..errors import is_transient
from ..llm.providers.base import SummarizationProvider
from ..llm.tracing import set_span_output, start_span
from ..store.repository import ArticleRepository, CycleStore
from ..utils.logging import log_event
from .parser import parse_summaries
from .prompts import build_batch_prompt, estimate_tokens, format_item, prompt_overhead_tokens

logger = logging.getLogger(__name__)

STATUS_COOLING = "cooling"
STATUS_IDLE = "idle"
STATUS_COMPLETED = "completed"


@dataclass
class BatchRunResult:
    """Outcome of one scheduler invocation.

    Attributes:
        status: "cooling", "idle" or "completed"
        newly_summarized: Records written by this run
        errors: One message per failed chunk
        cycle: Cycle state after the run (None if no cycle exists yet)
        wait_seconds: Remaining cooldown when status is "cooling"
        current_batch: 1-based position of this run within the cycle
        total_batches: Runs the cycle needs at max_per_run items per run
    """

    status: str
    newly_summarized: int = 0
    errors: list[str] = field(default_factory=list)
    cycle: SummarizationCycle | None = None
    wait_seconds: int = 0
    current_batch: int = 0
    total_batches: int = 0


def plan_cycle(previous: SummarizationCycle | None, unsummarized: int) -> SummarizationCycle:
    """Start a fresh cycle or continue the previous one.

    A fresh cycle measures the current backlog. A continued cycle keeps its
    progress; if more items are waiting than it expected to remain, its total
    grows to done + unsummarized. The total never drops below done.
    """
    if previous is None or previous.cycle_total == 0 or previous.is_complete:
        last_run_at = previous.last_run_at if previous else None
        return SummarizationCycle(cycle_total=unsummarized, cycle_done=0, last_run_at=last_run_at)

    total = previous.cycle_total
    done = previous.cycle_done
    if unsummarized > total - done:
        total = done + unsummarized
    return SummarizationCycle(cycle_total=max(total, done), cycle_done=done, last_run_at=previous.last_run_at)


def chunk_items(
    items: list[NewsItem],
    chunk_size: int = 30,
    token_budget: int = 6000,
    chars_per_token: float = 2.0,
    snippet_chars: int = 300,
) -> list[list[NewsItem]]:
    """Split items into provider calls bounded by count and estimated tokens.

    Chunks keep item order. An item too large for the budget on its own still
    gets a chunk of its own.
    """
    overhead = prompt_overhead_tokens(chars_per_token)
    chunks: list[list[NewsItem]] = []
    current: list[NewsItem] = []
    used = overhead

    for index, item in enumerate(items):
        cost = estimate_tokens(format_item(index + 1, item, snippet_chars), chars_per_token)
        if current and (len(current) >= chunk_size or used + cost > token_budget):
            chunks.append(current)
            current = []
            used = overhead
        current.append(item)
        used += cost

    if current:
        chunks.append(current)
    return chunks


class SummarizationScheduler:
    """Drain the unsummarized backlog across bounded, cooled-down invocations.

    Args:
        repository: Article corpus and summary persistence
        provider: Summarization backend
        config: Scheduling limits and delays
        cycles: Durable cycle state (defaults to the repository's store)
        clock: Returns the current aware datetime
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        repository: ArticleRepository,
        provider: SummarizationProvider,
        config: SummaryConfig | None = None,
        cycles: CycleStore | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.repository = repository
        self.provider = provider
        self.config = config or SummaryConfig()
        self.cycles = cycles or CycleStore(repository.store)
        self.clock = clock or utcnow
        self.sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()

    async def run(self) -> BatchRunResult:
        async with self._lock:
            with start_span("scheduler.run", kind="chain") as span:
                result = await self._run()
                set_span_output(
                    span,
                    {"status": result.status, "newly_summarized": result.newly_summarized, "errors": len(result.errors)},
                )
                return result

    async def _run(self) -> BatchRunResult:
        cfg = self.config
        now = self.clock()
        previous = await self.cycles.load()

        if previous is not None and previous.last_run_at is not None:
            elapsed = (now - previous.last_run_at).total_seconds()
            if elapsed < cfg.cooldown_seconds:
                wait = math.ceil(cfg.cooldown_seconds - elapsed)
                log_event(logger, f"Summarization cooling down, {wait}s left", event="cooling", wait_seconds=wait)
                return BatchRunResult(status=STATUS_COOLING, cycle=previous, wait_seconds=wait)

        unsummarized = await self.repository.count_unsummarized()
        if unsummarized == 0:
            return BatchRunResult(status=STATUS_IDLE, cycle=previous)

        cycle = replace(plan_cycle(previous, unsummarized), last_run_at=now)
        total_batches = math.ceil(cycle.cycle_total / cfg.max_per_run)
        current_batch = cycle.cycle_done // cfg.max_per_run + 1
        # Claim the run before any provider call so overlapping invocations cool down.
        await self.cycles.save(cycle)

        items = await self.repository.list_unsummarized(cfg.max_per_run)
        if not items:
            return BatchRunResult(
                status=STATUS_IDLE, cycle=cycle, current_batch=current_batch, total_batches=total_batches
            )

        log_event(
            logger,
            f"Summarizing batch {current_batch}/{total_batches} ({len(items)} items)",
            event="cycle_progress",
            current_batch=current_batch,
            total_batches=total_batches,
            cycle_done=cycle.cycle_done,
            cycle_total=cycle.cycle_total,
        )

        records, errors = await self._summarize_chunks(items)
        written = await self.repository.save_summaries(records)

        cycle = replace(cycle, cycle_done=cycle.cycle_done + written, last_run_at=self.clock())
        await self.cycles.save(cycle)

        log_event(
            logger,
            f"Summaries saved: {cycle.cycle_done}/{cycle.cycle_total}",
            event="cycle_progress",
            newly_summarized=written,
            cycle_done=cycle.cycle_done,
            cycle_total=cycle.cycle_total,
            complete=cycle.is_complete,
            errors=len(errors),
        )
        return BatchRunResult(
            status=STATUS_COMPLETED,
            newly_summarized=written,
            errors=errors,
            cycle=cycle,
            current_batch=current_batch,
            total_batches=total_batches,
        )

    async def _summarize_chunks(self, items: list[NewsItem]) -> tuple[list[SummaryRecord], list[str]]:
        cfg = self.config
        chunks = chunk_items(items, cfg.chunk_size, cfg.token_budget, cfg.chars_per_token, cfg.snippet_chars)
        records: dict[str, SummaryRecord] = {}
        errors: list[str] = []

        for number, chunk in enumerate(chunks, start=1):
            try:
                records.update(await self._summarize_chunk(chunk))
            except Exception as exc:  # noqa: BLE001
                message = f"chunk {number}/{len(chunks)}: {type(exc).__name__}: {exc}"
                errors.append(message)
                log_event(
                    logger,
                    f"Summarization chunk failed: {message}",
                    level=logging.WARNING,
                    event="chunk_failed",
                    chunk=number,
                    chunks=len(chunks),
                    items=len(chunk),
                )
            if number < len(chunks):
                await self.sleep(cfg.inter_chunk_delay)

        return list(records.values()), errors

    async def _summarize_chunk(self, chunk: list[NewsItem]) -> dict[str, SummaryRecord]:
        cfg = self.config
        prompt = build_batch_prompt(chunk, cfg.snippet_chars, cfg.conclusion_marker)
        try:
            text = await self.provider.summarize(prompt)
        except Exception as exc:  # noqa: BLE001
            if not is_transient(exc):
                raise
            log_event(
                logger,
                f"Provider overloaded, retrying in {cfg.transient_retry_delay:g}s",
                level=logging.WARNING,
                event="provider_retry",
                error=str(exc),
            )
            await self.sleep(cfg.transient_retry_delay)
            text = await self.provider.summarize(prompt)

        parsed = parse_summaries(text, chunk, cfg.conclusion_marker, cfg.max_lines, generated_at=self.clock())
        if len(parsed) < len(chunk):
            logger.info("Provider returned usable summaries for %d of %d items", len(parsed), len(chunk))
        return parsed
