"""
Per-source crawl health tracking.

The tracker keeps an append-only log of crawl invocations and derives a
small state machine per source from it:

- healthy: the primary HTML-fetch method is recommended
- degraded: one invocation with the primary method failed more than the
  failure-rate threshold; the fallback method is recommended from then on
- skipped: several consecutive invocations collected nothing and failed;
  the orchestrator leaves the source out of the next round

The tracker is constructed explicitly and injected into the aggregator. Its
lifetime is the lifetime of the object that owns it; export_states and
load_states carry the per-source states across processes (the CLI keeps them
in the document store between commands). The crawl log is not carried over.
"""

from __future__ import annotations

import logging
import threading
import time

from .config import HealthConfig
from .core.types import CrawlLogEntry, CrawlMethod, HealthStatus, SourceHealthState, utcnow
from .utils.logging import log_event

# A degraded source stays on the fallback method until its state is reset.
RESTORE_PRIMARY_ON_SUCCESS = False


class CrawlHealthTracker:
    """Record crawl outcomes and recommend how (and whether) to crawl a source.

    Args:
        config: Health thresholds; defaults to HealthConfig()
        restore_primary_on_success: Override for RESTORE_PRIMARY_ON_SUCCESS
        logger: Logger for transition events
        max_logs: Entries kept in the in-process log
    """

    def __init__(
        self,
        config: HealthConfig | None = None,
        restore_primary_on_success: bool | None = None,
        logger: logging.Logger | None = None,
        max_logs: int = 1000,
    ) -> None:
        self.config = config or HealthConfig()
        if restore_primary_on_success is None:
            restore_primary_on_success = self.config.restore_primary_on_success or RESTORE_PRIMARY_ON_SUCCESS
        self.restore_primary_on_success = restore_primary_on_success
        self.logger = logger or logging.getLogger(__name__)
        self.max_logs = max_logs
        self._states: dict[str, SourceHealthState] = {}
        self._logs: list[CrawlLogEntry] = []
        self._lock = threading.Lock()

    def record(
        self,
        source: str,
        collected: int,
        failed: int,
        method: CrawlMethod = CrawlMethod.PRIMARY,
        duration_ms: int = 0,
        deduplicated: int | None = None,
        filtered: int | None = None,
    ) -> CrawlLogEntry:
        """Record one crawl invocation of a source and update its state.

        Args:
            source: Source identifier
            collected: Items collected by the invocation
            failed: Failed fetches (or failed category calls) in the invocation
            method: Method the invocation used
            duration_ms: Wall time of the invocation
            deduplicated: Items left after dedup (defaults to collected)
            filtered: Items left after trend filtering (defaults to collected)

        Returns:
            The appended CrawlLogEntry
        """
        entry = CrawlLogEntry(
            timestamp=utcnow(),
            source=source,
            method=method,
            collected=collected,
            deduplicated=collected if deduplicated is None else deduplicated,
            filtered=collected if filtered is None else filtered,
            failed=failed,
            duration_ms=duration_ms,
        )

        with self._lock:
            self._logs.append(entry)
            if len(self._logs) > self.max_logs:
                del self._logs[: len(self._logs) - self.max_logs]

            state = self._states.setdefault(source, SourceHealthState())
            was_skipped = state.consecutive_failures >= self.config.skip_after_failures
            state.skipped_rounds = 0

            if collected > 0:
                state.consecutive_failures = 0
                if (
                    self.restore_primary_on_success
                    and failed == 0
                    and state.recommended_method is CrawlMethod.FALLBACK
                ):
                    state.recommended_method = CrawlMethod.PRIMARY
                    log_event(self.logger, "Source restored to primary method", event="source_restored", source=source)
            elif failed >= 1:
                state.consecutive_failures += 1

            total = collected + failed
            failure_rate = failed / total if total > 0 else 0.0
            if (
                failure_rate > self.config.failure_rate_threshold
                and method is CrawlMethod.PRIMARY
                and state.recommended_method is CrawlMethod.PRIMARY
            ):
                state.recommended_method = CrawlMethod.FALLBACK
                log_event(
                    self.logger,
                    f"Source {source} failure rate {failure_rate:.0%} exceeds threshold, switching to fallback",
                    level=logging.WARNING,
                    event="source_degraded",
                    source=source,
                    failure_rate=round(failure_rate, 3),
                )

            if state.consecutive_failures >= self.config.skip_after_failures and not was_skipped:
                log_event(
                    self.logger,
                    f"Source {source} failed {state.consecutive_failures} times in a row, skipping",
                    level=logging.WARNING,
                    event="source_skipped",
                    source=source,
                    consecutive_failures=state.consecutive_failures,
                )

        log_event(self.logger, "Crawl recorded", level=logging.DEBUG, event="crawl", **entry.to_dict())
        return entry

    def recommended_method(self, source: str) -> CrawlMethod:
        state = self._states.get(source)
        return state.recommended_method if state else CrawlMethod.PRIMARY

    def is_skipped(self, source: str) -> bool:
        """Return True while the source should be left out of aggregation rounds.

        A source that reached the consecutive-failure limit sits out
        skip_rounds rounds; after that it is offered one retry round. A failed
        retry re-arms the skip, a successful one clears it.
        """
        state = self._states.get(source)
        if state is None:
            return False
        if state.consecutive_failures < self.config.skip_after_failures:
            return False
        return state.skipped_rounds < self.config.skip_rounds

    def note_skipped(self, source: str) -> None:
        """Count one aggregation round the source was left out of."""
        with self._lock:
            state = self._states.setdefault(source, SourceHealthState())
            state.skipped_rounds += 1

    def state(self, source: str) -> SourceHealthState:
        """Return a copy of the source's state."""
        state = self._states.get(source) or SourceHealthState()
        return SourceHealthState(
            consecutive_failures=state.consecutive_failures,
            recommended_method=state.recommended_method,
            skipped_rounds=state.skipped_rounds,
        )

    def status(self, source: str) -> HealthStatus:
        state = self._states.get(source)
        if state is None:
            return HealthStatus.HEALTHY
        if state.consecutive_failures >= self.config.skip_after_failures:
            return HealthStatus.SKIPPED
        if state.recommended_method is CrawlMethod.FALLBACK:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def recent_logs(self, n: int = 50) -> list[CrawlLogEntry]:
        return list(self._logs[-n:])

    def summary(self) -> dict[str, dict[str, object]]:
        """Per-source success rate over all logged invocations.

        Returns:
            Mapping of source to {"success_rate", "total_runs", "status"},
            where success_rate is collected / (collected + failed) as a
            percentage string and total_runs counts attempted items.
        """
        totals: dict[str, list[int]] = {}
        for entry in self._logs:
            success, total = totals.setdefault(entry.source, [0, 0])
            totals[entry.source] = [success + entry.collected, total + entry.collected + entry.failed]

        result: dict[str, dict[str, object]] = {}
        for source, (success, total) in totals.items():
            result[source] = {
                "success_rate": f"{success / total * 100:.1f}%" if total > 0 else "0%",
                "total_runs": total,
                "status": self.status(source).value,
            }
        return result

    def export_states(self) -> dict[str, dict[str, object]]:
        """Return every source state as plain JSON-safe dicts, keyed by source."""
        with self._lock:
            return {source: state.to_dict() for source, state in self._states.items()}

    def load_states(self, states: dict[str, dict[str, object]]) -> None:
        """Replace the per-source states with ones produced by export_states."""
        with self._lock:
            self._states = {source: SourceHealthState.from_dict(data) for source, data in states.items()}

    def reset(self) -> None:
        with self._lock:
            self._states.clear()
            self._logs.clear()


def elapsed_ms(started: float) -> int:
    """Milliseconds since a time.perf_counter() reading."""
    return int((time.perf_counter() - started) * 1000)
