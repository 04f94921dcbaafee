"""
Exception taxonomy for the aggregation and summarization pipeline.

Transient network failures surface as FetchError and are absorbed at the
orchestrator fan-out. Provider errors are split into transient (overload,
retried once) and permanent (auth, quota) kinds. Store errors are split into
caller errors (batch too large) and fatal errors (store unreachable), the
latter being the only kind that propagates out of the pipeline.
"""

from __future__ import annotations


class TrendwireError(Exception):
    """Base class for all pipeline errors."""


class FetchError(TrendwireError):
    """Raised when an HTTP fetch fails after all retries."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class SourceError(TrendwireError):
    """Raised by a source adapter when the fetched content has an unexpected shape."""


class ProviderError(TrendwireError):
    """Base class for summarization provider failures."""


class TransientProviderError(ProviderError):
    """The provider signalled a temporary overload; worth one retry."""


class PermanentProviderError(ProviderError):
    """Authentication, quota or request errors that retrying will not fix."""


class StoreError(TrendwireError):
    """Base class for document store failures."""


class BatchTooLargeError(StoreError):
    """A single batch write exceeded the store's max batch size."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Batch of {size} writes exceeds store limit of {limit}")
        self.size = size
        self.limit = limit


class StoreUnavailableError(StoreError):
    """The store could not be reached or read. Fatal for the pipeline."""


OVERLOAD_SIGNALS = ("503", "overloaded", "UNAVAILABLE")


def is_transient(exc: BaseException) -> bool:
    """Return True when an exception carries the provider overload signal."""
    if isinstance(exc, TransientProviderError):
        return True
    if isinstance(exc, PermanentProviderError):
        return False
    message = str(exc)
    return any(signal in message for signal in OVERLOAD_SIGNALS)
