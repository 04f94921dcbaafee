"""
HTTP fetching for source adapters.

This package provides the retrying, timeout-bounded fetch used by every
crawler.
"""

from .fetcher import DEFAULT_HEADERS, FetchResult, fetch_text, fetch_url

__all__ = [
    "DEFAULT_HEADERS",
    "FetchResult",
    "fetch_text",
    "fetch_url",
]
