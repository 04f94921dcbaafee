"""
Article deduplication using canonical URLs and bigram title similarity.

This module removes duplicate articles in two passes, in this order:
1. Canonical URL matches (query string stripped, first occurrence wins)
2. Near-duplicate titles (bigram Jaccard similarity against every
   previously accepted title, in insertion order)

The aggregation path uses a 0.65 threshold; the trend-scoring pre-filter
uses a looser 0.60. Both are kept as separate constants.
"""

from __future__ import annotations

import hashlib
import re

from .types import NewsItem

AGGREGATE_TITLE_THRESHOLD = 0.65
TRENDING_TITLE_THRESHOLD = 0.60

_BRACKET_TAG_RE = re.compile(r"\[.*?\]|【.*?】|〔.*?〕")
_NON_WORD_RE = re.compile(r"[^\w가-힣\s]")
_SPACE_RE = re.compile(r"\s+")


def canonical_url(url: str) -> str:
    """Strip the query string from a URL."""
    return url.split("?", 1)[0]


def stable_id(url: str, prefix: str = "n") -> str:
    """Derive a fixed-width identifier from the canonical URL.

    The same article recrawled later maps to the same id, which keeps
    summaries and caches coherent across cycles.

    Example:
        >>> stable_id("https://example.com/a?utm=1") == stable_id("https://example.com/a")
        True
    """
    digest = hashlib.md5(canonical_url(url).encode("utf-8")).hexdigest()[:12]
    return f"{prefix}_{digest}"


def normalize_title(title: str) -> str:
    """Normalize a title for near-duplicate comparison.

    Drops bracketed source tags, punctuation and repeated whitespace, then
    lowercases.
    """
    text = _BRACKET_TAG_RE.sub("", title)
    text = _NON_WORD_RE.sub("", text)
    text = _SPACE_RE.sub(" ", text)
    return text.strip().lower()


def _bigrams(text: str) -> set[str]:
    return {text[i : i + 2] for i in range(len(text) - 1)}


def bigram_jaccard(a: str, b: str) -> float:
    """Jaccard similarity over the sets of 2-character shingles.

    Returns 1.0 when both shingle sets are empty and 0.0 when exactly one is.
    """
    set_a = _bigrams(a)
    set_b = _bigrams(b)
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    intersection = len(set_a & set_b)
    return intersection / (len(set_a) + len(set_b) - intersection)


def dedup_by_url(items: list[NewsItem]) -> list[NewsItem]:
    """Drop items whose canonical URL was already seen in this batch."""
    seen: set[str] = set()
    kept: list[NewsItem] = []
    for item in items:
        key = canonical_url(item.url)
        if key in seen:
            continue
        seen.add(key)
        kept.append(item)
    return kept


def dedup_by_title(items: list[NewsItem], threshold: float = AGGREGATE_TITLE_THRESHOLD) -> list[NewsItem]:
    """Drop items whose title is a near-duplicate of an earlier accepted title.

    Comparison is O(n^2) in batch size and order-sensitive: the first of a
    group of similar titles is kept.

    Args:
        items: Items in insertion order
        threshold: Similarity at or above which a title counts as a duplicate

    Returns:
        Accepted items, preserving input order
    """
    kept: list[NewsItem] = []
    accepted: list[str] = []

    for item in items:
        normalized = normalize_title(item.title)
        if any(bigram_jaccard(normalized, existing) >= threshold for existing in accepted):
            continue
        kept.append(item)
        accepted.append(normalized)

    return kept


def process_news_items(items: list[NewsItem], threshold: float = AGGREGATE_TITLE_THRESHOLD) -> list[NewsItem]:
    """Run URL dedup, then title dedup, then sort by publication time (newest first)."""
    unique = dedup_by_title(dedup_by_url(items), threshold)
    return sorted(unique, key=lambda item: item.published_at, reverse=True)
