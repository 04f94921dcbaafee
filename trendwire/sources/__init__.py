"""
Source adapters.

Each adapter implements SourceCrawler or CommunityCrawler from base.py.
Adapters are best-effort scrapers; their failures are absorbed and tracked
by the aggregator.
"""

from .base import CommunityCrawler, HotIssueSource, SearchableSource, SourceCrawler
from .community import ClienCrawler, DcinsideCrawler, FmkoreaCrawler
from .daum import DaumNewsCrawler
from .google_news import GoogleNewsCrawler
from .naver import NaverNewsCrawler

__all__ = [
    "SourceCrawler",
    "CommunityCrawler",
    "SearchableSource",
    "HotIssueSource",
    "DaumNewsCrawler",
    "GoogleNewsCrawler",
    "NaverNewsCrawler",
    "DcinsideCrawler",
    "FmkoreaCrawler",
    "ClienCrawler",
]
