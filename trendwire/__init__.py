"""
Trendwire - Korean news aggregation with community trend scoring.

This package crawls Korean news portals and community boards, merges and
deduplicates the results, ranks headlines by community buzz, and drains
an unsummarized article backlog through an LLM in bounded batches.

Main entry point is the CLI via the `trendwire` command.

Example:
    $ trendwire trending
    $ trendwire summarize -c config.yaml
"""

__all__ = ["__version__", "NewsAggregator", "NewsItem", "Category", "SummarizationScheduler", "load_config"]
__version__ = "0.1.0"

from .aggregator import NewsAggregator
from .config import load_config
from .core.types import Category, NewsItem
from .summarize.scheduler import SummarizationScheduler
