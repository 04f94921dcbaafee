"""
Batch summarization: prompt building, response parsing and the scheduler.
"""

from .parser import parse_numbered_blocks, parse_summaries
from .prompts import build_batch_prompt, estimate_tokens
from .scheduler import BatchRunResult, SummarizationScheduler, chunk_items, plan_cycle

__all__ = [
    "parse_numbered_blocks",
    "parse_summaries",
    "build_batch_prompt",
    "estimate_tokens",
    "BatchRunResult",
    "SummarizationScheduler",
    "chunk_items",
    "plan_cycle",
]
