"""
Shared utility functions.

This package contains logging setup and async deadline helpers used across
multiple pipeline stages.
"""

from .deadline import Settled, settle_all, with_deadline
from .logging import (
    JsonlFormatter,
    KeyValueFormatter,
    log_event,
    redact_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "setup_llm_logger",
    "log_event",
    "redact_text",
    "truncate_text",
    "JsonlFormatter",
    "KeyValueFormatter",
    "Settled",
    "settle_all",
    "with_deadline",
]
