"""Logging setup for trendwire.

The ``trendwire`` logger tree gets a rich console handler and an optional file
handler. Structured fields are passed through ``extra`` (see :func:`log_event`)
and end up as top-level keys in JSONL output or ``key=value`` pairs in plain
output. LLM traffic goes to a separate ``trendwire.llm`` JSONL file when enabled.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any, Callable

from rich.logging import RichHandler

from ..config import LoggingConfig


_URL_RE = re.compile(r"https?://\S+")

_REDACTORS: dict[str, Callable[[str], str]] = {
    "none": lambda text: text,
    "redact_content": lambda text: "",
    "redact_urls": lambda text: _URL_RE.sub("[REDACTED_URL]", text),
}

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the root ``trendwire`` logger from config and return it."""
    logger = _fresh_logger("trendwire", cfg.level)

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        _attach(logger, console, cfg.level, logging.Formatter("%(message)s"))

    if cfg.file:
        path = _log_path(cfg, log_dir, cfg.filename)
        formatter = JsonlFormatter() if cfg.format == "jsonl" else KeyValueFormatter()
        _attach(logger, logging.FileHandler(path, encoding="utf-8"), cfg.level, formatter)

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger | None:
    """Return a JSONL logger for provider requests/responses, or None when disabled."""
    if not cfg.llm_log_enabled:
        return None

    logger = _fresh_logger("trendwire.llm", cfg.level)
    path = _log_path(cfg, log_dir, cfg.llm_log_file)
    _attach(logger, logging.FileHandler(path, encoding="utf-8"), cfg.level, JsonlFormatter())
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log ``message`` with ``fields`` attached as structured extras."""
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    redactor = _REDACTORS.get(mode)
    return redactor(text) if redactor else text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}...(truncated)"


class JsonlFormatter(logging.Formatter):
    """One JSON object per line; extras become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Plain text lines with extras appended as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if not fields:
            return line
        pairs = " ".join(f"{key}={json.dumps(value, ensure_ascii=False, default=str)}" for key, value in fields.items())
        return f"{line} {pairs}"


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


def _fresh_logger(name: str, level: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = False
    return logger


def _attach(logger: logging.Logger, handler: logging.Handler, level: str, formatter: logging.Formatter) -> None:
    handler.setLevel(_parse_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _log_path(cfg: LoggingConfig, log_dir: Path | None, filename: str) -> Path:
    directory = log_dir or Path(cfg.directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / filename


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO
