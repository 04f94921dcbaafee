"""
Optional Langfuse tracing for aggregation rounds, scheduler runs and
provider calls.

Tracing is off unless LangfuseConfig.enabled is set and the langfuse package
is installed (the "tracing" extra). When off, every helper is a no-op and
start_span yields None.
"""

from __future__ import annotations

from contextlib import contextmanager
import json
import logging
import os
from typing import Any, Iterator

from ..config import LangfuseConfig
from ..utils.logging import redact_text, truncate_text

logger = logging.getLogger(__name__)

_CLIENT: Any | None = None
_CFG: LangfuseConfig | None = None


def setup_langfuse(cfg: LangfuseConfig) -> bool:
    """Initialize the Langfuse client if enabled.

    Returns:
        True if tracing is active after the call
    """
    global _CLIENT, _CFG  # noqa: PLW0603
    _CFG = cfg
    _CLIENT = None
    if not cfg.enabled:
        return False
    try:
        from langfuse import Langfuse  # type: ignore
    except ImportError:
        logger.warning("Langfuse tracing enabled but the langfuse package is not installed")
        return False

    _CLIENT = Langfuse(
        public_key=cfg.public_key or os.getenv("LANGFUSE_PUBLIC_KEY"),
        secret_key=cfg.secret_key or os.getenv("LANGFUSE_SECRET_KEY"),
        host=cfg.host or os.getenv("LANGFUSE_HOST"),
        environment=cfg.environment or os.getenv("LANGFUSE_ENVIRONMENT"),
        release=cfg.release or os.getenv("LANGFUSE_RELEASE"),
    )
    return True


def get_client() -> Any | None:
    return _CLIENT


@contextmanager
def start_span(
    name: str,
    kind: str,
    input_value: Any | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Any | None]:
    """Open a Langfuse span around a block, or yield None when tracing is off."""
    client = _CLIENT
    if client is None:
        yield None
        return

    metadata = _clean_attributes(attributes or {})
    metadata.setdefault("span.kind", kind)
    try:
        cm = client.start_as_current_span(name=name, input=_payload(input_value), metadata=metadata)
        span = cm.__enter__()
    except Exception:  # noqa: BLE001
        yield None
        return

    try:
        yield span
    finally:
        try:
            cm.__exit__(None, None, None)
        except Exception:  # noqa: BLE001
            logger.debug("Failed to close span %s", name)


def set_span_output(span: Any | None, output_value: Any) -> None:
    if span is None:
        return
    payload = _payload(output_value)
    if payload is not None:
        _update(span, output=payload)


def record_span_error(span: Any | None, exc: BaseException) -> None:
    if span is None:
        return
    _update(span, level="ERROR", status_message=f"{type(exc).__name__}: {exc}")


def flush() -> None:
    """Send pending traces. Call before process exit."""
    client = _CLIENT
    if client is None or not hasattr(client, "flush"):
        return
    try:
        client.flush()
    except Exception:  # noqa: BLE001
        logger.debug("Langfuse flush failed")


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    if _CFG is None:
        return text
    return truncate_text(redact_text(text, _CFG.redaction), _CFG.max_text_chars)


def _clean_attributes(attrs: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in attrs.items()
        if value is not None
    }


def _update(span: Any, **kwargs: Any) -> None:
    if not hasattr(span, "update"):
        return
    try:
        span.update(**kwargs)
    except Exception:  # noqa: BLE001
        logger.debug("Failed to update span")
