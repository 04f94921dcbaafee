"""Abstract interface for batch summarization providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...errors import PermanentProviderError, TransientProviderError, is_transient
from ...utils.logging import log_event, redact_text, truncate_text


class SummarizationProvider(ABC):
    """Provider interface: one prompt in, free-form response text out."""

    name: str = ""

    @abstractmethod
    async def summarize(self, prompt: str) -> str:
        """Return the model's response text for a batch prompt.

        Raises:
            TransientProviderError: The service reported a temporary overload
            PermanentProviderError: Auth, quota or request errors
        """
        raise NotImplementedError


class HttpProvider(SummarizationProvider):
    """Shared plumbing for HTTP/JSON providers.

    Attributes:
        cfg: Provider settings (model, timeout, sampling)
        api_key: Resolved API key
        log_cfg: Controls what goes into the LLM log
        llm_logger: Optional JSONL logger for raw responses
        client: Optional shared httpx.AsyncClient (the caller keeps ownership)
    """

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError(f"Missing API key for provider {cfg.name} (set {cfg.api_key_env})")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg or LoggingConfig()
        self.llm_logger = llm_logger
        self.client = client

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a JSON payload and map failures onto the provider error kinds."""
        client = self.client or httpx.AsyncClient(trust_env=self.cfg.trust_env)
        try:
            resp = await client.post(
                url,
                params=params,
                headers=headers,
                json=payload,
                timeout=self.cfg.timeout_seconds,
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            message = f"HTTP {exc.response.status_code}: {exc.response.text[:500]}"
            if exc.response.status_code == 503 or is_transient(Exception(message)):
                raise TransientProviderError(message) from exc
            raise PermanentProviderError(message) from exc
        except httpx.TransportError as exc:
            raise TransientProviderError(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise PermanentProviderError(f"Invalid JSON response: {exc}") from exc
        finally:
            if self.client is None:
                await client.aclose()

    def _log_llm_response(self, event: str, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload: dict[str, Any] = {
            "event": event,
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)
