"""Google Gemini provider (REST generateContent)."""

from __future__ import annotations

from typing import Any

from ...errors import ProviderError
from ..tracing import record_span_error, set_span_output, start_span
from .base import HttpProvider

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiProvider(HttpProvider):
    """Gemini-backed batch summarizer."""

    name = "gemini"

    async def summarize(self, prompt: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_output_tokens,
            },
        }
        base_url = (self.cfg.base_url or DEFAULT_BASE_URL).rstrip("/")
        url = f"{base_url}/v1beta/models/{self.cfg.model}:generateContent"
        with start_span(
            "gemini.summarize",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": self.name},
        ) as span:
            try:
                data = await self._post_json(url, payload, params={"key": self.api_key})
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response("llm_summarize", "provider_error", str(exc), prompt)
                raise
            content = _extract_text(data)
            set_span_output(span, content)
            self._log_llm_response("llm_summarize", "ok", content, prompt)
            return content


def _extract_text(data: dict[str, Any]) -> str:
    """Join the answer parts of the first candidate.

    Thinking models interleave "thought" parts; those are dropped unless the
    response has nothing else.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""

    answer: list[str] = []
    everything: list[str] = []
    for part in parts:
        if not isinstance(part, dict) or not part.get("text"):
            continue
        everything.append(str(part["text"]))
        if not part.get("thought"):
            answer.append(str(part["text"]))
    return "".join(answer or everything)
