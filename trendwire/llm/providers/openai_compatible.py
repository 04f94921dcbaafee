"""OpenAI-compatible chat completions provider (OpenAI, Groq and similar)."""

from __future__ import annotations

from typing import Any

from ...errors import ProviderError
from ..tracing import record_span_error, set_span_output, start_span
from .base import HttpProvider

DEFAULT_BASE_URLS = {
    "groq": "https://api.groq.com/openai/v1",
}
OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatibleProvider(HttpProvider):
    name = "openai_compatible"

    @property
    def base_url(self) -> str:
        if self.cfg.base_url:
            return self.cfg.base_url.rstrip("/")
        return DEFAULT_BASE_URLS.get(self.cfg.name.lower().strip(), OPENAI_BASE_URL)

    async def summarize(self, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_output_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        with start_span(
            "openai_compatible.summarize",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": self.cfg.name},
        ) as span:
            try:
                data = await self._post_json(
                    f"{self.base_url}/chat/completions",
                    payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response("llm_summarize", "provider_error", str(exc), prompt)
                raise
            content = _extract_text(data)
            set_span_output(span, content)
            self._log_llm_response("llm_summarize", "ok", content, prompt)
            return content


def _extract_text(data: dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
