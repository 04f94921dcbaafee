"""Name-to-class registry for the summarization backends."""

from __future__ import annotations

import logging

import httpx

from ...config import LoggingConfig, ProviderConfig, get_api_key
from .base import SummarizationProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider

ProviderBuilder = type[SummarizationProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
    "groq": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    """Registered provider names, sorted."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig | None = None,
    llm_logger: logging.Logger | None = None,
    client: httpx.AsyncClient | None = None,
) -> SummarizationProvider:
    """Instantiate the backend named by ``provider_cfg.name`` (case-insensitive).

    Raises:
        ValueError: If the provider name is not registered or the API key is missing
    """
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        raise ValueError(
            f"Unsupported provider: {provider_cfg.name}. Supported: {', '.join(available_providers())}"
        )
    return builder(provider_cfg, get_api_key(provider_cfg), log_cfg, llm_logger, client)
