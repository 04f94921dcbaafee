"""Tests for provider HTTP calls and error classification, using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from trendwire.config import LoggingConfig, ProviderConfig
from trendwire.errors import PermanentProviderError, TransientProviderError
from trendwire.llm.providers.factory import create_provider
from trendwire.llm.providers.gemini import _extract_text


def _summarize(handler, name="gemini", prompt="[1] 제목: 테스트", **kwargs):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            cfg = ProviderConfig(name=name, model="test-model", api_key="test-key")
            provider = create_provider(cfg, client=client, **kwargs)
            return await provider.summarize(prompt)

    return asyncio.run(go())


def _gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_gemini_posts_generate_content_request():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply("[1]\n요약\n결론: 끝"))

    text = _summarize(handler)

    assert text == "[1]\n요약\n결론: 끝"
    assert seen["url"].path == "/v1beta/models/test-model:generateContent"
    assert seen["url"].params["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "[1] 제목: 테스트"


def test_gemini_503_is_transient():
    def handler(request):
        return httpx.Response(503, json={"error": {"status": "UNAVAILABLE"}})

    with pytest.raises(TransientProviderError):
        _summarize(handler)


def test_overloaded_body_is_transient():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "The model is overloaded."}})

    with pytest.raises(TransientProviderError):
        _summarize(handler)


def test_auth_and_quota_errors_are_permanent():
    def unauthorized(request):
        return httpx.Response(401, json={"error": {"message": "API key not valid"}})

    def quota(request):
        return httpx.Response(429, json={"error": {"status": "RESOURCE_EXHAUSTED"}})

    with pytest.raises(PermanentProviderError):
        _summarize(unauthorized)
    with pytest.raises(PermanentProviderError):
        _summarize(quota)


def test_transport_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection reset", request=request)

    with pytest.raises(TransientProviderError):
        _summarize(handler)


def test_invalid_json_is_permanent():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(PermanentProviderError):
        _summarize(handler)


def test_openai_compatible_chat_completions():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "[1]\n요약"}}]})

    text = _summarize(handler, name="groq")

    assert text == "[1]\n요약"
    assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["messages"] == [{"role": "user", "content": "[1] 제목: 테스트"}]
    assert seen["body"]["model"] == "test-model"


def test_llm_logger_records_redacted_response():
    records: list[logging.LogRecord] = []

    class Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    llm_logger = logging.getLogger("test_llm_logger_records_redacted_response")
    llm_logger.setLevel(logging.INFO)
    llm_logger.addHandler(Collect())

    def handler(request):
        return httpx.Response(200, json=_gemini_reply("출처 https://news.example.com/1"))

    _summarize(handler, log_cfg=LoggingConfig(llm_log_redaction="redact_urls"), llm_logger=llm_logger)

    assert records[0].raw_response == "출처 [REDACTED_URL]"
    assert records[0].status == "ok"
    assert not hasattr(records[0], "raw_prompt")


def test_extract_text_skips_thought_parts():
    data = {
        "candidates": [
            {"content": {"parts": [{"thought": True, "text": "thinking"}, {"text": "[1]\n"}, {"text": "요약"}]}}
        ]
    }

    assert _extract_text(data) == "[1]\n요약"
    assert _extract_text({"candidates": [{"content": {"parts": [{"thought": True, "text": "only"}]}}]}) == "only"
    assert _extract_text({}) == ""
