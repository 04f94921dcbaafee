"""Batch summarization prompt and token estimation."""

from __future__ import annotations

import math

from ..core.types import NewsItem

PROMPT_HEADER = (
    "다음 뉴스들을 각각 3줄(음슴체)로 요약하고 결론을 추가해줘.\n"
    "어려운 말은 쉽게 바꾸고 핵심만 담아줘.\n\n"
)

PROMPT_FOOTER = (
    "\n\n출력 형식 (번호와 줄바꿈만 사용, 다른 설명 없이):\n"
    "[1]\n줄1\n줄2\n줄3\n{marker}:\n"
    "[2]\n줄1\n줄2\n줄3\n{marker}: "
)


def format_item(index: int, item: NewsItem, snippet_chars: int = 300) -> str:
    """Render one numbered article entry of the batch prompt."""
    snippet = (item.summary or "")[:snippet_chars]
    return f"[{index}] 제목: {item.title}\n내용: {snippet}"


def build_batch_prompt(items: list[NewsItem], snippet_chars: int = 300, marker: str = "결론") -> str:
    """Build the numbered batch prompt; entry N corresponds to items[N - 1]."""
    body = "\n\n".join(format_item(i + 1, item, snippet_chars) for i, item in enumerate(items))
    return PROMPT_HEADER + body + PROMPT_FOOTER.format(marker=marker)


def estimate_tokens(text: str, chars_per_token: float = 2.0) -> int:
    """Rough token estimate from character count (Hangul runs about 2 chars per token)."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def prompt_overhead_tokens(chars_per_token: float = 2.0, marker: str = "결론") -> int:
    return estimate_tokens(PROMPT_HEADER + PROMPT_FOOTER.format(marker=marker), chars_per_token)
