"""Keyword extraction for community board post titles."""

from __future__ import annotations

import re

from .types import CommunityMention, CommunityPost, utcnow

MAX_KEYWORDS = 14

# Particles, verb endings, filler adverbs and board slang that carry no topic.
STOP_WORDS = frozenset(
    {
        "이", "가", "을", "를", "의", "에", "에서", "은", "는", "으로", "로",
        "와", "과", "이나", "나", "도", "만", "부터", "까지", "조차", "마저",
        "보다", "처럼", "같이", "만큼", "이라", "라고", "이라고",
        "이다", "있다", "없다", "하다", "되다", "되어", "했다", "한다",
        "했습니다", "합니다", "입니다", "인데", "이고", "이며", "이지",
        "한다고", "했다고", "된다", "된다고",
        "때문에", "대한", "위한", "관련", "현재", "오늘", "내일", "어제",
        "이것", "그것", "저것", "이번", "그번", "어떤", "이런", "그런",
        "모든", "여러", "각각", "최근", "지금", "여기", "거기", "그리고",
        "하지만", "그러나", "따라서", "그래서", "또한", "만약", "비록",
        "아직", "이미", "다시", "또", "더", "가장", "매우", "너무",
        "ㄷㄷ", "ㅋㅋ", "ㄴㄴ", "ㅠㅠ", "ㅎㅎ", "ㄱㄱ", "진짜", "정말", "완전",
        "레전드", "개웃김", "헐", "대박", "실화", "팩트", "인정", "동의",
    }
)

_NON_WORD_RE = re.compile(r"[^\w가-힣\s]")
_DIGITS_RE = re.compile(r"^\d+$")


def extract_keywords(title: str, max_keywords: int = MAX_KEYWORDS) -> list[str]:
    """Extract single-word keywords and adjacent-word bigrams from a title.

    Words shorter than 2 characters, stop words and pure numbers are dropped.
    Bigrams keep compound proper nouns ("삼성 전자") matchable. The result is
    de-duplicated in first-seen order and capped at max_keywords.

    Example:
        >>> extract_keywords("삼성전자 반도체 공장 화재")
        ['삼성전자', '반도체', '공장', '화재', '삼성전자 반도체', '반도체 공장', '공장 화재']
    """
    words = [
        word
        for word in _NON_WORD_RE.sub(" ", title).split()
        if len(word) >= 2 and word not in STOP_WORDS and not _DIGITS_RE.match(word)
    ]
    bigrams = [f"{words[i]} {words[i + 1]}" for i in range(len(words) - 1)]
    return list(dict.fromkeys(words + bigrams))[:max_keywords]


def to_mention(post: CommunityPost) -> CommunityMention:
    """Convert a matching post into the compact mention attached to an article."""
    return CommunityMention(
        source=post.source,
        post_title=post.title,
        post_url=post.url,
        comment_count=post.comment_count,
        view_count=post.view_count,
        collected_at=utcnow(),
    )
