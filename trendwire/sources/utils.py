"""
Shared helpers for source adapters.

Adapters scrape Korean portals and boards, so timestamps arrive as Korean
relative or dotted dates ("3시간 전", "2025.01.15. 오후 3:45") as well as
RFC 822 / ISO strings. Publisher summaries carry copyright and byline noise,
and titles are the only signal for category guessing on mixed feeds.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
import re

from ..core.types import Category, utcnow

KST = timezone(timedelta(hours=9))

SUMMARY_MAX_CHARS = 300

_MINUTES_AGO_RE = re.compile(r"^(\d+)분\s*전$")
_HOURS_AGO_RE = re.compile(r"^(\d+)시간\s*전$")
_DAYS_AGO_RE = re.compile(r"^(\d+)일\s*전$")
_FULL_DATE_RE = re.compile(
    r"(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})\.\s*(?:(오전|오후)?\s*(\d{1,2}):(\d{2}))?"
)
_SHORT_DATE_RE = re.compile(r"^(\d{1,2})\.\s*(\d{1,2})\.\s*(?:(오전|오후)?\s*(\d{1,2}):(\d{2}))?")

_NOISE_PATTERNS = [
    re.compile(r"무단\s*전재(\s*및\s*재배포)?\s*(금지|禁止)?.*$", re.IGNORECASE),
    re.compile(r"저작권.*$", re.IGNORECASE),
    re.compile(r"ⓒ\s*\S+.*$"),
    re.compile(r"Copyright\s*.*$", re.IGNORECASE),
    re.compile(r"\[\s*[가-힣]{2,5}\s*기자\s*\]"),
    re.compile(r"[가-힣]{2,5}\s*기자\s*=?\s*$"),
]
_PUBLISHER_SUFFIX_RE = re.compile(r"\s+[-–—|]\s+[가-힣a-zA-Z0-9\s()]{2,20}$")
_SPACE_RE = re.compile(r"\s+")

# Checked in order; the first matching pattern decides.
_CATEGORY_PATTERNS: list[tuple[Category, re.Pattern[str]]] = [
    (
        Category.ECONOMY,
        re.compile(
            r"코스피|코스닥|금리|환율|주가|경제|GDP|물가|금융|주식|부동산|증시|채권|수출|수입|무역|원자재|원유|유가|기업|ETF"
        ),
    ),
    (
        Category.INCIDENT,
        re.compile(r"사고|화재|추락|사망|부상|범죄|경찰|검거|체포|살인|강도|폭행|절도|실종|익사|교통사고|형사|구속|기소"),
    ),
    (
        Category.POLITICS,
        re.compile(r"대통령|국회|정부|여당|야당|선거|장관|총리|국정|정치|법안|국민의힘|민주당|내란|특검|탄핵|검찰|의원"),
    ),
    (
        Category.SCIENCE,
        re.compile(r"AI|인공지능|반도체|삼성|LG|카카오|네이버|애플|구글|메타|IT|챗GPT|테슬라|엔비디아|로봇|드론|과학|우주|양자"),
    ),
    (
        Category.SPORTS,
        re.compile(r"월드컵|올림픽|축구|야구|농구|배구|스포츠|선수|경기|리그|감독|골프|수영|육상|테니스|격투"),
    ),
    (
        Category.ENTERTAINMENT,
        re.compile(r"드라마|영화|아이돌|연예|가수|배우|음악|콘서트|팬덤|예능|방송|OTT|넷플릭스"),
    ),
    (
        Category.WORLD,
        re.compile(
            r"미국|중국|일본|러시아|북한|유럽|해외|외교|전쟁|국제|이란|이스라엘|하마스|우크라이나|팔레스타인|중동|NATO|UN|트럼프"
        ),
    ),
    (
        Category.SOCIETY,
        re.compile(r"복지|교육|의료|병원|환경|사회|시민|학교|학생|민생|취업|일자리|저출생|인구|재난|기후"),
    ),
]


def _clock_hour(meridiem: str | None, hour: int) -> int:
    if meridiem == "오후" and hour < 12:
        return hour + 12
    if meridiem == "오전" and hour == 12:
        return 0
    return hour


def parse_korean_date(text: str, now: datetime | None = None) -> datetime | None:
    """Parse Korean relative and dotted dates, interpreted in KST.

    Args:
        text: Date text as shown on the page
        now: Reference time (aware); defaults to the current time

    Returns:
        Aware datetime, or None if the text is not in a known Korean format
    """
    s = text.strip()
    now = (now or utcnow()).astimezone(KST)

    if s.startswith("방금"):
        return now
    match = _MINUTES_AGO_RE.match(s)
    if match:
        return now - timedelta(minutes=int(match.group(1)))
    match = _HOURS_AGO_RE.match(s)
    if match:
        return now - timedelta(hours=int(match.group(1)))
    if s.startswith("어제"):
        return now - timedelta(days=1)
    match = _DAYS_AGO_RE.match(s)
    if match:
        return now - timedelta(days=int(match.group(1)))

    match = _FULL_DATE_RE.search(s)
    if match:
        year, month, day, meridiem, hour, minute = match.groups()
        try:
            return datetime(
                int(year),
                int(month),
                int(day),
                _clock_hour(meridiem, int(hour or 0)),
                int(minute or 0),
                tzinfo=KST,
            )
        except ValueError:
            return None

    match = _SHORT_DATE_RE.match(s)
    if match:
        month, day, meridiem, hour, minute = match.groups()
        try:
            return datetime(
                now.year,
                int(month),
                int(day),
                _clock_hour(meridiem, int(hour or 0)),
                int(minute or 0),
                tzinfo=KST,
            )
        except ValueError:
            return None

    return None


def to_datetime(text: str | None, now: datetime | None = None) -> datetime:
    """Parse adapter date text into an aware UTC datetime.

    Korean formats are tried first, then RFC 822 (RSS pubDate) and ISO 8601.
    Unparseable or missing text falls back to the current time.
    """
    fallback = now or utcnow()
    if not text or not text.strip():
        return fallback.astimezone(timezone.utc)

    korean = parse_korean_date(text, now=now)
    if korean is not None:
        return korean.astimezone(timezone.utc)

    try:
        parsed = parsedate_to_datetime(text.strip())
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
        except ValueError:
            return fallback.astimezone(timezone.utc)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def clean_summary(raw: str | None, max_chars: int = SUMMARY_MAX_CHARS) -> str | None:
    """Strip copyright notices, bylines and publisher suffixes from a lede.

    Returns None when nothing usable remains.
    """
    if not raw:
        return None
    text = raw.strip()
    if not text:
        return None

    for pattern in _NOISE_PATTERNS:
        text = pattern.sub("", text).strip()

    text = _PUBLISHER_SUFFIX_RE.sub("", text).strip()
    text = _SPACE_RE.sub(" ", text).strip()
    return text[:max_chars] or None


def guess_category(title: str) -> Category:
    """Guess an article's category from keywords in its title."""
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(title):
            return category
    return Category.OTHER


def category_for(title: str, section: Category | None = None) -> Category:
    """Guess from the title; a title with no telling keyword takes the listing section's category."""
    guessed = guess_category(title)
    if guessed is Category.OTHER and section is not None:
        return section
    return guessed


def absolute_url(href: str, base: str) -> str:
    """Resolve protocol-relative and root-relative links against a site base."""
    if href.startswith("http"):
        return href
    if href.startswith("//"):
        return f"https:{href}"
    if href.startswith("/"):
        return f"{base.rstrip('/')}{href}"
    return f"{base.rstrip('/')}/{href}"


def digits(text: str) -> int:
    """Extract the integer formed by the digits in text (0 if none)."""
    only = re.sub(r"\D", "", text or "")
    return int(only) if only else 0
