"""
Parser for numbered-block summarization responses.

The provider is asked to answer with one block per article:

    [1]
    line
    line
    line
    결론: conclusion
    [2]
    ...

Parsing is lenient: text before the first marker is ignored, blank lines are
dropped, a missing conclusion yields an empty conclusion, and a block with no
summary lines is skipped (its item stays unsummarized for the next cycle).
"""

from __future__ import annotations

from datetime import datetime
import re

from ..core.types import NewsItem, SummaryRecord, utcnow

_BLOCK_MARKER_RE = re.compile(r"\[(\d+)\]")


def parse_numbered_blocks(text: str) -> list[tuple[int, list[str]]]:
    """Split response text into (index, lines) blocks.

    Example:
        >>> parse_numbered_blocks("intro\\n[1]\\na\\n\\nb\\n[2] c")
        [(1, ['a', 'b']), (2, ['c'])]
    """
    markers = list(_BLOCK_MARKER_RE.finditer(text or ""))
    blocks: list[tuple[int, list[str]]] = []
    for pos, marker in enumerate(markers):
        end = markers[pos + 1].start() if pos + 1 < len(markers) else len(text)
        body = text[marker.end() : end]
        lines = [line.strip() for line in body.splitlines() if line.strip()]
        blocks.append((int(marker.group(1)), lines))
    return blocks


def split_conclusion(lines: list[str], marker: str = "결론", max_lines: int = 3) -> tuple[list[str], str]:
    """Separate the conclusion line from the summary lines.

    Returns:
        Tuple of (up to max_lines summary lines, conclusion text or "")
    """
    conclusion_re = re.compile(rf"^{re.escape(marker)}\s*[:：]?\s*")
    conclusion = ""
    summary: list[str] = []
    for line in lines:
        if line.startswith(marker):
            if not conclusion:
                conclusion = conclusion_re.sub("", line, count=1).strip()
            continue
        summary.append(line)
    return summary[:max_lines], conclusion


def parse_summaries(
    text: str,
    items: list[NewsItem],
    marker: str = "결론",
    max_lines: int = 3,
    generated_at: datetime | None = None,
) -> dict[str, SummaryRecord]:
    """Map a numbered-block response back onto the items of its prompt.

    Block N belongs to items[N - 1]. Out-of-range indexes are ignored and the
    first block for an index wins.

    Args:
        text: Provider response
        items: Items in prompt order
        marker: Prefix of the conclusion line
        max_lines: Summary lines kept per item
        generated_at: Timestamp for the records (defaults to now)

    Returns:
        Mapping of item id to SummaryRecord
    """
    generated_at = generated_at or utcnow()
    records: dict[str, SummaryRecord] = {}
    for index, lines in parse_numbered_blocks(text):
        if index < 1 or index > len(items):
            continue
        item = items[index - 1]
        if item.id in records:
            continue
        summary, conclusion = split_conclusion(lines, marker, max_lines)
        if not summary:
            continue
        records[item.id] = SummaryRecord(
            item_id=item.id,
            lines=summary,
            conclusion=conclusion,
            generated_at=generated_at,
        )
    return records
