"""
Trend scoring against community board posts.

Each article title is matched against the extracted keywords of every
community post. Longer keyword matches weigh more, and a matching post adds a
logarithmic engagement bonus from its comment count. Articles are ranked by
their raw score; the integer trend_score exposed on the item is the raw
score times ten, rounded half up.

Search results are grouped with cluster_by_topic: articles whose title
contains the keyword lead a cluster, the rest ride along as related items.
"""

from __future__ import annotations

from dataclasses import replace
import math
import re

from .keywords import to_mention
from .types import CommunityPost, NewsCluster, NewsItem

MAX_MENTIONS = 3
CLUSTER_SIZE = 3
MAX_CLUSTERS = 8
UNMATCHED_CLUSTERS = 5

_NON_WORD_RE = re.compile(r"[^\w가-힣\s]")


def keyword_weight(keyword: str) -> int:
    if len(keyword) >= 4:
        return 3
    if len(keyword) >= 3:
        return 2
    return 1


def engagement_bonus(comment_count: int) -> float:
    return math.log10(max(comment_count + 1, 1)) * 0.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def match_score(title: str, posts: list[CommunityPost]) -> tuple[float, list[CommunityPost]]:
    """Score one article title against every community post.

    Args:
        title: Article title
        posts: Community posts with extracted keywords

    Returns:
        Tuple of (raw score, matching posts in post order)
    """
    normalized = _NON_WORD_RE.sub(" ", title).lower()
    score = 0.0
    matches: list[CommunityPost] = []

    for post in posts:
        post_score = sum(
            keyword_weight(keyword)
            for keyword in post.keywords
            if len(keyword) >= 2 and keyword.lower() in normalized
        )
        if post_score > 0:
            score += post_score + engagement_bonus(post.comment_count)
            matches.append(post)

    return score, matches


def score_trending(
    articles: list[NewsItem],
    posts: list[CommunityPost],
    min_score: float = 1.0,
    limit: int = 20,
    max_mentions: int = MAX_MENTIONS,
) -> list[NewsItem]:
    """Rank articles by community engagement and fill a trending set.

    Articles scoring at least min_score are sorted by raw score, highest
    first. If fewer than limit qualify, the set is padded with the remaining
    articles in their original order. With no posts at all, scoring is skipped
    and the first limit articles are returned untouched.

    Args:
        articles: Deduplicated articles in corpus order
        posts: Community posts used as the trend signal
        min_score: Minimum raw score to be ranked (0 ranks everything)
        limit: Size of the trending set
        max_mentions: Matching posts attached to each scored article

    Returns:
        Up to limit articles; scored entries are copies carrying
        trend_score and community_mentions
    """
    if not posts:
        return list(articles[:limit])

    scored: list[tuple[float, NewsItem]] = []
    for article in articles:
        score, matches = match_score(article.title, posts)
        if score < min_score:
            continue
        scored.append(
            (
                score,
                replace(
                    article,
                    trend_score=round_half_up(score * 10),
                    community_mentions=[to_mention(post) for post in matches[:max_mentions]],
                ),
            )
        )

    scored.sort(key=lambda pair: pair[0], reverse=True)
    trending = [item for _, item in scored[:limit]]

    selected = {item.id for item in trending}
    padding = [item for item in articles if item.id not in selected]
    return (trending + padding[: max(0, limit - len(trending))])[:limit]


def cluster_by_topic(
    items: list[NewsItem],
    keyword: str,
    chunk_size: int = CLUSTER_SIZE,
    max_clusters: int = MAX_CLUSTERS,
) -> list[NewsCluster]:
    """Group search results around the articles that mention the keyword.

    Articles whose title contains the keyword (case-insensitive) are taken in
    order, chunk_size at a time: the first of each chunk is the
    representative, the rest of the chunk are related, and the non-matching
    article at the same offset is attached as well. When no title contains
    the keyword, the first few articles each become a single-item cluster.

    Args:
        items: Deduplicated search results in display order
        keyword: Search keyword, used as every cluster's topic
        chunk_size: Matching articles per cluster
        max_clusters: Maximum number of clusters returned

    Returns:
        Up to max_clusters NewsCluster objects
    """
    if not items:
        return []

    needle = keyword.lower()
    primary = [item for item in items if needle in item.title.lower()]
    primary_ids = {item.id for item in primary}
    secondary = [item for item in items if item.id not in primary_ids]

    if not primary:
        return [
            NewsCluster(id=f"cl_{item.id}", topic=keyword, representative=item)
            for item in items[:UNMATCHED_CLUSTERS]
        ]

    clusters: list[NewsCluster] = []
    for start in range(0, len(primary), chunk_size):
        chunk = primary[start : start + chunk_size]
        clusters.append(
            NewsCluster(
                id=f"cl_{chunk[0].id}",
                topic=keyword,
                representative=chunk[0],
                related=chunk[1:] + secondary[start : start + 1],
            )
        )
    return clusters[:max_clusters]
