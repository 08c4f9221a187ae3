"""
Relevance filtering for fetched articles.

A strict pass keeps articles that mention the topic (or, for "local", the
geography). When that yields too little, the rest are scored and appended
best-first until the minimum count is reached.
"""

import re
from typing import List, Optional, Sequence

import structlog

from ..models.article import Article, GeoContext
from .topics import LOCAL_TOPIC, is_core_category, normalize_topic

logger = structlog.get_logger(__name__)

TITLE_MATCH_WEIGHT = 2.0
DESCRIPTION_MATCH_WEIGHT = 1.0
FRESHNESS_WEIGHT = 0.5
MIN_GEO_TOKEN_LENGTH = 2
MIN_TOPIC_TOKEN_LENGTH = 3
DEFAULT_MIN_COUNT = 6

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def topic_tokens(topic: str) -> List[str]:
    out: List[str] = []
    for token in _TOKEN_SPLIT.split(normalize_topic(topic)):
        if len(token) >= MIN_TOPIC_TOKEN_LENGTH and token not in out:
            out.append(token)
    return out


def _contains_any(text: str, tokens: Sequence[str]) -> bool:
    lowered = (text or "").lower()
    return any(token in lowered for token in tokens)


def _mentions(article: Article, tokens: Sequence[str]) -> bool:
    return _contains_any(article.title, tokens) or _contains_any(article.description, tokens)


def _token_score(article: Article, tokens: Sequence[str]) -> float:
    title = article.title.lower()
    description = article.description.lower()
    score = 0.0
    for token in tokens:
        if token in title:
            score += TITLE_MATCH_WEIGHT
        elif token in description:
            score += DESCRIPTION_MATCH_WEIGHT
    return score


def score_article(article: Article, topic: str, geo: Optional[GeoContext]) -> float:
    """Backfill score: geo and topic mentions plus a small freshness bonus."""
    geo_tokens = geo.tokens(MIN_GEO_TOKEN_LENGTH) if geo else []
    score = _token_score(article, geo_tokens)
    if not is_core_category(topic):
        score += _token_score(article, topic_tokens(topic))
    if article.published_at:
        score += FRESHNESS_WEIGHT
    return score


def _passes_strict(article: Article, topic: str, geo_tokens: List[str], words: List[str]) -> bool:
    if topic == LOCAL_TOPIC:
        return not geo_tokens or _mentions(article, geo_tokens)
    if is_core_category(topic):
        return True
    return bool(words) and _mentions(article, words)


def filter_relevant_articles(
    topic: str,
    geo: Optional[GeoContext],
    articles: Sequence[Article],
    min_count: int = DEFAULT_MIN_COUNT,
) -> List[Article]:
    """
    Rank articles by relevance to a topic and geography.

    Args:
        topic: Requested topic
        geo: Optional geography; its tokens drive "local" matching and scoring
        articles: Fetched articles in provider order
        min_count: Target number of articles

    Returns:
        At least min(min_count, len(articles)) articles; strict matches first
    """
    original = list(articles or [])
    normalized = normalize_topic(topic)
    geo_tokens = geo.tokens(MIN_GEO_TOKEN_LENGTH) if geo else []
    words = topic_tokens(normalized)

    strict_indexes = [
        index for index, article in enumerate(original)
        if _passes_strict(article, normalized, geo_tokens, words)
    ]
    if len(strict_indexes) >= min_count:
        return [original[index] for index in strict_indexes[:min_count]]

    selected = list(strict_indexes)
    taken = set(strict_indexes)

    # sorted() is stable, so equal scores keep provider order
    candidates = sorted(
        (index for index in range(len(original)) if index not in taken),
        key=lambda index: score_article(original[index], normalized, geo),
        reverse=True,
    )
    for index in candidates:
        if len(selected) >= min_count:
            break
        selected.append(index)
        taken.add(index)

    if normalized == LOCAL_TOPIC and len(selected) < min_count:
        for index in range(len(original)):
            if len(selected) >= min_count:
                break
            if index not in taken:
                selected.append(index)
                taken.add(index)

    if not selected:
        return original[:min_count]

    logger.debug(
        "relevance_filter_applied",
        topic=normalized,
        strict_count=len(strict_indexes),
        returned_count=len(selected),
    )
    return [original[index] for index in selected]
