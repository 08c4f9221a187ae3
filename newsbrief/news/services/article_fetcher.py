"""
Article Fetcher
Per-topic strategy selection over the provider client:
1. Core category  -> one category query, keyword backfill when thin
2. "general"      -> one article from each other core category, concurrently
3. "local"        -> up to seven geography queries, concurrently
4. Free text      -> one recency-windowed keyword search
Results are normalized, de-duplicated and cached.
"""

import math
from typing import Any, Dict, Iterable, List, Optional

import structlog

from ...core.concurrency import settle_all, successful_values
from ...exceptions import ProviderError
from ...services.cache_service import CacheService
from ..models.article import Article, FetchResult, GeoContext
from .provider_client import NewsProviderClient, clamp_page_size
from .topics import (
    FREE_TEXT_ONLY_CATEGORIES,
    GENERAL_FANOUT_CATEGORIES,
    GENERAL_TOPIC,
    TopicClass,
    classify_topic,
    normalize_topic,
)

logger = structlog.get_logger(__name__)

MISSING_KEY_NOTE = "Missing NEWSAPI_KEY"
CATEGORY_BACKFILL_THRESHOLD = 5
NEWS_CACHE_TTL_SECONDS = 900

RawArticles = List[Dict[str, Any]]


def deduplicate(articles: Iterable[Article]) -> List[Article]:
    """Keep the first occurrence of each url (or synthetic id), preserving order."""
    seen = set()
    out: List[Article] = []
    for article in articles:
        key = article.dedup_key
        if key in seen:
            continue
        seen.add(key)
        out.append(article)
    return out


class ArticleFetcher:
    def __init__(
        self,
        provider: NewsProviderClient,
        cache: CacheService,
        cache_ttl_seconds: int = NEWS_CACHE_TTL_SECONDS,
    ):
        self.provider = provider
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    async def fetch(self, topic: str, geo: Optional[GeoContext], max_results: int) -> FetchResult:
        """
        Fetch normalized articles for a topic.

        Args:
            topic: Requested topic (normalized internally)
            geo: Optional geography used for biasing and local queries
            max_results: Requested size, clamped to [1, 50]

        Returns:
            FetchResult; provider outages yield an empty list with a note
        """
        size = clamp_page_size(max_results)
        normalized = normalize_topic(topic)

        if not self.provider.is_configured:
            logger.warning("provider_not_configured", topic=normalized)
            return FetchResult(articles=[], note=MISSING_KEY_NOTE)

        cache_key = self.cache.news_key(normalized, geo, size)
        cached = await self.cache.get(cache_key)
        if cached:
            logger.info("news_cache_hit", topic=normalized, key=cache_key)
            return FetchResult.from_dict(cached)

        strategy = classify_topic(normalized)
        try:
            raw = await self._run_strategy(strategy, normalized, geo, size)
        except ProviderError as e:
            logger.error("article_fetch_failed", topic=normalized, strategy=strategy.value, error=e.message)
            return FetchResult(articles=[], note=e.message)

        articles = deduplicate(
            Article.from_provider(item) for item in raw if isinstance(item, dict)
        )
        if strategy == TopicClass.LOCAL:
            articles = articles[:size]

        result = FetchResult(articles=articles)
        await self.cache.set(cache_key, result.to_dict(), self.cache_ttl_seconds)

        logger.info(
            "articles_fetched",
            topic=normalized,
            strategy=strategy.value,
            article_count=len(articles),
        )
        return result

    async def _run_strategy(
        self, strategy: TopicClass, topic: str, geo: Optional[GeoContext], size: int
    ) -> RawArticles:
        match strategy:
            case TopicClass.GENERAL:
                return await self._fetch_general(geo, size)
            case TopicClass.LOCAL:
                return await self._fetch_local(geo, size)
            case TopicClass.CATEGORY:
                return await self._fetch_category(topic, geo, size)
            case _:
                return await self._fetch_free_text(topic, geo, size)

    async def _fetch_category(self, category: str, geo: Optional[GeoContext], size: int) -> RawArticles:
        country = geo.provider_country if geo else ""
        bias = (geo.city or geo.region) if geo else ""

        articles = await self.provider.top_headlines(category, country, size, bias or None)

        if len(articles) < min(CATEGORY_BACKFILL_THRESHOLD, size) and bias:
            try:
                extra = await self.provider.search_everything([category, bias], size - len(articles))
                articles = [*articles, *extra]
            except ProviderError as e:
                logger.warning("category_backfill_failed", category=category, bias=bias, error=e.message)

        return articles

    async def _fetch_general(self, geo: Optional[GeoContext], size: int) -> RawArticles:
        country = geo.provider_country if geo else ""

        branches = []
        for category in GENERAL_FANOUT_CATEGORIES:
            if category in FREE_TEXT_ONLY_CATEGORIES:
                branches.append((category, self.provider.search_everything([category], 1)))
            else:
                branches.append((category, self.provider.top_headlines(category, country, 1)))

        outcomes = await settle_all(branches)

        if not any(outcome.ok for outcome in outcomes):
            logger.warning("general_fanout_failed", branch_count=len(outcomes))
            return await self.provider.top_headlines(GENERAL_TOPIC, country, size)

        articles = [
            article
            for branch_articles in successful_values(outcomes)
            for article in branch_articles[:1]
            if article and article.get("title")
        ]
        logger.info(
            "general_fanout_completed",
            article_count=len(articles),
            category_count=len(GENERAL_FANOUT_CATEGORIES),
        )
        return articles

    async def _fetch_local(self, geo: Optional[GeoContext], size: int) -> RawArticles:
        country = geo.provider_country if geo else ""
        city = geo.city if geo else ""
        region = geo.region if geo else ""
        third = math.ceil(size / 3)
        half = math.ceil(size / 2)

        branches = []
        for label, place in (("city", city), ("region", region)):
            if not place:
                continue
            branches.extend([
                (f"{label}_headlines", self.provider.top_headlines(GENERAL_TOPIC, country, third, f'"{place}"')),
                (f"{label}_title", self.provider.search_everything([f"title:{place}"], third)),
                (f"{label}_keyword", self.provider.search_everything([place], third)),
            ])

        if country:
            branches.append(("country_headlines", self.provider.top_headlines(GENERAL_TOPIC, country, half)))

        branches.append(("generic_headlines", self.provider.top_headlines(GENERAL_TOPIC, "", half)))

        outcomes = await settle_all(branches)
        if not any(outcome.ok for outcome in outcomes):
            raise ProviderError("All local news queries failed")

        return [article for branch_articles in successful_values(outcomes) for article in branch_articles]

    async def _fetch_free_text(self, topic: str, geo: Optional[GeoContext], size: int) -> RawArticles:
        terms = [topic]
        if geo:
            terms.extend([geo.region, geo.city])
        return await self.provider.search_everything(terms, size)
