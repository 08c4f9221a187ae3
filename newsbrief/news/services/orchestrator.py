"""
Aggregation Orchestrator
Drives fetch -> relevance filter -> optional uplifting filter -> summary for
every requested topic, then guarantees a minimum number of distinct items
in the response by backfilling from the pool of everything fetched.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from ...core.concurrency import settle_all
from ...utils.string_utils import snippet
from ..models.article import Article, GeoContext, PipelineResult, SummaryItem
from .article_fetcher import ArticleFetcher
from .content_classifier import filter_uplifting
from .geo import resolve_geo
from .relevance_filter import filter_relevant_articles
from .summarization import SummarizationService

logger = structlog.get_logger(__name__)

MIN_RESPONSE_ITEMS = 3
CANDIDATE_SNIPPET_LENGTH = 150
ITEM_SNIPPET_LENGTH = 180


def fetch_size_for(word_count: int) -> int:
    """Longer summaries draw on more articles per topic."""
    if word_count >= 1500:
        return 20
    if word_count >= 800:
        return 12
    return 6


def _to_item(article: Article, item_id: str, topic: str, snippet_length: int) -> SummaryItem:
    return SummaryItem(
        id=item_id,
        title=article.title,
        snippet=snippet(article.description or article.title, snippet_length),
        source=article.source,
        url=article.url,
        topic=topic,
    )


def error_item(topic: str, timestamp: int) -> SummaryItem:
    return SummaryItem(
        id=f"{topic}-error-{timestamp}",
        title=f"Issue fetching {topic}",
        snippet=f'Failed to fetch news for "{topic}".',
        source="",
        url="",
        topic=topic,
    )


def backfill_items(items: List[SummaryItem], pool: Sequence[SummaryItem],
                   minimum: int = MIN_RESPONSE_ITEMS) -> List[SummaryItem]:
    """Append unseen pool entries (by url, else id) until `minimum` items exist."""
    if len(items) >= minimum or not pool:
        return items

    out = list(items)
    seen = {item.identity for item in out}
    for candidate in pool:
        if len(out) >= minimum:
            break
        if candidate.identity in seen:
            continue
        out.append(candidate)
        seen.add(candidate.identity)
    return out


@dataclass
class TopicOutcome:
    topic: str
    summary: str = ""
    items: List[SummaryItem] = field(default_factory=list)


class AggregationOrchestrator:
    def __init__(self, fetcher: ArticleFetcher, summarizer: SummarizationService):
        self.fetcher = fetcher
        self.summarizer = summarizer

    async def run(
        self,
        topics: Sequence[str],
        word_count: int = 200,
        geo: Optional[Mapping[str, Any]] = None,
        location: Optional[str] = None,
        uplifting_only: bool = False,
    ) -> PipelineResult:
        """
        Build the summary response for a list of topics.

        Topics run concurrently. A topic whose pipeline raises contributes a
        single error item; the others are unaffected.
        """
        geo_context = resolve_geo(geo, location)
        per_topic = fetch_size_for(word_count)
        timestamp = int(time.time() * 1000)
        topic_names = [str(topic) for topic in topics]

        # One pool per topic; merged in topic order afterwards
        pools: List[List[SummaryItem]] = [[] for _ in topic_names]

        outcomes = await settle_all([
            (
                topic,
                self._process_topic(topic, geo_context, per_topic, word_count, uplifting_only, timestamp, pool),
            )
            for topic, pool in zip(topic_names, pools)
        ])

        items: List[SummaryItem] = []
        pieces: List[str] = []
        for topic, outcome in zip(topic_names, outcomes):
            if outcome.ok:
                items.extend(outcome.value.items)
                if outcome.value.summary:
                    pieces.append(outcome.value.summary)
            else:
                logger.error("topic_pipeline_failed", topic=topic, error=str(outcome.error))
                items.append(error_item(topic, timestamp))

        candidate_pool = [candidate for pool in pools for candidate in pool]
        filled = backfill_items(items, candidate_pool)

        logger.info(
            "pipeline_completed",
            topic_count=len(topic_names),
            item_count=len(filled),
            backfilled=len(filled) - len(items),
            candidate_count=len(candidate_pool),
        )
        return PipelineResult(items=filled, combined_text=" ".join(pieces).strip())

    async def _process_topic(
        self,
        topic: str,
        geo: Optional[GeoContext],
        per_topic: int,
        word_count: int,
        uplifting_only: bool,
        timestamp: int,
        pool: List[SummaryItem],
    ) -> TopicOutcome:
        fetched = await self.fetcher.fetch(topic, geo, per_topic)

        pool.extend(
            _to_item(article, f"{topic}-cand-{idx}-{timestamp}", topic, CANDIDATE_SNIPPET_LENGTH)
            for idx, article in enumerate(fetched.articles)
        )

        relevant = filter_relevant_articles(topic, geo, fetched.articles, per_topic)
        if uplifting_only:
            relevant = filter_uplifting(relevant)

        summary = await self.summarizer.summarize(topic, geo, relevant, word_count, uplifting_only)

        items = [
            _to_item(article, f"{topic}-{idx}-{timestamp}", topic, ITEM_SNIPPET_LENGTH)
            for idx, article in enumerate(relevant)
        ]
        logger.info(
            "topic_processed",
            topic=topic,
            fetched_count=len(fetched.articles),
            retained_count=len(items),
            note=fetched.note,
        )
        return TopicOutcome(topic=topic, summary=summary, items=items)

    async def run_batches(self, batches: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Run independent requests concurrently; each yields a full response body."""
        outcomes = await settle_all([
            (
                f"batch_{index}",
                self.run(
                    topics=batch.get("topics") or [],
                    word_count=batch.get("word_count", 200),
                    geo=batch.get("geo"),
                    location=batch.get("location"),
                    uplifting_only=bool(batch.get("uplifting_only")),
                ),
            )
            for index, batch in enumerate(batches)
        ])

        results: List[Dict[str, Any]] = []
        for outcome in outcomes:
            if outcome.ok:
                results.append(outcome.value.to_dict())
            else:
                logger.error("batch_failed", branch=outcome.label, error=str(outcome.error))
                results.append(PipelineResult().to_dict())
        return results
