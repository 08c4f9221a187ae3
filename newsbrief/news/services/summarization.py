"""
Summarization Service
Turns a filtered article set into podcast-style prose.

The LLM is optional: without a configured provider, or when the call fails,
a deterministic headline digest is returned instead.
"""

from typing import List, Optional, Sequence

import structlog

from ...services.llm_service import LLMService
from ...utils.string_utils import clean_headline, snippet
from ..models.article import Article, GeoContext

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a professional news podcaster. Create engaging, conversational summaries "
    "with a warm, informative tone."
)

MAX_PROMPT_ARTICLES = 4
PROMPT_DESCRIPTION_LENGTH = 150
FALLBACK_HEADLINE_COUNT = 3
TOKENS_PER_WORD = 1.2


def _uplifting_prefix(uplifting_only: bool) -> str:
    return "uplifting " if uplifting_only else ""


def no_coverage_text(topic: str, geo: Optional[GeoContext]) -> str:
    parts = [str(topic or "").strip()]
    if geo is not None:
        parts.append(geo.region)
        parts.append(geo.country or geo.country_code)
    base = " ".join(part for part in parts if part)
    return f"No recent coverage found for {base}."


def fallback_summary(topic: str, articles: Sequence[Article], uplifting_only: bool = False) -> str:
    """Headline digest used whenever the LLM is unavailable or fails."""
    titles = ". ".join(article.title for article in articles[:FALLBACK_HEADLINE_COUNT] if article.title)
    return f"Here's your {_uplifting_prefix(uplifting_only)}{topic} news. {titles}."


def build_user_prompt(topic: str, articles: Sequence[Article], word_count: int, uplifting_only: bool) -> str:
    article_texts = "\n\n".join(
        f"{index + 1}. **{clean_headline(article.title)}** ({article.source or 'Unknown'})\n"
        f"{snippet(article.description, PROMPT_DESCRIPTION_LENGTH)}"
        for index, article in enumerate(articles[:MAX_PROMPT_ARTICLES])
    )
    prefix = _uplifting_prefix(uplifting_only)

    lines: List[str] = [
        f"Create a {word_count}-word {prefix}{topic} news summary in podcast style.",
        "",
        "Articles:",
        article_texts,
        "",
        "Requirements:",
        f'- Start with "Here\'s your {prefix}{topic} news."',
        "- Cover key stories in conversational tone",
        "- Connect related stories naturally",
        "- Focus on most significant developments",
        f"- Target {word_count} words exactly",
    ]
    return "\n".join(lines)


class SummarizationService:
    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        temperature: float = 0.6,
        max_tokens_cap: int = 1200,
    ):
        self.llm_service = llm_service
        self.temperature = temperature
        self.max_tokens_cap = max_tokens_cap

    def max_tokens_for(self, word_count: int) -> int:
        return min(int(word_count * TOKENS_PER_WORD), self.max_tokens_cap)

    async def summarize(
        self,
        topic: str,
        geo: Optional[GeoContext],
        articles: Sequence[Article],
        word_count: int,
        uplifting_only: bool = False,
    ) -> str:
        """
        Summarize articles for one topic.

        Never raises for LLM problems; those degrade to the fallback digest.
        """
        if not articles:
            return no_coverage_text(topic, geo)

        if self.llm_service is None or not self.llm_service.is_available:
            logger.info("summary_fallback_used", topic=topic, reason="llm_not_configured")
            return fallback_summary(topic, articles, uplifting_only)

        try:
            summary = await self.llm_service.generate_with_fallback(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=build_user_prompt(topic, articles, word_count, uplifting_only),
                temperature=self.temperature,
                max_tokens=self.max_tokens_for(word_count),
            )
        except Exception as e:
            logger.warning("summary_fallback_used", topic=topic, reason="llm_failed", error=str(e))
            return fallback_summary(topic, articles, uplifting_only)

        summary = (summary or "").strip()
        if not summary:
            logger.warning("summary_fallback_used", topic=topic, reason="empty_content")
            return fallback_summary(topic, articles, uplifting_only)

        logger.info("summary_generated", topic=topic, article_count=len(articles), word_count=word_count)
        return summary
