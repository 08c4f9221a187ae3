import pytest
from unittest.mock import AsyncMock, MagicMock

from newsbrief.exceptions import LLMServiceError
from newsbrief.news.models.article import GeoContext
from newsbrief.news.services.summarization import (
    SYSTEM_PROMPT,
    SummarizationService,
    build_user_prompt,
    fallback_summary,
    no_coverage_text,
)


class TestDeterministicText:
    def test_no_coverage_mentions_topic_region_country(self):
        geo = GeoContext(city="Austin", region="Texas", country="US", country_code="US")
        assert no_coverage_text("local", geo) == "No recent coverage found for local Texas US."

    def test_no_coverage_without_geo(self):
        assert no_coverage_text("science", None) == "No recent coverage found for science."

    def test_fallback_uses_first_three_titles(self, article_factory):
        articles = [article_factory(f"Title {i}") for i in range(5)]

        assert fallback_summary("technology", articles) == (
            "Here's your technology news. Title 0. Title 1. Title 2."
        )

    def test_fallback_uplifting_prefix(self, article_factory):
        text = fallback_summary("science", [article_factory("Cure found")], uplifting_only=True)
        assert text == "Here's your uplifting science news. Cure found."

    def test_fallback_skips_blank_titles(self, article_factory):
        articles = [article_factory(""), article_factory("B"), article_factory(""), article_factory("D")]

        assert fallback_summary("science", articles) == "Here's your science news. B."


class TestBuildUserPrompt:
    def test_prompt_layout(self, article_factory):
        articles = [
            article_factory("Chips  get faster -- ", description="Faster   chips\nship", source="Wire"),
            article_factory("Second", description="x" * 300, source=""),
        ]

        prompt = build_user_prompt("technology", articles, 200, False)

        assert prompt.startswith("Create a 200-word technology news summary in podcast style.\n\nArticles:\n")
        assert "1. **Chips get faster** (Wire)\nFaster chips ship" in prompt
        assert "2. **Second** (Unknown)\n" + "x" * 150 + "\n" in prompt
        assert '- Start with "Here\'s your technology news."' in prompt
        assert prompt.endswith("- Target 200 words exactly")

    def test_prompt_uses_at_most_four_articles(self, article_factory):
        articles = [article_factory(f"Title {i}") for i in range(6)]

        prompt = build_user_prompt("sports", articles, 200, True)

        assert "4. **Title 3**" in prompt
        assert "Title 4" not in prompt
        assert "uplifting sports news summary" in prompt


class TestSummarizationService:
    async def test_no_articles_skips_llm(self, mock_llm_service):
        service = SummarizationService(mock_llm_service)

        text = await service.summarize("science", None, [], 200)

        assert text == "No recent coverage found for science."
        mock_llm_service.generate_with_fallback.assert_not_called()

    async def test_without_llm_uses_fallback(self, article_factory):
        service = SummarizationService(None)

        text = await service.summarize("technology", None, [article_factory("A"), article_factory("B")], 200)

        assert text == "Here's your technology news. A. B."

    async def test_unavailable_llm_uses_fallback(self, article_factory):
        llm = MagicMock()
        llm.is_available = False
        llm.generate_with_fallback = AsyncMock()
        service = SummarizationService(llm)

        await service.summarize("technology", None, [article_factory("A")], 200)

        llm.generate_with_fallback.assert_not_called()

    async def test_llm_call_parameters(self, mock_llm_service, article_factory):
        service = SummarizationService(mock_llm_service)

        text = await service.summarize("technology", None, [article_factory("A")], 200)

        assert text == "Here's your technology news. Chips got faster."
        kwargs = mock_llm_service.generate_with_fallback.call_args.kwargs
        assert kwargs["system_prompt"] == SYSTEM_PROMPT
        assert kwargs["temperature"] == 0.6
        assert kwargs["max_tokens"] == 240

    @pytest.mark.parametrize("word_count,expected", [(200, 240), (1000, 1200), (2000, 1200), (1, 1)])
    def test_token_budget(self, word_count, expected):
        assert SummarizationService(None).max_tokens_for(word_count) == expected

    async def test_llm_error_falls_back(self, mock_llm_service, article_factory):
        mock_llm_service.generate_with_fallback.side_effect = LLMServiceError("All LLM providers failed")
        service = SummarizationService(mock_llm_service)

        text = await service.summarize("health", None, [article_factory("Clinic opens")], 200, True)

        assert text == "Here's your uplifting health news. Clinic opens."

    async def test_timeout_falls_back(self, mock_llm_service, article_factory):
        mock_llm_service.generate_with_fallback.side_effect = TimeoutError()
        service = SummarizationService(mock_llm_service)

        text = await service.summarize("health", None, [article_factory("Clinic opens")], 200)

        assert text.startswith("Here's your health news.")

    async def test_blank_content_falls_back(self, mock_llm_service, article_factory):
        mock_llm_service.generate_with_fallback.return_value = "   "
        service = SummarizationService(mock_llm_service)

        text = await service.summarize("health", None, [article_factory("Clinic opens")], 200)

        assert text == "Here's your health news. Clinic opens."
