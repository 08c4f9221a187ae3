import pytest
from unittest.mock import AsyncMock, MagicMock

from newsbrief.news.models.article import FetchResult
from newsbrief.news.services.orchestrator import (
    AggregationOrchestrator,
    backfill_items,
    error_item,
    fetch_size_for,
)
from newsbrief.news.services.summarization import SummarizationService
from newsbrief.news.models.article import SummaryItem


def _item(item_id, url=""):
    return SummaryItem(id=item_id, title=item_id, snippet="", source="", url=url, topic="t")


@pytest.fixture
def stub_fetcher():
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=FetchResult(articles=[]))
    return fetcher


@pytest.fixture
def orchestrator(stub_fetcher):
    return AggregationOrchestrator(stub_fetcher, SummarizationService(None))


class TestFetchSize:
    @pytest.mark.parametrize("word_count,expected", [
        (100, 6), (799, 6), (800, 12), (1499, 12), (1500, 20), (3000, 20),
    ])
    def test_tiers(self, word_count, expected):
        assert fetch_size_for(word_count) == expected


class TestBackfillItems:
    def test_fills_to_three_from_pool(self):
        items = [_item("a", "https://x/a")]
        pool = [_item("cand-a", "https://x/a"), _item("cand-b", "https://x/b"), _item("cand-c", "https://x/c")]

        result = backfill_items(items, pool)

        assert [i.url for i in result] == ["https://x/a", "https://x/b", "https://x/c"]

    def test_urlless_entries_keyed_by_id(self):
        result = backfill_items([], [_item("one"), _item("one"), _item("two")])

        assert [i.id for i in result] == ["one", "two"]

    def test_untouched_when_already_full(self):
        items = [_item(str(i), f"https://x/{i}") for i in range(4)]
        assert backfill_items(items, [_item("z", "https://x/z")]) == items

    def test_error_item_shape(self):
        item = error_item("crypto", 123)

        assert item.id == "crypto-error-123"
        assert item.title == "Issue fetching crypto"
        assert item.snippet == 'Failed to fetch news for "crypto".'
        assert item.url == ""


class TestAggregationOrchestrator:
    async def test_technology_scenario(self, orchestrator, stub_fetcher, article_factory):
        articles = [
            article_factory(f"Tech {i}", description=f"Chip   news {i}  " + "d" * 300)
            for i in range(8)
        ]
        stub_fetcher.fetch.return_value = FetchResult(articles=articles)

        result = await orchestrator.run(["technology"], word_count=200, location="Austin, TX")

        geo = stub_fetcher.fetch.call_args.args[1]
        assert stub_fetcher.fetch.call_args.args[2] == 6
        assert (geo.city, geo.region, geo.country_code) == ("Austin", "TX", "US")
        assert len(result.items) == 6
        assert result.items[0].snippet.startswith("Chip news 0 d")
        assert len(result.items[0].snippet) == 180
        assert result.items[0].id.startswith("technology-0-")
        assert result.combined_text == "Here's your technology news. Tech 0. Tech 1. Tech 2."

    async def test_structured_geo_wins_over_location(self, orchestrator, stub_fetcher):
        await orchestrator.run(["local"], geo={"city": "Columbus", "region": "Ohio", "countryCode": "US"},
                               location="Austin, TX")

        geo = stub_fetcher.fetch.call_args.args[1]
        assert geo.city == "Columbus"
        assert geo.country == "US"

    async def test_two_topics_one_failing(self, orchestrator, stub_fetcher, article_factory):
        async def fetch(topic, geo, size):
            if topic == "crypto":
                raise RuntimeError("unexpected payload")
            return FetchResult(articles=[article_factory(f"Science {i}") for i in range(6)])

        stub_fetcher.fetch = AsyncMock(side_effect=fetch)

        result = await orchestrator.run(["science", "crypto"], word_count=200)

        errors = [i for i in result.items if i.id.startswith("crypto-error-")]
        science = [i for i in result.items if i.topic == "science"]
        assert len(errors) == 1
        assert errors[0].title == "Issue fetching crypto"
        assert len(science) == 6
        assert result.combined_text.startswith("Here's your science news.")

    async def test_two_topics_one_llm_failure(self, stub_fetcher, mock_llm_service, article_factory):
        async def fetch(topic, geo, size):
            return FetchResult(articles=[article_factory(f"{topic.title()} {i}") for i in range(6)])

        async def generate(system_prompt, user_prompt, temperature, max_tokens):
            if "crypto" in user_prompt:
                raise RuntimeError("rate limited")
            return "Science moved forward today."

        stub_fetcher.fetch = AsyncMock(side_effect=fetch)
        mock_llm_service.generate_with_fallback = AsyncMock(side_effect=generate)
        orchestrator = AggregationOrchestrator(stub_fetcher, SummarizationService(mock_llm_service))

        result = await orchestrator.run(["science", "crypto"], word_count=200)

        assert len([i for i in result.items if i.topic == "science"]) == 6
        assert len([i for i in result.items if i.topic == "crypto"]) == 6
        assert not any("-error-" in i.id for i in result.items)
        assert result.combined_text == (
            "Science moved forward today. Here's your crypto news. Crypto 0. Crypto 1. Crypto 2."
        )

    async def test_failed_summary_after_fetch_still_pools_candidates(self, stub_fetcher, article_factory):
        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(side_effect=RuntimeError("broken"))
        orchestrator = AggregationOrchestrator(stub_fetcher, summarizer)
        stub_fetcher.fetch.return_value = FetchResult(
            articles=[article_factory(f"Story {i}") for i in range(4)]
        )

        result = await orchestrator.run(["business"])

        assert result.items[0].title == "Issue fetching business"
        assert len(result.items) == 3
        assert result.items[1].id.startswith("business-cand-0-")
        assert result.combined_text == ""

    async def test_backfills_from_pool_when_uplifting_filter_empties(self, orchestrator, stub_fetcher, article_factory):
        stub_fetcher.fetch.return_value = FetchResult(articles=[
            article_factory("Crash on highway"),
            article_factory("Fire downtown"),
            article_factory("Storm damage", description="Flood warnings"),
            article_factory("Market loss"),
        ])

        result = await orchestrator.run(["business"], uplifting_only=True)

        assert len(result.items) == 3
        assert all("-cand-" in i.id for i in result.items)
        assert result.combined_text == "No recent coverage found for business."

    async def test_pool_smaller_than_three(self, orchestrator, stub_fetcher, article_factory):
        stub_fetcher.fetch.return_value = FetchResult(articles=[article_factory("Only")])

        result = await orchestrator.run(["gardening"])

        assert len(result.items) == 1

    async def test_combined_text_in_topic_order(self, orchestrator, stub_fetcher, article_factory):
        async def fetch(topic, geo, size):
            return FetchResult(articles=[article_factory(f"{topic} story")])

        stub_fetcher.fetch = AsyncMock(side_effect=fetch)

        result = await orchestrator.run(["sports", "health"])

        assert result.combined_text == (
            "Here's your sports news. sports story. Here's your health news. health story."
        )

    async def test_to_dict_shape(self, orchestrator):
        body = (await orchestrator.run([])).to_dict()

        assert body == {"items": [], "combined": {"text": "", "audioUrl": None}}

    async def test_run_batches(self, orchestrator, stub_fetcher, article_factory):
        stub_fetcher.fetch.return_value = FetchResult(articles=[article_factory("Shared")])

        results = await orchestrator.run_batches([
            {"topics": ["science"], "word_count": 200},
            {"topics": ["sports"], "word_count": 900},
        ])

        assert len(results) == 2
        assert results[0]["items"][0]["topic"] == "science"
        sizes = sorted(call.args[2] for call in stub_fetcher.fetch.await_args_list)
        assert sizes == [6, 12]
