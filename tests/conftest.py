import pytest
from unittest.mock import MagicMock, AsyncMock

from newsbrief.config import Settings
from newsbrief.news.models.article import Article, GeoContext
from newsbrief.news.services.article_fetcher import ArticleFetcher
from newsbrief.repositories.user_store import InMemoryUserStore
from newsbrief.services.cache_service import CacheService


def make_article(title="Headline", description="", url=None, source="Wire", published_at="2026-10-18T10:00:00Z"):
    return Article(
        title=title,
        description=description,
        url=url if url is not None else f"https://news.example.com/{title.lower().replace(' ', '-')}",
        source=source,
        published_at=published_at,
    )


def raw_article(title="Headline", description="", url=None, source="Wire", published_at="2026-10-18T10:00:00Z"):
    return {
        "title": title,
        "description": description,
        "url": url if url is not None else f"https://news.example.com/{title.lower().replace(' ', '-')}",
        "source": {"id": None, "name": source},
        "publishedAt": published_at,
        "urlToImage": None,
    }


@pytest.fixture
def article_factory():
    return make_article


@pytest.fixture
def raw_article_factory():
    return raw_article


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        newsapi_key="test-newsapi-key",
        openai_api_key=None,
        anthropic_api_key=None,
        redis_url=None,
        use_database_user_store=False,
        demo_mode=False,
        log_format="text",
    )


@pytest.fixture
def austin_geo():
    return GeoContext(city="Austin", region="Texas", country="US", country_code="US")


@pytest.fixture
def memory_cache():
    return CacheService(redis_url=None)


@pytest.fixture
def mock_provider():
    provider = MagicMock()
    provider.is_configured = True
    provider.search_everything = AsyncMock(return_value=[])
    provider.top_headlines = AsyncMock(return_value=[])
    return provider


@pytest.fixture
def fetcher(mock_provider, memory_cache):
    return ArticleFetcher(mock_provider, memory_cache)


@pytest.fixture
def mock_llm_service():
    service = MagicMock()
    service.is_available = True
    service.generate_with_fallback = AsyncMock(return_value="Here's your technology news. Chips got faster.")
    return service


@pytest.fixture
def memory_store():
    return InMemoryUserStore()


@pytest.fixture
def sql_store():
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool
    from newsbrief.core.database import Base, create_session_factory, create_tables
    from newsbrief.repositories.user_store import SqlUserStore

    # Use in-memory SQLite for tests
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield SqlUserStore(create_session_factory(engine))
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def test_app(test_settings, mock_provider, memory_cache, memory_store):
    from newsbrief.main import create_application, wire_services
    from newsbrief.services.llm_service import LLMService

    app = create_application(test_settings)
    wire_services(
        app,
        test_settings,
        cache=memory_cache,
        user_store=memory_store,
        provider=mock_provider,
        llm_service=LLMService(),
    )
    return app


@pytest.fixture
async def app_client(test_app):
    from httpx import AsyncClient, ASGITransport

    # Use ASGITransport for direct app interaction
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
