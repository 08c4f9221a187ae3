import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from newsbrief.news.models.article import GeoContext
from newsbrief.services.cache_service import CacheService


class TestMemoryBackend:
    async def test_set_then_get_round_trip(self, memory_cache):
        await memory_cache.set("news:technology:no-geo:6", {"articles": [{"title": "A"}]}, 900)

        assert await memory_cache.get("news:technology:no-geo:6") == {"articles": [{"title": "A"}]}
        assert memory_cache.backend == "memory"

    async def test_missing_key_is_none(self, memory_cache):
        assert await memory_cache.get("absent") is None
        assert memory_cache.get_cache_stats()["cache_misses"] == 1

    async def test_entry_expires_after_ttl(self, memory_cache):
        await memory_cache.set("short", {"v": 1}, ttl_seconds=1)
        assert await memory_cache.get("short") == {"v": 1}

        await asyncio.sleep(1.1)

        assert await memory_cache.get("short") is None

    async def test_rewrite_replaces_pending_expiry(self, memory_cache):
        await memory_cache.set("key", {"v": 1}, ttl_seconds=1)
        await memory_cache.set("key", {"v": 2}, ttl_seconds=60)

        await asyncio.sleep(1.1)

        assert await memory_cache.get("key") == {"v": 2}
        await memory_cache.close()

    async def test_delete(self, memory_cache):
        await memory_cache.set("key", {"v": 1})
        await memory_cache.delete("key")
        assert await memory_cache.get("key") is None

    async def test_unserializable_value_is_swallowed(self, memory_cache):
        await memory_cache.set("bad", {"v": object()})

        assert await memory_cache.get("bad") is None
        assert memory_cache.get_cache_stats()["errors"] == 1


class TestRedisBackend:
    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.delete = AsyncMock(return_value=1)
        client.aclose = AsyncMock()
        return client

    async def test_uses_redis_when_reachable(self, redis_client):
        cache = CacheService(redis_client=redis_client)
        await cache.connect()

        await cache.set("k", {"v": 1}, 900)

        assert cache.backend == "redis"
        redis_client.set.assert_awaited_once_with("k", '{"v": 1}', ex=900)

    async def test_falls_back_to_memory_when_unreachable(self, redis_client):
        redis_client.ping = AsyncMock(side_effect=ConnectionError("refused"))
        cache = CacheService(redis_client=redis_client)
        await cache.connect()

        await cache.set("k", {"v": 1}, 900)

        assert cache.backend == "memory"
        assert await cache.get("k") == {"v": 1}
        redis_client.set.assert_not_called()

    async def test_backend_errors_read_as_misses(self, redis_client):
        redis_client.get = AsyncMock(side_effect=ConnectionError("lost"))
        redis_client.set = AsyncMock(side_effect=ConnectionError("lost"))
        cache = CacheService(redis_client=redis_client)
        await cache.connect()

        await cache.set("k", {"v": 1})
        assert await cache.get("k") is None
        assert cache.get_cache_stats()["errors"] == 2

    async def test_close_releases_client(self, redis_client):
        cache = CacheService(redis_client=redis_client)
        await cache.connect()
        await cache.close()

        redis_client.aclose.assert_awaited_once()
        assert cache.backend == "memory"


class TestCacheKeys:
    def test_news_key_without_geo(self):
        assert CacheService.news_key("technology", None, 6) == "news:technology:no-geo:6"

    def test_news_key_with_geo(self):
        geo = GeoContext(city="Austin", region="Texas", country="US", country_code="US")
        assert CacheService.news_key("local", geo, 12) == "news:local:us-Texas-Austin:12"

    def test_tts_key_defaults(self):
        key = CacheService.tts_key("Hello world")
        assert key.startswith("tts:")
        assert key.endswith(":alloy:1")

    def test_tts_key_differs_by_voice(self):
        assert CacheService.tts_key("Hello", "alloy") != CacheService.tts_key("Hello", "nova")

    def test_tts_key_voice_case_insensitive(self):
        assert CacheService.tts_key("Hello", "NOVA", 1.0) == CacheService.tts_key("Hello", "nova", 1.0)

    def test_tts_key_normalizes_text(self):
        messy = "It’s   a\nnew day"
        clean = "It's a new day"
        assert CacheService.tts_key(messy) == CacheService.tts_key(clean)
