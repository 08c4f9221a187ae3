"""
Advisory key/value cache for article results and derived audio.

Backed by Redis when reachable, otherwise by an in-process map whose expiry
is emulated with deferred deletions on the event loop. The cache is never
the source of truth: every backend failure is logged and treated as a miss.
"""

import asyncio
import hashlib
import json
from typing import Any, Dict, Optional

import structlog
from redis.asyncio import Redis

from ..news.models.article import GeoContext
from ..utils.string_utils import normalize_speech_text

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 900
DEFAULT_VOICE = "alloy"
DEFAULT_SPEED = 1.0


class CacheService:
    """
    Redis-first cache with an in-memory fallback.

    Features:
    - get/set/delete that never raise
    - Per-entry TTL on both backends
    - Deterministic key builders for news and audio
    - Hit/miss statistics
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        connect_timeout_seconds: float = 5.0,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        redis_client: Optional[Redis] = None,
    ):
        self.redis_url = redis_url
        self.connect_timeout_seconds = connect_timeout_seconds
        self.default_ttl_seconds = default_ttl_seconds
        self._redis: Optional[Redis] = redis_client
        self._is_connected = False
        self._backend_error_logged = False
        self._memory: Dict[str, str] = {}
        self._expiry_handles: Dict[str, asyncio.TimerHandle] = {}
        self.cache_stats = {
            "cache_hits": 0,
            "cache_misses": 0,
            "errors": 0,
        }

    @property
    def backend(self) -> str:
        return "redis" if self._is_connected else "memory"

    async def connect(self) -> None:
        """Try the networked backend once; fall back to memory if it is unreachable."""
        if self._redis is None:
            if not self.redis_url:
                logger.info("cache_backend_selected", backend="memory", reason="redis_url_not_set")
                return
            self._redis = Redis.from_url(
                self.redis_url,
                socket_connect_timeout=self.connect_timeout_seconds,
                decode_responses=True,
            )

        try:
            await self._redis.ping()
            self._is_connected = True
            logger.info("cache_backend_selected", backend="redis")
        except Exception as e:
            self._is_connected = False
            self._log_backend_error("connect", e)

    async def close(self) -> None:
        for handle in self._expiry_handles.values():
            handle.cancel()
        self._expiry_handles.clear()
        self._memory.clear()

        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                logger.debug("cache_close_failed", error=str(e))
        self._is_connected = False

    def _log_backend_error(self, operation: str, error: Exception) -> None:
        self.cache_stats["errors"] += 1
        if not self._backend_error_logged:
            logger.warning(
                "cache_backend_error",
                operation=operation,
                error=str(error),
            )
            self._backend_error_logged = True

    async def get(self, key: str) -> Optional[Any]:
        try:
            if self._is_connected:
                raw = await self._redis.get(key)
            else:
                raw = self._memory.get(key)
            value = json.loads(raw) if raw else None
        except Exception as e:
            self._log_backend_error("get", e)
            value = None

        if value is None:
            self.cache_stats["cache_misses"] += 1
            logger.debug("cache_miss", key=key)
        else:
            self.cache_stats["cache_hits"] += 1
            logger.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = int(ttl_seconds or self.default_ttl_seconds)
        try:
            payload = json.dumps(value)
            if self._is_connected:
                await self._redis.set(key, payload, ex=ttl)
            else:
                self._set_in_memory(key, payload, ttl)
        except Exception as e:
            self._log_backend_error("set", e)

    async def delete(self, key: str) -> None:
        try:
            if self._is_connected:
                await self._redis.delete(key)
            else:
                self._drop_from_memory(key)
        except Exception as e:
            self._log_backend_error("delete", e)

    def _set_in_memory(self, key: str, payload: str, ttl: int) -> None:
        previous = self._expiry_handles.pop(key, None)
        if previous is not None:
            previous.cancel()

        self._memory[key] = payload
        loop = asyncio.get_running_loop()
        self._expiry_handles[key] = loop.call_later(ttl, self._drop_from_memory, key)

    def _drop_from_memory(self, key: str) -> None:
        self._memory.pop(key, None)
        handle = self._expiry_handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    @staticmethod
    def news_key(topic: str, geo: Optional[GeoContext], size: int) -> str:
        geo_fragment = geo.cache_fragment() if geo is not None else "no-geo"
        return f"news:{topic}:{geo_fragment}:{size}"

    @staticmethod
    def tts_key(text: str, voice: Optional[str] = None, speed: Optional[float] = None) -> str:
        text_hash = hashlib.md5(normalize_speech_text(text).encode("utf-8")).hexdigest()
        voice_key = str(voice or DEFAULT_VOICE).lower()
        speed_key = f"{float(speed or DEFAULT_SPEED):g}"
        return f"tts:{text_hash}:{voice_key}:{speed_key}"

    def get_cache_stats(self) -> Dict[str, Any]:
        total_requests = self.cache_stats["cache_hits"] + self.cache_stats["cache_misses"]
        cache_hit_rate = (
            (self.cache_stats["cache_hits"] / total_requests * 100)
            if total_requests > 0 else 0.0
        )

        return {
            "backend": self.backend,
            "cache_hits": self.cache_stats["cache_hits"],
            "cache_misses": self.cache_stats["cache_misses"],
            "cache_hit_rate": round(cache_hit_rate, 2),
            "errors": self.cache_stats["errors"],
            "memory_entries": len(self._memory),
        }
