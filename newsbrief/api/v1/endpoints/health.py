from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends

from ...dependencies import get_app_settings, get_cache_service, get_user_store
from ....config import Settings
from ....repositories.user_store import UserStore
from ....services.cache_service import CacheService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_app_settings),
    cache: CacheService = Depends(get_cache_service),
    store: UserStore = Depends(get_user_store)
) -> Dict[str, Any]:
    return {
        "status": "ok",
        "service": "NewsBrief API",
        "version": "0.1.0",
        "newsConfigured": settings.news_configured,
        "llmConfigured": settings.llm_configured,
        "cacheBackend": cache.backend,
        "userStore": store.name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
