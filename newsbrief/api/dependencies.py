from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings
from ..news.services.orchestrator import AggregationOrchestrator
from ..repositories.user_store import UserRecord, UserStore
from ..services.cache_service import CacheService
from ..services.usage_gate import UsageGate

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> AggregationOrchestrator:
    return request.app.state.orchestrator


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_usage_gate(request: Request) -> UsageGate:
    return request.app.state.usage_gate


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_app_settings)
) -> Optional[UserRecord]:
    """
    Resolve the caller from a bearer token holding their user id.

    Unknown or missing tokens are treated as anonymous; in demo mode
    anonymous callers become the demo user.
    """
    user = None
    if credentials and credentials.credentials:
        user = store.get_user(credentials.credentials.strip())
        if user is None:
            logger.info("unknown_user_token")

    if user is None and settings.demo_mode:
        user = store.get_or_create_user(settings.demo_user_id, email="demo@example.com")

    return user


async def get_current_user_required(
    user: Optional[UserRecord] = Depends(get_current_user_optional)
) -> UserRecord:
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Please provide a valid bearer token."
        )
    return user
