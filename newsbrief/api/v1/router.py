from fastapi import APIRouter

from .endpoints import health, news

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(news.router, tags=["summarize"])
