import logging
import structlog
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api.v1.router import api_router
from .config import Settings, get_settings
from .core.database import create_db_engine, create_session_factory, create_tables
from .exceptions import NewsBriefError, UsageLimitExceededError, UserNotFoundError
from .news.services.article_fetcher import ArticleFetcher
from .news.services.orchestrator import AggregationOrchestrator
from .news.services.provider_client import NewsProviderClient
from .news.services.summarization import SummarizationService
from .repositories.user_store import InMemoryUserStore, SqlUserStore, UserStore
from .services.cache_service import CacheService
from .services.llm_service import LLMService
from .services.usage_gate import UsageGate


def apply_logging_preferences():
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s"
)

apply_logging_preferences()

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def build_user_store(app_settings: Settings):
    """
    Pick the user store once at startup.

    Returns:
        (store, engine); engine is None for the in-memory store
    """
    if not app_settings.use_database_user_store:
        logger.info("user_store_selected", store="memory", reason="disabled_by_config")
        return InMemoryUserStore(), None

    try:
        engine = create_db_engine(app_settings.database_url, app_settings.debug)
        create_tables(engine)
    except SQLAlchemyError as e:
        logger.error("database_unavailable", error=str(e))
        logger.info("user_store_selected", store="memory", reason="database_unavailable")
        return InMemoryUserStore(), None

    logger.info("user_store_selected", store="database")
    return SqlUserStore(create_session_factory(engine)), engine


def wire_services(
    app: FastAPI,
    app_settings: Settings,
    cache: CacheService,
    user_store: UserStore,
    provider: Optional[NewsProviderClient] = None,
    llm_service: Optional[LLMService] = None,
) -> None:
    """Build the pipeline from its collaborators and expose it on app.state."""
    provider = provider or NewsProviderClient(
        api_key=app_settings.newsapi_key,
        base_url=app_settings.newsapi_base_url,
        timeout_seconds=app_settings.newsapi_timeout_seconds,
        language=app_settings.newsapi_language,
        recency_days=app_settings.newsapi_recency_days,
    )
    llm_service = llm_service or LLMService(
        openai_api_key=app_settings.openai_api_key,
        anthropic_api_key=app_settings.anthropic_api_key,
        openai_model_name=app_settings.openai_model_name,
        anthropic_model_name=app_settings.anthropic_model_name,
        timeout_seconds=app_settings.llm_timeout_seconds,
    )

    fetcher = ArticleFetcher(provider, cache, cache_ttl_seconds=app_settings.news_cache_ttl_seconds)
    summarizer = SummarizationService(
        llm_service,
        temperature=app_settings.summary_temperature,
        max_tokens_cap=app_settings.summary_max_tokens_cap,
    )

    app.state.settings = app_settings
    app.state.cache = cache
    app.state.user_store = user_store
    app.state.usage_gate = UsageGate(user_store, daily_limit=app_settings.free_daily_summary_limit)
    app.state.orchestrator = AggregationOrchestrator(fetcher, summarizer)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings: Settings = app.state.settings
    apply_logging_preferences()
    logger.info(
        "application_starting",
        version="0.1.0",
        news_configured=app_settings.news_configured,
        llm_configured=app_settings.llm_configured,
    )

    cache = CacheService(
        redis_url=app_settings.redis_url,
        connect_timeout_seconds=app_settings.redis_connect_timeout_seconds,
        default_ttl_seconds=app_settings.news_cache_ttl_seconds,
    )
    await cache.connect()

    user_store, engine = build_user_store(app_settings)
    wire_services(app, app_settings, cache, user_store)

    yield

    logger.info("application_stopping")
    await cache.close()
    if engine is not None:
        engine.dispose()


def create_application(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title="NewsBrief",
        description="Topic and location based news aggregation with spoken-style summaries",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = [error.get("msg", "") for error in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": messages},
        )

    @app.exception_handler(UsageLimitExceededError)
    async def usage_limit_handler(request: Request, exc: UsageLimitExceededError):
        return JSONResponse(
            status_code=429,
            content={
                "error": "Daily limit reached",
                "message": exc.message,
                "dailyCount": exc.daily_count,
                "limit": exc.limit,
            },
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(request: Request, exc: UserNotFoundError):
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(NewsBriefError)
    async def newsbrief_error_handler(request: Request, exc: NewsBriefError):
        logger.error("request_failed", path=request.url.path, error_code=exc.error_code, error=exc.message)
        return JSONResponse(status_code=502, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        )

    # Health check at root
    from .api.v1.endpoints import health
    app.include_router(health.router, tags=["health"])

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsbrief.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info",
        access_log=False,
    )
