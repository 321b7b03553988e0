"""
Channel Feed - Main FastAPI Application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from channel_feed import __version__
from channel_feed.api.routes import router as api_router
from channel_feed.api.webhooks.telegram import router as telegram_router
from channel_feed.core.config import ChannelConfig, Settings, settings
from channel_feed.core.logging import get_logger, setup_logging
from channel_feed.core.middleware import setup_exception_handlers, setup_middleware
from channel_feed.db.database import Base, engine

setup_logging(
    level="DEBUG" if settings.DEBUG else "INFO",
    json_format=not settings.DEBUG,
    app_name=settings.APP_NAME
)

logger = get_logger(__name__)


def _parse_allowed_origins(raw: str) -> list[str]:
    """Parse comma-separated CORS origins string into a clean list."""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


_OPENAPI_TAGS = [
    {"name": "feed", "description": "Cursor-paginated channel posts for the embed widget."},
    {"name": "webhooks", "description": "Telegram Bot API webhook receiving channel posts."},
    {"name": "Health", "description": "Liveness and readiness probes."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, dispose the connection pool on shutdown."""
    logger.info(
        "Starting application",
        extra_data={
            "app_name": settings.APP_NAME,
            "channel": app.state.channel_config.channel_username,
        },
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")

    yield

    logger.info("Shutting down application")
    await engine.dispose()
    logger.info("Database connections disposed")


def create_app(config: Settings = settings) -> FastAPI:
    """Build the application around one immutable ``ChannelConfig``."""
    application = FastAPI(
        title=config.APP_NAME,
        version=__version__,
        description=(
            "Stores the posts of one Telegram channel delivered by webhook and serves "
            "them as a cursor-paginated, ETag-aware JSON feed."
        ),
        openapi_tags=_OPENAPI_TAGS,
        lifespan=lifespan,
    )
    application.state.channel_config = ChannelConfig.from_settings(config)

    setup_middleware(application, config)
    setup_exception_handlers(application)

    allowed_origins = _parse_allowed_origins(config.ALLOWED_ORIGINS)
    if not allowed_origins and config.DEBUG:
        allowed_origins = [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    if allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=False,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["If-None-Match", "X-Correlation-ID"],
            expose_headers=["ETag", "X-Correlation-ID"],
        )

    application.include_router(api_router, prefix="/api")
    # Webhook URL registered by earlier deployments
    application.include_router(
        telegram_router,
        prefix="/telegram",
        tags=["webhooks"],
        include_in_schema=False,
    )

    @application.get("/", include_in_schema=False)
    async def root() -> PlainTextResponse:
        return PlainTextResponse("OK")

    @application.get(
        "/health",
        summary="Liveness probe",
        description="The process is up. Does not check the database.",
        tags=["Health"],
    )
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    @application.get(
        "/health/ready",
        summary="Readiness probe",
        description="Checks the database. 503 with status=degraded when it is unavailable.",
        tags=["Health"],
    )
    async def readiness_check() -> JSONResponse:
        from channel_feed.domain.services.health_service import check_readiness

        result = await check_readiness()
        status_code = 200 if result["status"] == "healthy" else 503
        return JSONResponse(content=result, status_code=status_code)

    return application


app = create_app()
