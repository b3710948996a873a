from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from app.admin.routes import admin as admin_routes
from app.announcements.routes import announcements as announcement_routes
from app.auth.routes import auth, profile
from app.core import events
from app.core import redis as redis_module
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.log_config import RequestLoggingMiddleware, setup_logging
from app.core.rate_limit import limiter
from app.db.session import SessionLocal
from app.help.routes import faqs as faq_routes
from app.support.routes import streams as support_streams
from app.support.routes import tickets as ticket_routes

setup_logging()
logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    client = Redis.from_url(settings.REDIS_URL, decode_responses=True, encoding="utf-8")
    redis_module.redis_client = client
    try:
        await client.ping()
        logger.info("redis_connected", url=settings.REDIS_URL)
    except Exception as e:
        # sessions and identity cache degrade, the API still serves reads
        logger.error("redis_connection_failed", error=str(e))

    feed = events.get_change_feed()
    logger.info("change_feed_ready", backend=type(feed).__name__)

    yield

    await client.aclose()
    redis_module.redis_client = None
    logger.info("redis_closed")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    application.state.limiter = limiter
    application.add_exception_handler(
        RateLimitExceeded, _rate_limit_exceeded_handler  # type: ignore[arg-type]
    )
    register_exception_handlers(application, debug=settings.DEBUG)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    prefix = settings.API_V1_PREFIX
    application.include_router(auth.router, prefix=f"{prefix}/auth", tags=["authentication"])
    application.include_router(profile.router, prefix=f"{prefix}/profile", tags=["profile"])
    application.include_router(ticket_routes.router, prefix=prefix, tags=["tickets"])
    application.include_router(support_streams.router, prefix=prefix, tags=["streams"])
    application.include_router(admin_routes.router, prefix=f"{prefix}/admin", tags=["admin"])
    application.include_router(
        announcement_routes.router, prefix=prefix, tags=["announcements"]
    )
    application.include_router(faq_routes.router, prefix=prefix, tags=["help"])
    return application


app = create_app()


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": settings.PROJECT_NAME, "version": VERSION, "status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    checks = {"database": "unhealthy", "redis": "unavailable"}

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception:
        logger.warning("health_database_check_failed", exc_info=True)

    if redis_module.redis_client is not None:
        try:
            await redis_module.redis_client.ping()
            checks["redis"] = "healthy"
        except Exception:
            checks["redis"] = "unhealthy"

    # live views need redis only when the change feed runs over pub/sub
    feed_needs_redis = settings.CHANGE_FEED_BACKEND == "redis"
    degraded = checks["database"] != "healthy" or (
        feed_needs_redis and checks["redis"] != "healthy"
    )
    return {
        "status": "degraded" if degraded else "healthy",
        "change_feed": settings.CHANGE_FEED_BACKEND,
        **checks,
    }
