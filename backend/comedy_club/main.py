"""
Comedy Club Booking API - application entry point.

- Seat availability computed from bookings, never from a stored counter
- Reserve-then-confirm checkout through a hosted payment page
- Oversell guard: optimistic locking on each event's booking settings
- Idempotent payment reconciliation
- Unpaid holds released after the event's booking deadline
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from comedy_club.core.config import get_settings
from comedy_club.core.exceptions import register_exception_handlers
from comedy_club.core.logging import setup_logging, get_logger
from comedy_club.core.metrics import metrics_endpoint
from comedy_club.api.router import api_router
from comedy_club.api.middleware import RequestLoggingMiddleware
from comedy_club.db.session import AsyncSessionLocal, engine
from comedy_club.services.cache_service import get_redis, close_redis, get_cache_stats
from comedy_club.services.reservation_reaper import ReservationReaper

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if await get_redis() is None:
        logger.warning("redis_unavailable", message="Serving the programme without a cache")

    reaper = ReservationReaper() if settings.RESERVATION_REAPER_ENABLED else None
    if reaper:
        await reaper.start()

    try:
        yield
    finally:
        if reaper:
            await reaper.stop()
        await close_redis()
        await engine.dispose()
        logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat availability and booking for a comedy club, paid through a hosted checkout",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)
app.include_router(api_router)


async def _database_status() -> str:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health_database_unreachable", error=str(e))
        return "unreachable"
    return "ok"


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus the state of the database and the programme cache."""
    database = await _database_status()
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await get_cache_stats(),
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
