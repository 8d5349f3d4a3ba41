"""
Main FastAPI application for the Lappeleken settlement service.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from lappeleken.api.routes import entitlements, matches, saved_games, sessions
from lappeleken.core.circuit_breaker import get_all_breaker_states
from lappeleken.core.config import settings
from lappeleken.core.database import get_session_factory, init_db
from lappeleken.core.logging import configure_logging, get_logger
from lappeleken.core.middleware import CorrelationIdMiddleware
from lappeleken.core.scheduler import get_scheduler, start_scheduler, stop_scheduler
from lappeleken.services.entitlements import EntitlementGate
from lappeleken.services.football_data.sample_data import SampleDataService
from lappeleken.services.live_monitor import LiveMatchMonitor
from lappeleken.services.persistence import SqlAlchemyGameStore
from lappeleken.services.session_registry import SessionRegistry, build_data_source

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["120/minute"],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    missing = settings.validate_required_secrets()
    if missing:
        logger.warning(f"Missing required settings for {settings.ENVIRONMENT}: {', '.join(missing)}")

    init_db()

    scheduler = start_scheduler()
    data_source = build_data_source(settings)
    entitlement_gate = EntitlementGate(
        free_daily_matches=settings.FREE_DAILY_LIVE_MATCHES,
        unlimited=settings.UNLIMITED_LIVE_MATCHES,
    )
    registry = SessionRegistry(
        data_source,
        SqlAlchemyGameStore(get_session_factory()),
        monitor=LiveMatchMonitor(scheduler, default_interval=settings.LIVE_POLL_INTERVAL_SECONDS),
        entitlements=entitlement_gate,
        fallback_source=SampleDataService() if settings.USE_SAMPLE_DATA_FALLBACK else None,
        fuzzy_matching=settings.PLAYER_FUZZY_MATCHING,
    )

    app.state.data_source = data_source
    app.state.entitlements = entitlement_gate
    app.state.registry = registry
    logger.info(f"Application started (match data: {data_source.capability.value})")

    yield

    # Shutdown
    registry.shutdown()
    stop_scheduler()
    await data_source.close()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Settlement engine for Lappeleken, a football betting game among friends",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(matches.router, prefix="/api/v1")
app.include_router(saved_games.router, prefix="/api/v1")
app.include_router(entitlements.router, prefix="/api/v1")


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "sessions": "/api/v1/sessions",
            "matches": "/api/v1/matches",
            "saved_games": "/api/v1/saved-games",
            "entitlements": "/api/v1/entitlements",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }
    }


@app.get("/health")
@limiter.limit("120/minute")  # Higher limit for health checks
async def health_check(request: Request):
    """Health check endpoint with component status."""
    scheduler = get_scheduler()
    registry = getattr(request.app.state, "registry", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {
            "scheduler": {
                "status": "running" if scheduler and scheduler.running else "stopped",
                "jobs": scheduler.job_ids() if scheduler else [],
            },
            "sessions": len(registry) if registry is not None else 0,
            "circuit_breakers": get_all_breaker_states(),
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "lappeleken.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development()
    )
