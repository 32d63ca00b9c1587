"""
FloatMap Backend API

FastAPI application entry point serving the ARGO float aggregate.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from floatmap.cache.aggregate_cache import AggregateUnavailableError, get_aggregate_cache
from floatmap.config import settings


# =============================================================================
# Structlog Configuration
# =============================================================================
def configure_logging() -> None:
    """
    Configure structlog for JSON logging with ISO timestamps.

    All logs are output as JSON with consistent fields:
    - timestamp: ISO 8601 format
    - level: log level (info, warning, error, etc.)
    - event: log message
    - Additional context fields (file_path, float_id, etc.)
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.LOG_LEVEL.upper())

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# Sentry Configuration
# =============================================================================
def configure_sentry() -> None:
    """
    Initialize Sentry error tracking if SENTRY_DSN is configured.
    """
    if settings.SENTRY_DSN:
        try:
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration

            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                integrations=[FastApiIntegration(transaction_style="endpoint")],
                traces_sample_rate=0.1,
                environment="development" if settings.DEBUG else "production",
            )

            logger = structlog.get_logger()
            logger.info("sentry_initialized", dsn_prefix=settings.SENTRY_DSN[:20] + "...")
        except Exception as e:
            logger = structlog.get_logger()
            logger.warning("sentry_init_failed", error=str(e))


# =============================================================================
# Cache Warm-up
# =============================================================================
async def warm_up_cache(app: FastAPI) -> None:
    """Build the aggregate in the background; failures are logged only."""
    logger = structlog.get_logger()
    cache_factory = app.dependency_overrides.get(get_aggregate_cache, get_aggregate_cache)
    try:
        records = await cache_factory().get_all()
        logger.info("cache_warm_up_complete", floats=len(records))
    except AggregateUnavailableError as e:
        logger.warning("cache_warm_up_failed", error=str(e))


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.
    """
    # Startup
    configure_logging()
    configure_sentry()

    logger = structlog.get_logger()
    logger.info(
        "application_startup",
        app_name="FloatMap API",
        debug=settings.DEBUG,
        bgc_data_dir=settings.BGC_DATA_DIR,
        core_data_dir=settings.CORE_DATA_DIR,
    )

    warm_up_task = asyncio.create_task(warm_up_cache(app))

    yield

    # Shutdown
    if not warm_up_task.done():
        warm_up_task.cancel()
    cache_factory = app.dependency_overrides.get(get_aggregate_cache, get_aggregate_cache)
    await cache_factory().aclose()
    logger.info("application_shutdown")


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="FloatMap API",
    description="Aggregated ARGO float positions, profiles and cycles",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["GET"],
    allow_headers=["*"],
)


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for load balancers and monitoring.

    Returns:
        JSON response with status "ok"
    """
    return JSONResponse(
        content={"status": "ok"},
        status_code=200,
    )


# =============================================================================
# API Routers
# =============================================================================
from floatmap.api.v1.floats import router as floats_router

app.include_router(floats_router, prefix="/api/v1")
