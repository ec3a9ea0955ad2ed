"""
FastAPI application for the Polyglot Translation API.
This module sets up the API server with routes, middleware, and error handling.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from polyglot.core.config import get_settings
from polyglot.core.error_handlers import (
    base_exception_handler,
    unhandled_exception_handler,
)
from polyglot.core.exceptions import BaseAppException
from polyglot.core.pii_filter import add_pii_filter_to_all_loggers
from polyglot.routes import health, translations
from polyglot.services.translation.translation_service import TranslationService
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_fastapi_instrumentator import metrics as instrumentator_metrics

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("polyglot.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application startup...")

    settings = get_settings()
    app.state.settings = settings

    if settings.PII_DETECTION_ENABLED:
        # Loggers created by imports so far get the filter too
        add_pii_filter_to_all_loggers()
        logger.info("PII log filter enabled")

    # Create data directories (avoid import-time I/O)
    logger.info("Creating data directories...")
    settings.ensure_data_dirs()

    logger.info("Initializing TranslationService...")
    translation_service = TranslationService(settings=settings)
    app.state.translation_service = translation_service

    removed = await translation_service.cleanup_cache()
    logger.info(
        f"Translation service ready - languages: {settings.SUPPORTED_LANGUAGES}, "
        f"steps: {translation_service.pipeline_steps()}, "
        f"expired cache entries removed: {removed}"
    )

    # Yield control to the application
    yield

    # Shutdown
    logger.info("Application shutdown...")
    translation_service.close()


# Create FastAPI application
app = FastAPI(
    title=get_settings().PROJECT_NAME,
    docs_url="/api/docs",
    openapi_url=f"{get_settings().API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
# Toggle credentials off when wildcard is used (Starlette forbids wildcard + credentials)
_origins = get_settings().CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False if _origins == ["*"] else True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set up Prometheus metrics
# DON'T call .expose() - the /metrics endpoint below serves the default REGISTRY
instrumentator = Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    should_respect_env_var=False,  # Always enable metrics
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/health", "/healthcheck", "/metrics"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
)
instrumentator.add(instrumentator_metrics.default())
instrumentator.add(
    instrumentator_metrics.latency(buckets=(0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60))
)
instrumentator.instrument(app)
logger.info("Prometheus metrics instrumentation initialized")


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint (pipeline, breaker and HTTP metrics)."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    translations.router,
    prefix=f"{get_settings().API_V1_STR}/translations",
    tags=["Translations"],
)


@app.get("/healthcheck")
async def healthcheck():
    return {"status": "healthy"}


# Register exception handlers
app.add_exception_handler(BaseAppException, base_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, unhandled_exception_handler)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    # Bind to 0.0.0.0 only in DEBUG mode (container/development)
    host = "0.0.0.0" if settings.DEBUG else "127.0.0.1"

    uvicorn.run(
        "polyglot.main:app",
        host=host,
        port=8000,
        reload=settings.DEBUG,
    )
