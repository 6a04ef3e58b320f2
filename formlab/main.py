"""FastAPI application entry point for Formlab."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formlab.api.middleware.error_handler import global_exception_handler
from formlab.api.middleware.logging import StructuredLoggingMiddleware
from formlab.api.routes.ab_tests import router as ab_tests_router
from formlab.api.routes.health import router as health_router
from formlab.config import settings
from formlab.domains.experiments import get_engine
from formlab.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level, json_format=settings.log_json)

    engine = get_engine()
    logger.info(
        "formlab_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        assignment_strategy=engine.config.assignment_strategy,
        confidence_threshold=engine.config.confidence_threshold,
    )

    yield

    logger.info("formlab_shutting_down", tests=len(engine.registry))


app = FastAPI(
    title="Formlab",
    description="A/B experimentation engine for form documents",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Exception handlers
app.add_exception_handler(ValueError, global_exception_handler)
app.add_exception_handler(LookupError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(ab_tests_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
