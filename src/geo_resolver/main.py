"""FastAPI application factory for the geocoding API."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from geo_resolver.core.config import get_settings
from geo_resolver.core.database import dispose_engine, init_engine
from geo_resolver.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Open the cache database for the app's lifetime."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=settings.log_json)
    init_engine(settings.database_url, echo=settings.database_echo)
    logger.info("Geocoding API starting; provider order: {}", ", ".join(settings.geocoder_fallback_order_list))
    try:
        yield
    finally:
        await dispose_engine()


def create_app() -> FastAPI:
    """Build the app and mount the versioned geocoding routes."""
    settings = get_settings()
    app = FastAPI(
        title="Geo Resolver",
        description="Address geocoding with provider fallback, confidence scoring, and a usage-weighted cache",
        version="0.1.0",
        lifespan=lifespan,
    )

    from geo_resolver.api.router import create_router

    app.include_router(create_router(settings))
    return app
