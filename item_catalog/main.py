"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from item_catalog.api.health import router as health_router
from item_catalog.api.items import router as items_router
from item_catalog.api.suggestions import router as suggestions_router
from item_catalog.config import settings
from item_catalog.core.cache import ReadCache
from item_catalog.core.event_bus import EventBus
from item_catalog.core.logging import get_logger, setup_logging
from item_catalog.db.database import SessionLocal
from item_catalog.db.store import CatalogStore

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Creating database tables...")
    db_session = SessionLocal()
    try:
        CatalogStore(db_session).ensure_ready()
    finally:
        db_session.close()

    # Process-wide: one bus, one read cache cleared by catalog writes
    event_bus = EventBus()
    read_cache = ReadCache(ttl_seconds=settings.READ_CACHE_TTL_SECONDS)
    read_cache.bind(event_bus)
    app.state.event_bus = event_bus
    app.state.read_cache = read_cache
    logger.info("Catalog services initialized.")

    yield

    logger.info("Shutting down...")
    event_bus.clear()
    read_cache.clear()


app = FastAPI(title="Item Catalog", lifespan=lifespan)

app.include_router(health_router)
app.include_router(items_router)
app.include_router(suggestions_router)
