"""Dependency providers shared by the routers.

One CatalogStore per request (per DB session); the EventBus and ReadCache
are process-wide and live on app.state.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from item_catalog.core.cache import ReadCache
from item_catalog.core.event_bus import EventBus
from item_catalog.db.database import get_db
from item_catalog.db.store import CatalogStore
from item_catalog.services.catalog_service import CatalogService
from item_catalog.services.ingest_service import IngestService
from item_catalog.services.provenance_service import ProvenanceService
from item_catalog.services.suggestion_service import SuggestionService


def get_event_bus(request: Request) -> EventBus:
    bus: EventBus = request.app.state.event_bus
    return bus


def get_read_cache(request: Request) -> ReadCache:
    cache: ReadCache = request.app.state.read_cache
    return cache


def get_store(db: Session = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


def get_provenance_service(
    store: CatalogStore = Depends(get_store),
    bus: EventBus = Depends(get_event_bus),
) -> ProvenanceService:
    return ProvenanceService(store, bus)


def get_ingest_service(
    store: CatalogStore = Depends(get_store),
    provenance: ProvenanceService = Depends(get_provenance_service),
    bus: EventBus = Depends(get_event_bus),
) -> IngestService:
    return IngestService(store, provenance, bus)


def get_catalog_service(
    store: CatalogStore = Depends(get_store),
    provenance: ProvenanceService = Depends(get_provenance_service),
    bus: EventBus = Depends(get_event_bus),
) -> CatalogService:
    return CatalogService(store, provenance, bus)


def get_suggestion_service(
    store: CatalogStore = Depends(get_store),
    bus: EventBus = Depends(get_event_bus),
) -> SuggestionService:
    return SuggestionService(store, bus)
