"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from item_catalog.core.cache import ReadCache
from item_catalog.core.event_bus import EventBus
from item_catalog.db.database import get_db
from item_catalog.db.models import Base
from item_catalog.db.store import CatalogStore
from item_catalog.main import app
from item_catalog.services.ingest_service import IngestService
from item_catalog.services.provenance_service import ProvenanceService


@pytest.fixture()
def session_factory():
    """Fresh in-memory SQLite per test, shared across connections."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory) -> Session:
    """Raw database session for direct DB assertions."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def store(db_session) -> CatalogStore:
    return CatalogStore(db_session)


@pytest.fixture()
def provenance(store, bus) -> ProvenanceService:
    return ProvenanceService(store, bus)


@pytest.fixture()
def ingest(store, provenance, bus) -> IngestService:
    return IngestService(store, provenance, bus)


@pytest.fixture()
def client(session_factory) -> TestClient:
    """FastAPI TestClient wired to an in-memory SQLite database."""

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    bus = EventBus()
    cache = ReadCache(ttl_seconds=3600)
    cache.bind(bus)
    app.state.event_bus = bus
    app.state.read_cache = cache
    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
