"""Database engine and session factory for the catalog store."""

from collections.abc import Generator

from sqlalchemy import create_engine, event as sa_event
from sqlalchemy.orm import Session, sessionmaker

from item_catalog.config import settings

IS_SQLITE = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
    echo=settings.DEBUG,
)

if IS_SQLITE:

    @sa_event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_conn, connection_record):
        # contributions → contributors cascade; writers wait instead of failing fast
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session. Each request's CatalogStore wraps exactly one."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
