"""Catalog Service: read path and operator deletions"""

from typing import Optional

from item_catalog.config import settings
from item_catalog.core.catalog.models import CatalogRecord
from item_catalog.core.event_bus import CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes
from item_catalog.core.logging import get_logger
from item_catalog.db.store import CatalogStore
from item_catalog.services.provenance_service import ProvenanceService

logger = get_logger(__name__)


def clamp_page(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    """Default and cap the page size; negative offsets become 0."""
    if limit is None or limit <= 0:
        limit = settings.DEFAULT_PAGE_SIZE
    return min(limit, settings.MAX_PAGE_SIZE), max(offset or 0, 0)


class CatalogService:
    def __init__(self, store: CatalogStore, provenance: ProvenanceService, event_bus: EventBus):
        self._store = store
        self._provenance = provenance
        self._bus = event_bus

    def search(
        self,
        q: Optional[str] = None,
        item_type: Optional[str] = None,
        flagged: Optional[bool] = None,
        item_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[CatalogRecord]:
        """Filtered page of records, ordered by name, with contributors filled in."""
        limit, offset = clamp_page(limit, offset)
        records = self._store.list_items(
            q=q,
            item_type=item_type,
            flagged=flagged,
            item_id=item_id,
            submitted_by_user_id=user_id,
            limit=limit,
            offset=offset,
        )
        return self._provenance.annotate(records)

    def get(self, item_id: str) -> Optional[CatalogRecord]:
        record = self._store.find_by_id(item_id)
        if record is None:
            return None
        return self._provenance.annotate([record])[0]

    def delete(self, item_id: str) -> bool:
        deleted = self._store.delete_item(item_id)
        if deleted:
            self._bus.emit(
                CatalogEvent(
                    event_type=EventTypes.ITEM_DELETED,
                    data={"item_id": item_id},
                    source="catalog_service",
                )
            )
            logger.info("Deleted catalog item %s", item_id)
        return deleted

    def delete_all(self) -> int:
        count = self._store.delete_all()
        self._bus.emit(
            CatalogEvent(
                event_type=EventTypes.CATALOG_CLEARED,
                data={"count": count},
                source="catalog_service",
            )
        )
        logger.warning("Catalog wiped (%d items)", count)
        return count
