"""Suggestion Service: player-proposed corrections to catalog records"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from item_catalog.core.catalog.errors import ValidationFailed
from item_catalog.core.catalog.models import Suggestion
from item_catalog.core.event_bus import CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes
from item_catalog.core.logging import get_logger
from item_catalog.db.store import CatalogStore

logger = get_logger(__name__)


class SuggestionService:
    def __init__(self, store: CatalogStore, event_bus: EventBus):
        self._store = store
        self._bus = event_bus

    def submit(
        self,
        item_id: Optional[str],
        note: Optional[str],
        proposer: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Suggestion:
        """Store a pending suggestion. item_id and note are required.

        The reason, when given, is appended to the note.
        """
        item_id = (item_id or "").strip()
        note = (note or "").strip()
        if not item_id or not note:
            raise ValidationFailed("itemId and note are required")

        reason = (reason or "").strip()
        suggestion = Suggestion(
            suggestion_id=str(uuid.uuid4()),
            item_id=item_id,
            note=f"{note}\n\nReason: {reason}" if reason else note,
            proposer=(proposer or "").strip() or None,
            created_at=datetime.now(timezone.utc),
        )
        self._store.add_suggestion(suggestion)
        self._bus.emit(
            CatalogEvent(
                event_type=EventTypes.SUGGESTION_ADDED,
                data={"item_id": item_id, "suggestion_id": suggestion.suggestion_id},
                source="suggestion_service",
            )
        )
        logger.info("Suggestion %s added for %s", suggestion.suggestion_id, item_id)
        return suggestion

    def list_for_item(self, item_id: str) -> list[Suggestion]:
        return self._store.list_suggestions(item_id)
