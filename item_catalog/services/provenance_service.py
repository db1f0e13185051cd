"""Provenance Service: submission events and contributor read-back"""

from typing import Iterable, Optional

from item_catalog.core.catalog.models import (
    CatalogRecord,
    ContributorSummary,
    ItemObservation,
    SubmissionEvent,
    SubmitterStats,
)
from item_catalog.core.catalog.provenance import (
    build_submission_event,
    submitter_key,
    summarize_contributors,
)
from item_catalog.core.event_bus import CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes
from item_catalog.core.logging import get_logger
from item_catalog.db.store import CatalogStore

logger = get_logger(__name__)


class ProvenanceService:
    """Append-only ledger of who submitted what."""

    def __init__(self, store: CatalogStore, event_bus: EventBus):
        self._store = store
        self._bus = event_bus

    def record(
        self,
        record: CatalogRecord,
        observation: ItemObservation,
        ip_hash: Optional[str] = None,
    ) -> Optional[SubmissionEvent]:
        """Append one event for an accepted observation.

        Anonymous observations (no name, no user id) are not recorded.
        """
        event = build_submission_event(record, observation, ip_hash)
        if event is None:
            logger.debug("Anonymous submission of %s not recorded", record.item_id)
            return None

        self._store.append_submission(event)
        self._bus.emit(
            CatalogEvent(
                event_type=EventTypes.SUBMISSION_RECORDED,
                data={"item_id": record.item_id, "submitter_key": event.submitter_key},
                source="provenance_service",
            )
        )
        logger.debug("Recorded submission of %s by %s", record.item_id, event.submitter_key)
        return event

    def contributors_for(self, item_ids: Iterable[str]) -> dict[str, ContributorSummary]:
        """Distinct contributor names and total submissions per item id."""
        ids = list(dict.fromkeys(item_ids))
        events = self._store.list_submissions_for_items(ids)
        return summarize_contributors(events, ids)

    def annotate(self, records: list[CatalogRecord]) -> list[CatalogRecord]:
        """Fill the derived `contributors`/`submission_count` fields in place."""
        summaries = self.contributors_for(r.item_id for r in records)
        for record in records:
            summary = summaries.get(record.item_id)
            if summary is not None:
                record.contributors = list(summary.contributors)
                record.submission_count = summary.submission_count
        return records

    def submitter_stats(
        self, name: Optional[str] = None, user_id: Optional[str] = None
    ) -> Optional[SubmitterStats]:
        key = submitter_key(name, user_id)
        if key is None:
            return None
        return self._store.get_submitter(key)
