"""Ingest Service: dump text → catalog writes + provenance

Per observation, in arrival order:
    overrides → validate → resolve identity → insert (primed) or merge → ledger

A possible duplicate (same identity, different content) halts the batch;
it and everything after it come back as `pending` for explicit confirmation.
Writes already made for earlier observations stay committed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Union

from item_catalog.core.catalog.errors import (
    ObservationRejected,
    StoreConflictError,
    TransientIngestError,
)
from item_catalog.core.catalog.identity import resolve_identity
from item_catalog.core.catalog.merge import merge_record, record_from_observation, union_slots
from item_catalog.core.catalog.models import (
    CatalogRecord,
    IdentityKey,
    ItemObservation,
    Resolution,
)
from item_catalog.core.catalog.parser import parse_identify_dump
from item_catalog.core.catalog.slots import guess_slot
from item_catalog.core.event_bus import CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes
from item_catalog.core.logging import get_logger
from item_catalog.db.store import CatalogStore
from item_catalog.services.provenance_service import ProvenanceService

logger = get_logger(__name__)

MAX_WRITE_ATTEMPTS = 2


class IngestStatus(str, Enum):
    CREATED = "created"
    MERGED = "merged"
    IDENTICAL = "identical"
    NEEDS_CONFIRMATION = "needs_confirmation"
    REJECTED = "rejected"
    SKIPPED = "skipped"  # batch halted before this observation
    CANCELLED = "cancelled"


class Decision(str, Enum):
    PROCEED = "proceed"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Submitter:
    name: Optional[str] = None
    user_id: Optional[str] = None
    ip_hash: Optional[str] = None


@dataclass(frozen=True)
class ObservationOverride:
    """Reviewer edits applied on top of a parsed observation."""

    name: Optional[str] = None
    ego: Optional[str] = None
    dropped_by: Optional[str] = None
    worn: tuple[str, ...] = ()
    is_artifact: Optional[bool] = None


@dataclass
class IngestOutcome:
    observation_id: str
    status: IngestStatus
    identity: Optional[IdentityKey] = None
    record: Optional[CatalogRecord] = None
    reason: Optional[str] = None
    duplicate_of: Optional[str] = None
    suggested_slot: Optional[str] = None


@dataclass
class IngestResult:
    outcomes: list[IngestOutcome] = field(default_factory=list)
    # Observations (overrides already applied) awaiting confirm_duplicates()
    pending: list[ItemObservation] = field(default_factory=list)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.pending)

    def count(self, status: IngestStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)


OverrideMap = Mapping[str, ObservationOverride]


class IngestService:
    """Submission ingestion and consolidation."""

    def __init__(
        self,
        store: CatalogStore,
        provenance: ProvenanceService,
        event_bus: EventBus,
    ):
        self._store = store
        self._provenance = provenance
        self._bus = event_bus

    # === entry points ===

    def ingest_raw(
        self,
        text: str,
        submitter: Optional[Submitter] = None,
        overrides: Optional[OverrideMap] = None,
    ) -> IngestResult:
        """Parse a pasted dump and ingest every block.

        Overrides may be keyed by observation id or by block position ("0", "1", ...).
        """
        observations = parse_identify_dump(text)
        if not observations:
            logger.info("Dump produced no item blocks")
            return IngestResult()
        return self.ingest_observations(observations, submitter, overrides)

    def ingest_observations(
        self,
        observations: Iterable[ItemObservation],
        submitter: Optional[Submitter] = None,
        overrides: Optional[OverrideMap] = None,
        confirmed: bool = False,
    ) -> IngestResult:
        """Ingest already-parsed observations, in order.

        confirmed=True bypasses the duplicate hold (operator already agreed).
        """
        submitter = submitter or Submitter()
        overrides = overrides or {}
        prepared = [
            self._prepare(obs, submitter, overrides.get(obs.observation_id) or overrides.get(str(i)))
            for i, obs in enumerate(observations)
        ]

        result = IngestResult()
        created_in_batch: set[IdentityKey] = set()

        for index, observation in enumerate(prepared):
            try:
                self._validate(observation)
            except ObservationRejected as e:
                logger.info("Rejected observation %s: %s", observation.observation_id, e.reason)
                result.outcomes.append(
                    IngestOutcome(observation.observation_id, IngestStatus.REJECTED, reason=e.reason)
                )
                continue

            # Repeats of an identity first created in this same batch fold in directly.
            bypass_hold = confirmed or observation.identity in created_in_batch
            outcome = self._ingest_one(observation, submitter.ip_hash, bypass_hold)
            result.outcomes.append(outcome)

            if outcome.status is IngestStatus.CREATED:
                created_in_batch.add(observation.identity)
            elif outcome.status is IngestStatus.NEEDS_CONFIRMATION:
                result.pending = prepared[index:]
                for rest in prepared[index + 1:]:
                    result.outcomes.append(
                        IngestOutcome(rest.observation_id, IngestStatus.SKIPPED, identity=rest.identity)
                    )
                logger.info(
                    "Batch halted at %s: possible duplicate of %s (%d pending)",
                    observation.identity,
                    outcome.duplicate_of,
                    len(result.pending),
                )
                break

        self._provenance.annotate([o.record for o in result.outcomes if o.record is not None])
        return result

    def confirm_duplicates(
        self,
        pending: Iterable[ItemObservation],
        decision: Union[Decision, str],
        submitter: Optional[Submitter] = None,
    ) -> IngestResult:
        """Resolve a held batch: proceed merges/inserts everything, cancel writes nothing."""
        pending = list(pending)
        if Decision(decision) is Decision.CANCEL:
            logger.info("Duplicate confirmation cancelled (%d observations)", len(pending))
            return IngestResult(
                outcomes=[
                    IngestOutcome(o.observation_id, IngestStatus.CANCELLED, identity=o.identity)
                    for o in pending
                ]
            )
        return self.ingest_observations(pending, submitter, confirmed=True)

    # === per-observation flow ===

    def _ingest_one(
        self, observation: ItemObservation, ip_hash: Optional[str], bypass_hold: bool
    ) -> IngestOutcome:
        key = observation.identity
        suggested = None if observation.worn else guess_slot(observation.name, observation.keywords)

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            existing = self._store.find_by_identity(
                observation.name, observation.keywords, observation.item_type
            )
            match = resolve_identity(observation, existing)

            if match.resolution is Resolution.NEEDS_CONFIRMATION and not bypass_hold:
                self._bus.emit(
                    CatalogEvent(
                        event_type=EventTypes.DUPLICATE_HELD,
                        data={"item_id": match.duplicate_of},
                        source="ingest_service",
                    )
                )
                return IngestOutcome(
                    observation.observation_id,
                    IngestStatus.NEEDS_CONFIRMATION,
                    identity=key,
                    record=existing,
                    duplicate_of=match.duplicate_of,
                    suggested_slot=suggested,
                )

            if existing is None:
                candidate = record_from_observation(observation)
                status = IngestStatus.CREATED
            else:
                candidate = merge_record(existing, observation)
                status = (
                    IngestStatus.IDENTICAL
                    if match.resolution is Resolution.IDENTICAL
                    else IngestStatus.MERGED
                )

            try:
                saved = self._store.upsert(candidate, must_insert=existing is None)
            except StoreConflictError as e:
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise TransientIngestError(
                        f"Write conflict on {key} persisted after retry"
                    ) from e
                logger.warning("Write conflict on %s, re-reading and re-merging", key)
                continue

            self._provenance.record(saved, observation, ip_hash)
            self._bus.emit(
                CatalogEvent(
                    event_type=(
                        EventTypes.ITEM_CREATED
                        if status is IngestStatus.CREATED
                        else EventTypes.ITEM_MERGED
                    ),
                    data={"item_id": saved.item_id},
                    source="ingest_service",
                )
            )
            logger.info("Catalog %s: %s (%s)", status.value, key, saved.item_id)
            return IngestOutcome(
                observation.observation_id,
                status,
                identity=key,
                record=saved,
                suggested_slot=suggested,
            )

        raise AssertionError("unreachable")

    # === helpers ===

    @staticmethod
    def _prepare(
        observation: ItemObservation,
        submitter: Submitter,
        override: Optional[ObservationOverride],
    ) -> ItemObservation:
        changes: dict = {}
        if submitter.name and submitter.name.strip():
            changes["submitted_by"] = submitter.name.strip()
        if submitter.user_id:
            changes["user_id"] = submitter.user_id

        if override is not None:
            if override.name and override.name.strip():
                changes["name"] = override.name.strip()
                changes["name_missing"] = False
            if override.ego and override.ego.strip():
                changes["ego"] = override.ego.strip()
            if override.dropped_by and override.dropped_by.strip():
                changes["dropped_by"] = override.dropped_by.strip()
            if override.worn:
                changes["worn"] = tuple(union_slots(observation.worn, override.worn))
            if override.is_artifact is not None:
                changes["is_artifact"] = bool(override.is_artifact)

        if observation.duplicate_of:
            changes["flagged_for_review"] = True
        return dataclasses.replace(observation, **changes) if changes else observation

    @staticmethod
    def _validate(observation: ItemObservation) -> None:
        if not (observation.name or "").strip():
            raise ObservationRejected("name is required.", observation.observation_id)
        if not (observation.item_type or "").strip():
            raise ObservationRejected("type is required.", observation.observation_id)
