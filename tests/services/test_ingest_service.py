"""IngestService integration tests (in-memory SQLite + EventBus)"""

from __future__ import annotations

import dataclasses

import pytest

from item_catalog.core.catalog.errors import StoreConflictError, TransientIngestError
from item_catalog.core.catalog.parser import parse_identify_dump
from item_catalog.core.event_types import EventTypes
from item_catalog.services.ingest_service import (
    Decision,
    IngestStatus,
    ObservationOverride,
    Submitter,
)

RUSTY_DAGGER = (
    "a rusty dagger (poor)\n"
    "Object 'dagger rusty', Item type: weapon\n"
    "Weight: 3\n"
    "Damage Dice is '1D4'\n"
)
HEAVY_DAGGER = RUSTY_DAGGER.replace("Weight: 3", "Weight: 5")
SHINY_RING = "a shiny ring\nObject 'ring shiny', Item type: armor\nWeight: 1\n"


def _events(bus, event_type):
    seen = []
    bus.subscribe(event_type, seen.append)
    return seen


# ── new / identical / merge ───────────────────────────────────


class TestIngestRaw:
    def test_new_item_created_and_primed(self, ingest, store) -> None:
        result = ingest.ingest_raw(RUSTY_DAGGER)
        [outcome] = result.outcomes
        assert outcome.status is IngestStatus.CREATED
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert record is not None
        assert (record.stats.weight, record.stats.weight_min, record.stats.weight_max) == (3, 3, 3)
        assert record.stats.condition == "poor"

    def test_repaste_is_identical(self, ingest, store) -> None:
        ingest.ingest_raw(RUSTY_DAGGER)
        result = ingest.ingest_raw(RUSTY_DAGGER)
        assert result.outcomes[0].status is IngestStatus.IDENTICAL
        assert not result.needs_confirmation
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert (record.stats.weight_min, record.stats.weight_max) == (3, 3)
        assert len(store.list_items()) == 1

    def test_different_weight_held_then_widened(self, ingest, store) -> None:
        ingest.ingest_raw(RUSTY_DAGGER)
        ingest.ingest_raw(RUSTY_DAGGER)

        held = ingest.ingest_raw(HEAVY_DAGGER)
        assert held.needs_confirmation
        [outcome] = held.outcomes
        assert outcome.status is IngestStatus.NEEDS_CONFIRMATION
        existing = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert outcome.duplicate_of == existing.item_id
        assert existing.stats.weight_max == 3

        confirmed = ingest.confirm_duplicates(held.pending, Decision.PROCEED)
        assert confirmed.outcomes[0].status is IngestStatus.MERGED
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert (record.stats.weight, record.stats.weight_min, record.stats.weight_max) == (5, 3, 5)
        assert record.item_id == existing.item_id

    def test_cancel_writes_nothing(self, ingest, store) -> None:
        ingest.ingest_raw(RUSTY_DAGGER)
        held = ingest.ingest_raw(HEAVY_DAGGER)
        cancelled = ingest.confirm_duplicates(held.pending, "cancel")
        assert cancelled.outcomes[0].status is IngestStatus.CANCELLED
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert record.stats.weight_max == 3

    def test_empty_dump(self, ingest) -> None:
        result = ingest.ingest_raw("nothing to see")
        assert result.outcomes == []
        assert not result.needs_confirmation


# ── batches ───────────────────────────────────────────────────


class TestBatch:
    def test_batch_halts_at_first_duplicate(self, ingest, store) -> None:
        ingest.ingest_raw(RUSTY_DAGGER)
        result = ingest.ingest_raw(SHINY_RING + HEAVY_DAGGER + "Object 'x', Item type: trash\n")
        statuses = [o.status for o in result.outcomes]
        assert statuses == [
            IngestStatus.CREATED,
            IngestStatus.NEEDS_CONFIRMATION,
            IngestStatus.SKIPPED,
        ]
        assert len(result.pending) == 2
        assert len(store.list_items()) == 2

        confirmed = ingest.confirm_duplicates(result.pending, Decision.PROCEED)
        assert [o.status for o in confirmed.outcomes] == [IngestStatus.MERGED, IngestStatus.CREATED]
        assert len(store.list_items()) == 3

    def test_repeat_within_batch_folds_in(self, ingest, store) -> None:
        result = ingest.ingest_raw(RUSTY_DAGGER + HEAVY_DAGGER)
        assert [o.status for o in result.outcomes] == [IngestStatus.CREATED, IngestStatus.MERGED]
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert (record.stats.weight_min, record.stats.weight_max) == (3, 5)

    def test_rejected_does_not_stop_batch(self, ingest) -> None:
        [untyped] = parse_identify_dump("Object 'x', Item type: trash\n")
        observations = [dataclasses.replace(untyped, item_type=" ")] + parse_identify_dump(SHINY_RING)
        result = ingest.ingest_observations(observations)
        assert [o.status for o in result.outcomes] == [IngestStatus.REJECTED, IngestStatus.CREATED]
        assert result.outcomes[0].reason == "type is required."
        assert result.count(IngestStatus.CREATED) == 1


# ── overrides and submitters ──────────────────────────────────


class TestOverrides:
    def test_override_by_position(self, ingest, store) -> None:
        overrides = {"0": ObservationOverride(dropped_by=" a goblin ", worn=("Wield",))}
        ingest.ingest_raw(RUSTY_DAGGER, overrides=overrides)
        record = store.find_by_identity("a rusty dagger", "dagger rusty", "weapon")
        assert record.dropped_by == "a goblin"
        assert record.worn == ["wield"]

    def test_override_by_observation_id(self, ingest, store) -> None:
        [observation] = parse_identify_dump("Object 'x', Item type: trash\n")
        overrides = {observation.observation_id: ObservationOverride(name="a pebble")}
        result = ingest.ingest_observations([observation], overrides=overrides)
        assert result.outcomes[0].record.name == "a pebble"
        assert store.find_by_identity("a pebble", "x", "trash") is not None

    def test_suggested_slot(self, ingest) -> None:
        result = ingest.ingest_raw(RUSTY_DAGGER)
        assert result.outcomes[0].suggested_slot == "wield"

    def test_duplicate_of_marks_for_review(self, ingest) -> None:
        first = ingest.ingest_raw(RUSTY_DAGGER).outcomes[0].record
        [observation] = parse_identify_dump(SHINY_RING)
        observation = dataclasses.replace(observation, duplicate_of=first.item_id)
        record = ingest.ingest_observations([observation]).outcomes[0].record
        assert record.flagged_for_review is True
        assert record.duplicate_of == first.item_id


class TestProvenance:
    def test_submitter_recorded(self, ingest, provenance) -> None:
        submitter = Submitter(name="Alice", ip_hash="h1")
        result = ingest.ingest_raw(RUSTY_DAGGER, submitter)
        record = result.outcomes[0].record
        assert record.submitted_by == "Alice"
        assert record.contributors == ["Alice"]
        assert record.submission_count == 1

        ingest.ingest_raw(RUSTY_DAGGER, Submitter(name="bob"))
        summary = provenance.contributors_for([record.item_id])[record.item_id]
        assert summary.contributors == ["Alice", "bob"]
        assert summary.submission_count == 2

        stats = provenance.submitter_stats("ALICE")
        assert stats.submission_count == 1
        assert stats.item_ids == [record.item_id]

    def test_anonymous_not_recorded(self, ingest, provenance) -> None:
        record = ingest.ingest_raw(RUSTY_DAGGER).outcomes[0].record
        assert provenance.contributors_for([record.item_id])[record.item_id].submission_count == 0

    def test_held_observation_not_recorded(self, ingest, provenance) -> None:
        record = ingest.ingest_raw(RUSTY_DAGGER, Submitter(name="Alice")).outcomes[0].record
        ingest.ingest_raw(HEAVY_DAGGER, Submitter(name="Alice"))
        assert provenance.submitter_stats("alice").submission_count == 1
        assert provenance.contributors_for([record.item_id])[record.item_id].submission_count == 1


# ── events ────────────────────────────────────────────────────


class TestEvents:
    def test_created_and_merged_events(self, ingest, bus) -> None:
        created = _events(bus, EventTypes.ITEM_CREATED)
        merged = _events(bus, EventTypes.ITEM_MERGED)
        ingest.ingest_raw(RUSTY_DAGGER)
        ingest.ingest_raw(RUSTY_DAGGER)
        assert len(created) == 1
        assert len(merged) == 1
        assert created[0].data["item_id"] == merged[0].data["item_id"]

    def test_duplicate_held_event(self, ingest, bus) -> None:
        held = _events(bus, EventTypes.DUPLICATE_HELD)
        ingest.ingest_raw(RUSTY_DAGGER)
        ingest.ingest_raw(HEAVY_DAGGER)
        assert len(held) == 1


# ── write conflicts ───────────────────────────────────────────


class TestConflicts:
    def test_one_conflict_is_retried(self, ingest, store, monkeypatch) -> None:
        real_upsert = store.upsert
        calls = []

        def flaky_upsert(record, must_insert=False):
            calls.append(record.item_id)
            if len(calls) == 1:
                raise StoreConflictError("lost the race")
            return real_upsert(record, must_insert=must_insert)

        monkeypatch.setattr(store, "upsert", flaky_upsert)
        result = ingest.ingest_raw(RUSTY_DAGGER)
        assert result.outcomes[0].status is IngestStatus.CREATED
        assert len(calls) == 2

    def test_repeated_conflict_is_transient(self, ingest, store, monkeypatch) -> None:
        def always_conflict(record, must_insert=False):
            raise StoreConflictError("lost the race")

        monkeypatch.setattr(store, "upsert", always_conflict)
        with pytest.raises(TransientIngestError):
            ingest.ingest_raw(RUSTY_DAGGER)

    def test_stale_version_rejected_by_store(self, ingest, store) -> None:
        record = ingest.ingest_raw(RUSTY_DAGGER).outcomes[0].record
        stale = store.find_by_id(record.item_id)
        store.upsert(store.find_by_id(record.item_id))
        with pytest.raises(StoreConflictError):
            store.upsert(stale)
