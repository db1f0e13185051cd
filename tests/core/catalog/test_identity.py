"""Identity resolver"""

from __future__ import annotations

import dataclasses

from item_catalog.core.catalog.identity import (
    content_signature,
    find_match,
    identity_key,
    resolve_identity,
)
from item_catalog.core.catalog.merge import record_from_observation
from item_catalog.core.catalog.models import (
    IdentityKey,
    ItemObservation,
    Resolution,
    StatAffect,
    StatBlock,
)


def _obs(**overrides) -> ItemObservation:
    fields = dict(
        observation_id="o1",
        name="a rusty dagger",
        keywords="dagger rusty",
        item_type="weapon",
        stats=StatBlock(weight=3, damage="1D4"),
        flags=("MAGIC",),
    )
    fields.update(overrides)
    return ItemObservation(**fields)


# ── identity key ──────────────────────────────────────────────


class TestIdentityKey:
    def test_case_and_whitespace(self) -> None:
        assert identity_key("  A Rusty Dagger ", "DAGGER rusty", "Weapon ") == IdentityKey(
            "a rusty dagger", "dagger rusty", "weapon"
        )

    def test_none_parts(self) -> None:
        assert identity_key(None, None, None) == IdentityKey("", "", "")

    def test_str(self) -> None:
        assert str(IdentityKey("a", "b", "c")) == "a | b | c"


# ── resolve_identity ──────────────────────────────────────────


class TestResolve:
    def test_no_existing_is_new(self) -> None:
        assert resolve_identity(_obs(), None).resolution is Resolution.NEW

    def test_repaste_is_identical(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        match = resolve_identity(_obs(observation_id="o2"), record)
        assert match.resolution is Resolution.IDENTICAL
        assert match.duplicate_of is None

    def test_identity_match_ignores_case(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        match = resolve_identity(_obs(name="A RUSTY DAGGER "), record)
        assert match.resolution is Resolution.IDENTICAL

    def test_different_flags_need_confirmation(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        match = resolve_identity(_obs(flags=("MAGIC", "GLOW")), record)
        assert match.resolution is Resolution.NEEDS_CONFIRMATION
        assert match.duplicate_of == "r1"
        assert match.existing is record

    def test_flag_order_does_not_matter(self) -> None:
        record = record_from_observation(_obs(flags=("A", "B")), item_id="r1")
        match = resolve_identity(_obs(flags=("B", "A")), record)
        assert match.resolution is Resolution.IDENTICAL

    def test_different_weight_needs_confirmation(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        match = resolve_identity(_obs(stats=StatBlock(weight=5, damage="1D4")), record)
        assert match.resolution is Resolution.NEEDS_CONFIRMATION

    def test_different_ego_or_artifact_needs_confirmation(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        assert (
            resolve_identity(_obs(ego="fury"), record).resolution
            is Resolution.NEEDS_CONFIRMATION
        )
        assert (
            resolve_identity(_obs(is_artifact=True), record).resolution
            is Resolution.NEEDS_CONFIRMATION
        )

    def test_condition_and_ranges_are_not_content(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        record.stats.weight_max = 9
        observation = _obs(stats=StatBlock(weight=3, damage="1D4", condition="excellent"))
        assert resolve_identity(observation, record).resolution is Resolution.IDENTICAL

    def test_affect_order_does_not_matter(self) -> None:
        affects = [StatAffect("strength", 2), StatAffect("hitroll", 1)]
        record = record_from_observation(
            _obs(stats=StatBlock(weight=3, affects=affects)), item_id="r1"
        )
        observation = _obs(stats=StatBlock(weight=3, affects=list(reversed(affects))))
        assert resolve_identity(observation, record).resolution is Resolution.IDENTICAL

    def test_other_identity_is_new(self) -> None:
        record = record_from_observation(_obs(), item_id="r1")
        assert resolve_identity(_obs(keywords="dagger"), record).resolution is Resolution.NEW


class TestFindMatch:
    def test_finds_by_key(self) -> None:
        records = [
            record_from_observation(_obs(name="other"), item_id="r0"),
            record_from_observation(_obs(), item_id="r1"),
        ]
        match = find_match(_obs(flags=()), records)
        assert match.resolution is Resolution.NEEDS_CONFIRMATION
        assert match.duplicate_of == "r1"

    def test_no_records(self) -> None:
        assert find_match(_obs(), []).resolution is Resolution.NEW


class TestContentSignature:
    def test_missing_flags_equal_empty(self) -> None:
        assert content_signature(_obs(flags=None)) == content_signature(_obs(flags=()))

    def test_observation_and_record_comparable(self) -> None:
        observation = _obs()
        record = record_from_observation(observation)
        assert content_signature(record) == content_signature(dataclasses.replace(observation))
