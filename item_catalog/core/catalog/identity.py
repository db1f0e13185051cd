"""Identity resolver: new item, harmless re-paste, or a variant to confirm.

Matching is exact on the normalized (name, keywords, type) key. Near-miss
names are never treated as the same identity here.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from .models import (
    CatalogRecord,
    IdentityKey,
    IdentityMatch,
    ItemObservation,
    Resolution,
    StatBlock,
    normalize_text,
)

Comparable = Union[ItemObservation, CatalogRecord]


def identity_key(name: Optional[str], keywords: Optional[str], item_type: Optional[str]) -> IdentityKey:
    return IdentityKey.of(name, keywords, item_type)


def _stats_signature(stats: StatBlock) -> tuple:
    # Range bookkeeping (min/max) and wear condition are not part of content.
    affects = sorted(
        (a.kind.value, normalize_text(a.label), a.reading is None, a.reading or 0)
        for a in stats.affects
    )
    return (stats.weight, stats.damage, stats.ac, tuple(affects))


def content_signature(item: Comparable) -> tuple:
    """Everything besides identity that makes two submissions "the same data"."""
    flags = tuple(sorted(item.flags or ()))
    return (
        flags,
        _stats_signature(item.stats),
        normalize_text(item.ego),
        bool(item.is_artifact),
    )


def resolve_identity(
    observation: ItemObservation, existing: Optional[CatalogRecord]
) -> IdentityMatch:
    """Classify one observation against the record stored under its key."""
    if existing is None or existing.identity != observation.identity:
        return IdentityMatch(Resolution.NEW)
    if content_signature(existing) == content_signature(observation):
        return IdentityMatch(Resolution.IDENTICAL, existing)
    return IdentityMatch(Resolution.NEEDS_CONFIRMATION, existing)


def find_match(
    observation: ItemObservation, records: Iterable[CatalogRecord]
) -> IdentityMatch:
    """Same as resolve_identity, over an arbitrary slice of the catalog."""
    key = observation.identity
    for record in records:
        if record.identity == key:
            return resolve_identity(observation, record)
    return IdentityMatch(Resolution.NEW)
