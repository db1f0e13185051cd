"""Range-merge engine

Folds a new observation of a known item into its catalog record:

- numeric fields keep the latest `value` plus the observed `[min, max]`
- affects are matched by `kind:label` and widened the same way
- descriptive metadata is taken from the newest submission
- worn slots are unioned, the artifact marker is OR'd

Every field is handled by exactly one entry of MERGE_POLICIES.
Merging never narrows a range and never drops an affect or a slot.
"""

from __future__ import annotations

import copy
import uuid
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from .errors import IdentityMismatchError
from .models import (
    Affect,
    CatalogRecord,
    ItemObservation,
    StatBlock,
    normalize_text,
)


class MergePolicy(str, Enum):
    OVERWRITE = "overwrite"  # incoming wins when present
    RANGE_WIDEN = "range_widen"
    SET_UNION = "set_union"
    BOOLEAN_OR = "boolean_or"
    AFFECT_MERGE = "affect_merge"


# (field path on CatalogRecord / ItemObservation, policy), applied in order.
MERGE_POLICIES: tuple[tuple[str, MergePolicy], ...] = (
    ("name", MergePolicy.OVERWRITE),
    ("keywords", MergePolicy.OVERWRITE),
    ("item_type", MergePolicy.OVERWRITE),
    ("flags", MergePolicy.OVERWRITE),
    ("ego", MergePolicy.OVERWRITE),
    ("raw", MergePolicy.OVERWRITE),
    ("submitted_by", MergePolicy.OVERWRITE),
    ("dropped_by", MergePolicy.OVERWRITE),
    ("duplicate_of", MergePolicy.OVERWRITE),
    ("is_artifact", MergePolicy.BOOLEAN_OR),
    ("flagged_for_review", MergePolicy.BOOLEAN_OR),
    ("worn", MergePolicy.SET_UNION),
    ("stats.weight", MergePolicy.RANGE_WIDEN),
    ("stats.ac", MergePolicy.RANGE_WIDEN),
    ("stats.damage", MergePolicy.OVERWRITE),
    ("stats.condition", MergePolicy.OVERWRITE),
    ("stats.affects", MergePolicy.AFFECT_MERGE),
)

# An empty flag list is an explicit NOBITS reading, not a missing one.
EMPTY_IS_PRESENT = frozenset({"flags"})


# ── scalar ranges ───────────────────────────────────────────


@dataclass(frozen=True)
class ValueRange:
    value: Optional[int] = None
    min: Optional[int] = None
    max: Optional[int] = None


def widen(current: ValueRange, incoming: Optional[int]) -> ValueRange:
    """Fold one reading into a range.

    No reading → unchanged. No prior range → seeded from the reading (and
    from a bare prior value, if one exists).
    """
    if incoming is None:
        return current
    known = [v for v in (current.min, current.max) if v is not None]
    if not known and current.value is not None:
        known.append(current.value)
    known.append(incoming)
    return ValueRange(value=incoming, min=min(known), max=max(known))


def prime(current: ValueRange) -> ValueRange:
    """Seed min/max from the single known value. Any carried min/max is discarded."""
    return ValueRange(current.value, current.value, current.value)


# ── affects ────────────────────────────────────────────────


def affect_key(affect: Affect) -> str:
    """`stat:strength`, `spell:sleep`."""
    return f"{affect.kind.value}:{normalize_text(affect.label)}"


def _keyed(affects: Iterable[Affect]) -> list[tuple[str, Affect]]:
    # Repeats of one key inside a single list keep their own slot: key, key#1, ...
    seen: Counter = Counter()
    keyed = []
    for affect in affects:
        base = affect_key(affect)
        occurrence = seen[base]
        seen[base] += 1
        keyed.append((base if occurrence == 0 else f"{base}#{occurrence}", affect))
    return keyed


def _affect_range(affect: Affect) -> ValueRange:
    return ValueRange(affect.reading, affect.min, affect.max)


def prime_affect(affect: Affect) -> Affect:
    primed = prime(_affect_range(affect))
    return affect.with_reading(primed.value, primed.min, primed.max)


def merge_affects(existing: Iterable[Affect], incoming: Iterable[Affect]) -> list[Affect]:
    """Range-aware union of two affect lists.

    In both → widened, current value from incoming.
    Only incoming → added, primed. Only existing → kept unchanged.
    """
    merged: dict[str, Affect] = dict(_keyed(existing))
    for key, affect in _keyed(incoming):
        prior = merged.get(key)
        if prior is None:
            merged[key] = prime_affect(affect)
            continue
        widened = widen(_affect_range(prior), affect.reading)
        merged[key] = affect.with_reading(widened.value, widened.min, widened.max)
    return list(merged.values())


# ── worn slots ─────────────────────────────────────────────


def union_slots(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    """Ordered, normalized union. Never drops a known slot."""
    slots: list[str] = []
    for slot in list(existing or ()) + list(incoming or ()):
        normalized = normalize_text(slot)
        if normalized and normalized not in slots:
            slots.append(normalized)
    return slots


# ── policy appliers ────────────────────────────────────────


def _is_present(attr: str, value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return bool(value) or attr in EMPTY_IS_PRESENT
    return True


def _apply_overwrite(target: Any, attr: str, incoming: Any) -> None:
    if _is_present(attr, incoming):
        setattr(target, attr, list(incoming) if isinstance(incoming, tuple) else incoming)


def _apply_range_widen(target: Any, attr: str, incoming: Any) -> None:
    current = ValueRange(
        getattr(target, attr), getattr(target, f"{attr}_min"), getattr(target, f"{attr}_max")
    )
    widened = widen(current, incoming)
    setattr(target, attr, widened.value)
    setattr(target, f"{attr}_min", widened.min)
    setattr(target, f"{attr}_max", widened.max)


def _apply_set_union(target: Any, attr: str, incoming: Any) -> None:
    setattr(target, attr, union_slots(getattr(target, attr), incoming))


def _apply_boolean_or(target: Any, attr: str, incoming: Any) -> None:
    setattr(target, attr, bool(getattr(target, attr)) or bool(incoming))


def _apply_affect_merge(target: Any, attr: str, incoming: Any) -> None:
    setattr(target, attr, merge_affects(getattr(target, attr), incoming or ()))


PolicyApplier = Callable[[Any, str, Any], None]

POLICY_APPLIERS: dict[MergePolicy, PolicyApplier] = {
    MergePolicy.OVERWRITE: _apply_overwrite,
    MergePolicy.RANGE_WIDEN: _apply_range_widen,
    MergePolicy.SET_UNION: _apply_set_union,
    MergePolicy.BOOLEAN_OR: _apply_boolean_or,
    MergePolicy.AFFECT_MERGE: _apply_affect_merge,
}


def _owner(obj: Any, path: str) -> tuple[Any, str]:
    *parents, attr = path.split(".")
    for parent in parents:
        obj = getattr(obj, parent)
    return obj, attr


def apply_policy(record: CatalogRecord, observation: ItemObservation, path: str, policy: MergePolicy) -> None:
    """Apply one (field, policy) entry in place on `record`."""
    target, attr = _owner(record, path)
    source, _ = _owner(observation, path)
    POLICY_APPLIERS[policy](target, attr, getattr(source, attr))


# ── record-level operations ────────────────────────────────


def merge_record(record: CatalogRecord, observation: ItemObservation) -> CatalogRecord:
    """Return `record` with `observation` folded in. The input is not modified.

    Raises IdentityMismatchError if the two do not share an identity key.
    """
    if record.identity != observation.identity:
        raise IdentityMismatchError(str(record.identity), str(observation.identity))

    merged = copy.deepcopy(record)
    for path, policy in MERGE_POLICIES:
        apply_policy(merged, observation, path, policy)
    return merged


def prime_ranges(stats: StatBlock) -> StatBlock:
    """Give a single-observation stat block the same shape a merged one has."""
    weight = prime(ValueRange(stats.weight, stats.weight_min, stats.weight_max))
    ac = prime(ValueRange(stats.ac, stats.ac_min, stats.ac_max))
    return replace(
        stats,
        weight=weight.value,
        weight_min=weight.min,
        weight_max=weight.max,
        ac=ac.value,
        ac_min=ac.min,
        ac_max=ac.max,
        affects=[prime_affect(a) for a in stats.affects],
    )


def record_from_observation(
    observation: ItemObservation, item_id: Optional[str] = None
) -> CatalogRecord:
    """Brand-new catalog record, ranges primed."""
    return CatalogRecord(
        item_id=item_id or str(uuid.uuid4()),
        name=observation.name.strip(),
        keywords=observation.keywords.strip(),
        item_type=observation.item_type.strip(),
        stats=prime_ranges(copy.deepcopy(observation.stats)),
        flags=list(observation.flags or ()),
        ego=observation.ego,
        is_artifact=bool(observation.is_artifact),
        raw=list(observation.raw),
        submitted_by=observation.submitted_by,
        dropped_by=observation.dropped_by,
        worn=union_slots((), observation.worn),
        flagged_for_review=bool(observation.flagged_for_review),
        duplicate_of=observation.duplicate_of,
    )
