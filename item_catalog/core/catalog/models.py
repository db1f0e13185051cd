"""Catalog domain models (DB-agnostic)"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union


def normalize_text(value: Optional[str]) -> str:
    """Identity comparison form: lowercase, surrounding whitespace trimmed."""
    return (value or "").strip().lower()


class AffectKind(str, Enum):
    STAT = "stat"
    SPELL = "spell"


@dataclass
class StatAffect:
    """`Type: <stat> Value: <n>` line."""

    kind: ClassVar[AffectKind] = AffectKind.STAT

    name: str
    value: int
    min: Optional[int] = None
    max: Optional[int] = None

    @property
    def label(self) -> str:
        return self.name

    @property
    def reading(self) -> Optional[int]:
        return self.value

    def with_reading(
        self, reading: Optional[int], low: Optional[int], high: Optional[int]
    ) -> StatAffect:
        value = self.value if reading is None else reading
        return replace(self, value=value, min=low, max=high)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind.value, "stat": self.name, "value": self.value}
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        return data


@dataclass
class SpellAffect:
    """`Type: ... Spell: <name> Level: <n>` line. Both parts may be missing."""

    kind: ClassVar[AffectKind] = AffectKind.SPELL

    spell: Optional[str] = None
    level: Optional[int] = None
    min: Optional[int] = None
    max: Optional[int] = None

    @property
    def label(self) -> str:
        return self.spell or ""

    @property
    def reading(self) -> Optional[int]:
        return self.level

    def with_reading(
        self, reading: Optional[int], low: Optional[int], high: Optional[int]
    ) -> SpellAffect:
        level = self.level if reading is None else reading
        return replace(self, level=level, min=low, max=high)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind.value}
        if self.spell is not None:
            data["spell"] = self.spell
        if self.level is not None:
            data["level"] = self.level
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        return data


Affect = Union[StatAffect, SpellAffect]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def affect_from_dict(data: dict[str, Any]) -> Optional[Affect]:
    """Stored/posted dict → Affect. Unknown `type` tags yield None."""
    kind = data.get("type")
    if kind == AffectKind.STAT.value:
        name = data.get("stat") or data.get("name")
        value = _optional_int(data.get("value"))
        if not name or value is None:
            return None
        return StatAffect(
            name=str(name).strip(),
            value=value,
            min=_optional_int(data.get("min")),
            max=_optional_int(data.get("max")),
        )
    if kind == AffectKind.SPELL.value:
        spell = data.get("spell")
        return SpellAffect(
            spell=str(spell).strip() if spell else None,
            level=_optional_int(data.get("level")),
            min=_optional_int(data.get("min")),
            max=_optional_int(data.get("max")),
        )
    return None


@dataclass
class StatBlock:
    """Numeric and descriptive stats of one item.

    `weight_min`/`weight_max` and `ac_min`/`ac_max` are only populated on
    catalog records (after priming or merging), never by the parser.
    """

    weight: Optional[int] = 0
    damage: Optional[str] = None
    ac: Optional[int] = None
    condition: Optional[str] = None
    affects: list[Affect] = field(default_factory=list)

    weight_min: Optional[int] = None
    weight_max: Optional[int] = None
    ac_min: Optional[int] = None
    ac_max: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"affects": [a.to_dict() for a in self.affects]}
        for key in (
            "weight",
            "weight_min",
            "weight_max",
            "damage",
            "ac",
            "ac_min",
            "ac_max",
            "condition",
        ):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> StatBlock:
        data = data or {}
        affects = []
        for raw in data.get("affects") or []:
            if isinstance(raw, dict):
                affect = affect_from_dict(raw)
                if affect is not None:
                    affects.append(affect)
        damage = data.get("damage")
        condition = data.get("condition")
        return cls(
            weight=_optional_int(data.get("weight")),
            damage=str(damage) if damage else None,
            ac=_optional_int(data.get("ac")),
            condition=str(condition) if condition else None,
            affects=affects,
            weight_min=_optional_int(data.get("weight_min")),
            weight_max=_optional_int(data.get("weight_max")),
            ac_min=_optional_int(data.get("ac_min")),
            ac_max=_optional_int(data.get("ac_max")),
        )


@dataclass(frozen=True)
class IdentityKey:
    """Normalized (name, keywords, type) triple. Unique across the catalog."""

    name: str
    keywords: str
    item_type: str

    @classmethod
    def of(cls, name: Optional[str], keywords: Optional[str], item_type: Optional[str]) -> IdentityKey:
        return cls(normalize_text(name), normalize_text(keywords), normalize_text(item_type))

    def __str__(self) -> str:
        return f"{self.name} | {self.keywords} | {self.item_type}"


@dataclass(frozen=True)
class ItemObservation:
    """One parsed (or client-supplied) item. Never mutated after creation.

    flags: None when no `Item is:` line was seen, () for `NOBITS`.
    """

    observation_id: str
    name: str
    keywords: str
    item_type: str
    stats: StatBlock = field(default_factory=StatBlock)
    flags: Optional[tuple[str, ...]] = None
    ego: Optional[str] = None
    is_artifact: bool = False
    raw: tuple[str, ...] = ()
    name_missing: bool = False

    # Submitter-side metadata (ingestion overrides)
    submitted_by: Optional[str] = None
    user_id: Optional[str] = None
    dropped_by: Optional[str] = None
    worn: tuple[str, ...] = ()
    flagged_for_review: bool = False
    duplicate_of: Optional[str] = None

    @property
    def identity(self) -> IdentityKey:
        return IdentityKey.of(self.name, self.keywords, self.item_type)


@dataclass
class CatalogRecord:
    """Durable, merged representation of one logical item."""

    item_id: str
    name: str
    keywords: str
    item_type: str
    stats: StatBlock = field(default_factory=StatBlock)
    flags: list[str] = field(default_factory=list)
    ego: Optional[str] = None
    is_artifact: bool = False
    raw: list[str] = field(default_factory=list)

    submitted_by: Optional[str] = None
    dropped_by: Optional[str] = None
    worn: list[str] = field(default_factory=list)

    flagged_for_review: bool = False
    duplicate_of: Optional[str] = None

    # Derived from the provenance ledger, filled on read
    submission_count: int = 0
    contributors: list[str] = field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: Optional[int] = None

    @property
    def identity(self) -> IdentityKey:
        return IdentityKey.of(self.name, self.keywords, self.item_type)


class Resolution(str, Enum):
    NEW = "new"
    IDENTICAL = "identical"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass(frozen=True)
class IdentityMatch:
    resolution: Resolution
    existing: Optional[CatalogRecord] = None

    @property
    def duplicate_of(self) -> Optional[str]:
        if self.resolution is Resolution.NEEDS_CONFIRMATION and self.existing:
            return self.existing.item_id
        return None


@dataclass(frozen=True)
class SubmissionEvent:
    """Submitter X observed item Y at time T. Immutable."""

    event_id: str
    item_id: str
    identity: IdentityKey
    submitter_key: str
    submitter_name: Optional[str]
    user_id: Optional[str]
    created_at: datetime
    ip_hash: Optional[str] = None
    raw: tuple[str, ...] = ()


@dataclass
class ContributorSummary:
    item_id: str
    contributors: list[str] = field(default_factory=list)
    submission_count: int = 0


@dataclass
class SubmitterStats:
    """Running totals for one normalized submitter."""

    submitter_key: str
    display_name: Optional[str]
    submission_count: int = 0
    item_ids: list[str] = field(default_factory=list)


@dataclass
class Suggestion:
    """A player-proposed correction to a catalog record."""

    suggestion_id: str
    item_id: str
    note: str
    proposer: Optional[str] = None
    status: str = "pending"
    created_at: Optional[datetime] = None
