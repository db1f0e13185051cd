"""Identify-dump parser

Turns the text a player pastes from the game client into ItemObservations.
A dump is zero or more blocks of the shape::

    a heavy, black flail (excellent)..It hums powerfully
    Object 'flail heavy black', Item type: WEAPON
    Item is: MAGIC, ANTI_GOOD
    Weight: 12
    Damage Dice is '3D6'
    Type: strength Value: 2

Malformed input never raises: unrecognized lines are kept in `raw` and
otherwise ignored.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from item_catalog.core.logging import get_logger

from .enchantment import is_enchanted, strip_enchantment
from .models import Affect, ItemObservation, SpellAffect, StatAffect, StatBlock

logger = get_logger(__name__)

PLACEHOLDER_NAME = "Unknown Item"
NO_FLAGS_SENTINEL = "NOBITS"

OBJECT_LINE = re.compile(r"Object '([^']+)', Item type: (.+)")
DESCRIPTOR_LINE = re.compile(r"^\.\.(.+)$")
DESCRIPTOR_SUFFIX = re.compile(r"(\.\.[^.]+)+$")
TRAILING_CONDITION = re.compile(r"^(.*?)\s*\(([^)]+)\)\s*$")
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

SPELL_NAME = re.compile(r"Spell:\s+(\S+)", re.IGNORECASE)
SPELL_LEVEL = re.compile(r"Level:\s+(\d+)", re.IGNORECASE)


def _leading_int(text: str) -> Optional[int]:
    """`"12 pounds"` → 12, `"heavy"` → None."""
    match = LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def split_name(raw_name: str) -> tuple[str, Optional[str]]:
    """Clean a name line into (name, condition).

    Trailing `..<phrase>` descriptors are discarded, then one trailing
    parenthetical becomes the condition:
    "a heavy, black flail (excellent)..It hums" → ("a heavy, black flail", "excellent")
    """
    cleaned = DESCRIPTOR_SUFFIX.sub("", raw_name).strip()
    match = TRAILING_CONDITION.match(cleaned)
    if not match:
        return cleaned, None
    return match.group(1).strip(), match.group(2).strip()


@dataclass
class _ObservationBuilder:
    """In-progress block; attribute handlers mutate it."""

    name: str
    keywords: str
    item_type: str
    name_missing: bool
    condition: Optional[str] = None
    weight: int = 0
    damage: Optional[str] = None
    ac: Optional[int] = None
    affects: list[Affect] = field(default_factory=list)
    flags: Optional[list[str]] = None
    ego: Optional[str] = None
    raw: list[str] = field(default_factory=list)

    def build(self) -> ItemObservation:
        affects = self.affects
        if is_enchanted(affects):
            affects = strip_enchantment(affects)
            logger.debug(
                "Stripped enchantment affects from %r (%d → %d)",
                self.name,
                len(self.affects),
                len(affects),
            )
        return ItemObservation(
            observation_id=str(uuid.uuid4()),
            name=self.name,
            keywords=self.keywords,
            item_type=self.item_type,
            stats=StatBlock(
                weight=self.weight,
                damage=self.damage,
                ac=self.ac,
                condition=self.condition,
                affects=list(affects),
            ),
            flags=tuple(self.flags) if self.flags is not None else None,
            ego=self.ego,
            raw=tuple(self.raw),
            name_missing=self.name_missing,
        )


# ── attribute handlers ──────────────────────────────────────


def _on_weight(item: _ObservationBuilder, match: re.Match) -> None:
    item.weight = _leading_int(match.group(1)) or 0


def _on_flags(item: _ObservationBuilder, match: re.Match) -> None:
    value = match.group(1).strip()
    if value == NO_FLAGS_SENTINEL:
        item.flags = []
        return
    item.flags = [flag.strip() for flag in value.split(",") if flag.strip()]


def _on_damage(item: _ObservationBuilder, match: re.Match) -> None:
    if match.group(1):
        item.damage = match.group(1)


def _on_ac(item: _ObservationBuilder, match: re.Match) -> None:
    item.ac = _leading_int(match.group(1))


def _on_spell(item: _ObservationBuilder, match: re.Match) -> None:
    line = match.string
    spell = SPELL_NAME.search(line)
    level = SPELL_LEVEL.search(line)
    item.affects.append(
        SpellAffect(
            spell=spell.group(1) if spell else None,
            level=int(level.group(1)) if level else None,
        )
    )


def _on_stat(item: _ObservationBuilder, match: re.Match) -> None:
    item.affects.append(StatAffect(name=match.group(1).strip(), value=int(match.group(2))))


def _on_ego(item: _ObservationBuilder, match: re.Match) -> None:
    item.ego = match.group(1).strip()


AttributeHandler = Callable[[_ObservationBuilder, re.Match], None]

# First matching rule wins; spell lines must be tried before stat lines.
ATTRIBUTE_RULES: list[tuple[re.Pattern, AttributeHandler]] = [
    (re.compile(r"^Weight:(.*)$"), _on_weight),
    (re.compile(r"^Item is:(.*)$"), _on_flags),
    (re.compile(r"^Damage Dice is(?:.*?'([^']+)')?"), _on_damage),
    (re.compile(r"^AC-apply is(.*)$"), _on_ac),
    (re.compile(r"^Type:.*\bSpell:", re.IGNORECASE), _on_spell),
    (re.compile(r"^Type:\s+(.+?)\s+Value:\s+(-?\d+)", re.IGNORECASE), _on_stat),
    (re.compile(r"This item's ego is of\s+(.+)", re.IGNORECASE), _on_ego),
]


def _match_rule(line: str) -> Optional[tuple[re.Match, AttributeHandler]]:
    for pattern, handler in ATTRIBUTE_RULES:
        match = pattern.search(line)
        if match:
            return match, handler
    return None


def _is_name_candidate(line: str) -> bool:
    return not OBJECT_LINE.search(line) and _match_rule(line) is None


def _clean_lines(text: str) -> list[str]:
    lines = (line.strip() for line in (text or "").splitlines())
    return [line for line in lines if line and not DESCRIPTOR_LINE.match(line)]


def parse_identify_dump(text: str) -> list[ItemObservation]:
    """Parse a pasted dump into observations, in text order."""
    lines = _clean_lines(text)

    object_indexes = [i for i, line in enumerate(lines) if OBJECT_LINE.search(line)]
    name_indexes = {
        i - 1 for i in object_indexes if i > 0 and _is_name_candidate(lines[i - 1])
    }

    observations: list[ItemObservation] = []
    for position, start in enumerate(object_indexes):
        match = OBJECT_LINE.search(lines[start])
        has_name = (start - 1) in name_indexes
        name, condition = split_name(lines[start - 1] if has_name else PLACEHOLDER_NAME)

        item = _ObservationBuilder(
            name=name,
            keywords=match.group(1).strip(),
            item_type=match.group(2).strip().lower(),
            name_missing=not has_name,
            condition=condition,
        )

        end = object_indexes[position + 1] if position + 1 < len(object_indexes) else len(lines)
        for index in range(start + 1, end):
            if index in name_indexes:
                continue
            line = lines[index]
            rule = _match_rule(line)
            if rule is not None:
                rule_match, handler = rule
                handler(item, rule_match)
            item.raw.append(line)

        observations.append(item.build())

    logger.debug("Parsed %d item block(s) from %d line(s)", len(observations), len(lines))
    return observations
