"""Temporary-enchantment noise filter

An identify taken while an enchant spell is active shows an armor bonus of
+1..+3 together with save_all -1..-3. Those lines are not part of the item's
permanent stats and are dropped before the observation leaves the parser.
"""

from .models import Affect, StatAffect

ARMOR_ENCHANT_VALUES = frozenset({1, 2, 3})
SAVE_ALL_ENCHANT_VALUES = frozenset({-1, -2, -3})


def is_armor_enchant(affect: Affect) -> bool:
    return (
        isinstance(affect, StatAffect)
        and "armor" in affect.name.lower()
        and affect.value in ARMOR_ENCHANT_VALUES
    )


def is_save_all_enchant(affect: Affect) -> bool:
    return (
        isinstance(affect, StatAffect)
        and affect.name.lower() == "save_all"
        and affect.value in SAVE_ALL_ENCHANT_VALUES
    )


def is_enchanted(affects: list[Affect]) -> bool:
    """Both halves of the enchant pair must be present."""
    return any(is_armor_enchant(a) for a in affects) and any(
        is_save_all_enchant(a) for a in affects
    )


def strip_enchantment(affects: list[Affect]) -> list[Affect]:
    """Remove every enchant-pattern affect when the pair is present.

    A lone armor bonus (no matching save_all) is kept as-is.
    """
    if not is_enchanted(affects):
        return list(affects)
    return [
        a for a in affects if not is_armor_enchant(a) and not is_save_all_enchant(a)
    ]
