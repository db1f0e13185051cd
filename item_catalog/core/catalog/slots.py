"""Wear-slot guessing from an item's name and keywords"""

from __future__ import annotations

from typing import Optional

# Checked in order; the first slot with a matching keyword wins.
SLOT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "head": ("helm", "hood", "cap", "hat", "crown"),
    "neck": ("amulet", "torc", "necklace", "pendant", "gorget"),
    "body": ("robe", "breastplate", "chest", "armor"),
    "about-legs": ("kilt", "skirt"),
    "legs": ("greaves", "leggings", "pants"),
    "feet": ("boots", "shoes", "slippers", "sabatons"),
    "hands": ("glove", "gauntlet", "mitt"),
    "waist": ("belt", "sash", "cord"),
    "finger": ("ring", "band"),
    "wield": ("sword", "axe", "mace", "flail", "staff", "club", "dagger"),
    "offhand": ("shield", "buckler"),
    "held": ("book", "tome", "orb"),
    "two-handed": ("greatsword", "polearm", "halberd", "maul"),
    "back": ("quiver", "cloak", "cape"),
    "light": ("light", "lantern"),
}


def guess_slot(name: str = "", keywords: str = "", worn: Optional[list[str]] = None) -> Optional[str]:
    """Known slot if one was reported, else a keyword guess, else None.

    Substring match, so "greatsword" lands on "wield" before "two-handed".
    """
    if worn:
        return worn[0]
    haystack = f"{name or ''} {keywords or ''}".lower()
    for slot, needles in SLOT_KEYWORDS.items():
        if any(needle in haystack for needle in needles):
            return slot
    return None
