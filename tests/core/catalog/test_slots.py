"""Wear-slot guessing"""

import pytest

from item_catalog.core.catalog.slots import guess_slot


@pytest.mark.parametrize(
    "name, keywords, expected",
    [
        ("a steel helm", "helm steel", "head"),
        ("a pair of leather boots", "boots leather", "feet"),
        ("a heavy, black flail", "flail heavy black", "wield"),
        ("a golden ring", "ring golden", "finger"),
        ("a wooden shield", "shield wooden", "offhand"),
        ("a lump of coal", "coal lump", None),
    ],
)
def test_guess_from_name(name, keywords, expected) -> None:
    assert guess_slot(name, keywords) == expected


def test_reported_slot_wins() -> None:
    assert guess_slot("a steel helm", "helm", worn=["held"]) == "held"


def test_empty() -> None:
    assert guess_slot() is None
