"""
OAF Discord Bot - Stat Calculators
==================================

Familiar and character stat formulas behind the calculator commands.

Bot: OAF
Game: kingdomofloathing.com
"""

import math
from typing import NamedTuple


MAX_LEVEL = 255
HOUNDDOG_MULTIPLIER = 1.25


class StatLevel(NamedTuple):
    level: int
    mainstat: int
    substat: int


def volleyball_substats(weight: int) -> float:
    """Substats per combat from a volleyball-type familiar."""
    return 2 + 0.2 * weight


def fairy_item_drop(weight: float, multiplier: float = 1.0) -> float:
    """Item drop % from a fairy-type familiar of a given weight."""
    return multiplier * (math.sqrt(55 * weight) + weight - 3)


def fairy_weight(item_drop: float, multiplier: float = 1.0) -> float:
    """
    Weight a fairy needs to give `item_drop` %.

    Inverts fairy_item_drop: with s = sqrt(weight), s^2 + sqrt(55)s = drop + 3.
    """
    target = item_drop / multiplier + 3
    root = (-math.sqrt(55) + math.sqrt(55 + 4 * target)) / 2
    return root * root


def from_mainstat(mainstat: int) -> StatLevel:
    if mainstat < 4:
        level = 1
    else:
        level = min(MAX_LEVEL, math.isqrt(mainstat - 4) + 1)
    return StatLevel(level=level, mainstat=mainstat, substat=mainstat * mainstat)


def from_substat(substat: int) -> StatLevel:
    """Mainstat and level reached by a substat total."""
    result = from_mainstat(math.isqrt(max(0, substat)))
    return StatLevel(level=result.level, mainstat=result.mainstat, substat=substat)


def from_level(level: int) -> StatLevel:
    """Minimum mainstat and substat for a level."""
    mainstat = (level - 1) ** 2 + 4
    return StatLevel(level=level, mainstat=mainstat, substat=mainstat * mainstat)


def format_number(value: float) -> str:
    """Thousands separators, at most one decimal, no trailing zero."""
    text = f"{value:,.1f}"
    return text[:-2] if text.endswith(".0") else text


__all__ = [
    "MAX_LEVEL",
    "HOUNDDOG_MULTIPLIER",
    "StatLevel",
    "volleyball_substats",
    "fairy_item_drop",
    "fairy_weight",
    "from_mainstat",
    "from_substat",
    "from_level",
    "format_number",
]
