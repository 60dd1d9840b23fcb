"""Roll-scaled stat changes for environmental events.

Positive base values are boons: a critical failure wipes them out, a regular
roll scales them linearly around 10, a critical success doubles them. Negative
base values are curses and the roll works the other way round, so a good roll
always leaves the character better off than a bad one.
"""

import math
from typing import Callable

from taleforge.domain.services.dice import RollClassification, classify_roll


StatRule = Callable[[int, int], int]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _boon_multiplier(roll: int) -> float:
    tier = classify_roll(roll)
    if tier is RollClassification.CRITICAL_FAILURE:
        return 0.0
    if tier is RollClassification.CRITICAL_SUCCESS:
        return 2.0
    return 1.0 + (roll - 10) / 10


def _curse_multiplier(roll: int) -> float:
    tier = classify_roll(roll)
    if tier is RollClassification.CRITICAL_FAILURE:
        return 2.0
    if tier is RollClassification.CRITICAL_SUCCESS:
        return 0.0
    return 1.0 - (roll - 10) / 10


def apply_roll(roll: int, base_value: int) -> int:
    base = int(base_value)
    if base >= 0:
        return round_half_up(base * _boon_multiplier(roll))
    return -round_half_up(abs(base) * _curse_multiplier(roll))
