import random
from enum import Enum


D20_SIDES = 20
CRITICAL_FAILURE_MAX = 4
CRITICAL_SUCCESS_MIN = 16


class RollClassification(str, Enum):
    CRITICAL_FAILURE = "critical_failure"
    REGULAR = "regular"
    CRITICAL_SUCCESS = "critical_success"


def roll_d20(rng: random.Random | None = None) -> int:
    rng = rng or random
    return rng.randint(1, D20_SIDES)


def is_valid_roll(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= D20_SIDES


def classify_roll(value: int) -> RollClassification:
    if not is_valid_roll(value):
        raise ValueError(f"Invalid d20 roll: {value!r}")
    if value <= CRITICAL_FAILURE_MAX:
        return RollClassification.CRITICAL_FAILURE
    if value >= CRITICAL_SUCCESS_MIN:
        return RollClassification.CRITICAL_SUCCESS
    return RollClassification.REGULAR


class DiceRoller:
    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def set_seed(self, seed: int) -> None:
        self.rng.seed(seed)

    def roll(self) -> int:
        return roll_d20(self.rng)

    def roll_and_classify(self) -> tuple[int, RollClassification]:
        value = self.roll()
        return value, classify_roll(value)
