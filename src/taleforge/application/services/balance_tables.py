from __future__ import annotations

import os
import random
from dataclasses import dataclass, fields, replace

from taleforge.domain.models.enemy import BOSS_DIFFICULTY_THRESHOLD
from taleforge.domain.services.stat_calc import round_half_up


@dataclass(frozen=True)
class BalanceConfig:
    item_event_number_weight: float = 1
    item_dice_roll_weight: float = 2
    cursed_rarity_floor: int = -60
    cursed_roll_max: int = 5

    enemy_event_number_weight: float = 2
    enemy_dice_roll_weight: float = 1

    reward_difficulty_weight: float = 0.5
    reward_dice_roll_weight: float = 2

    item_rarity_variance: int = 5
    enemy_difficulty_variance: int = 3

    boss_difficulty_threshold: int = BOSS_DIFFICULTY_THRESHOLD
    boss_forced_event_start: int = 48
    max_event_number: int = 50

    special_enemy_start_turn: int = 40
    special_enemy_end_turn: int = 47
    special_enemy_chance: float = 0.05
    special_enemy_difficulties: tuple[int, ...] = (300, 500, 700)

    inventory_capacity: int = 10
    item_drop_equipment_chance: float = 0.20
    combat_reward_equipment_chance: float = 0.70

    max_descriptive_events: int = 10
    max_consecutive_descriptive: int = 2
    recent_event_window: int = 5
    max_type_in_window: int = 2
    event_type_max_attempts: int = 3

    flee_success_above: int = 10
    default_stat_boost: int = 2

    @classmethod
    def from_env(cls, prefix: str = "RPG_BALANCE_") -> "BalanceConfig":
        overrides: dict[str, object] = {}
        for setting in fields(cls):
            raw = os.getenv(f"{prefix}{setting.name.upper()}")
            if raw is None or not raw.strip():
                continue
            default = getattr(cls, setting.name)
            if isinstance(default, tuple):
                overrides[setting.name] = tuple(int(part) for part in raw.split(",") if part.strip())
            elif isinstance(default, float):
                overrides[setting.name] = float(raw)
            else:
                overrides[setting.name] = int(raw)
        return replace(cls(), **overrides)

    def is_boss_difficulty(self, difficulty: int) -> bool:
        return int(difficulty) >= self.boss_difficulty_threshold

    def is_special_difficulty(self, difficulty: int) -> bool:
        return int(difficulty) in self.special_enemy_difficulties


DEFAULT_BALANCE = BalanceConfig()


def item_rarity(event_number: int, dice_roll: int, config: BalanceConfig = DEFAULT_BALANCE) -> int:
    """Target rarity for exploration drops; rolls of 5 or less aim at cursed items."""
    if dice_roll <= config.cursed_roll_max:
        progression = event_number / 4
        roll_penalty = (config.cursed_roll_max + 1 - dice_roll) * 5
        return round_half_up(max(-(progression + roll_penalty), config.cursed_rarity_floor))

    target = event_number * config.item_event_number_weight + dice_roll * config.item_dice_roll_weight
    return round_half_up(target)


def enemy_difficulty(
    event_number: int,
    dice_roll: int,
    config: BalanceConfig = DEFAULT_BALANCE,
    rng: random.Random | None = None,
) -> int:
    rng = rng or random
    in_window = config.special_enemy_start_turn <= event_number <= config.special_enemy_end_turn
    if in_window and config.special_enemy_difficulties and rng.random() < config.special_enemy_chance:
        return int(rng.choice(config.special_enemy_difficulties))

    target = event_number * config.enemy_event_number_weight + (dice_roll - 10) * config.enemy_dice_roll_weight
    return round_half_up(max(0, target))


def combat_reward_rarity(difficulty: int, dice_roll: int, config: BalanceConfig = DEFAULT_BALANCE) -> int:
    if config.is_special_difficulty(difficulty):
        return int(difficulty)
    target = difficulty * config.reward_difficulty_weight + dice_roll * config.reward_dice_roll_weight
    return round_half_up(target)


def rarity_range(target: int, variance: int | None = None, config: BalanceConfig = DEFAULT_BALANCE) -> tuple[int, int]:
    spread = config.item_rarity_variance if variance is None else int(variance)
    return max(0, int(target) - spread), int(target) + spread


def difficulty_range(target: int, variance: int | None = None, config: BalanceConfig = DEFAULT_BALANCE) -> tuple[int, int]:
    spread = config.enemy_difficulty_variance if variance is None else int(variance)
    return max(0, int(target) - spread), int(target) + spread
