import os
import random
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from taleforge.application.services.balance_tables import (
    BalanceConfig,
    combat_reward_rarity,
    difficulty_range,
    enemy_difficulty,
    item_rarity,
    rarity_range,
)


class _Pinned(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(11)
        self.value = value

    def random(self) -> float:
        return self.value


class ItemRarityTests(unittest.TestCase):
    def test_good_roll_scales_with_progress(self) -> None:
        self.assertEqual(30, item_rarity(10, 10))
        self.assertEqual(22, item_rarity(2, 10))
        self.assertEqual(90, item_rarity(50, 20))

    def test_low_roll_targets_cursed_items(self) -> None:
        self.assertEqual(-6, item_rarity(4, 5))
        self.assertEqual(-28, item_rarity(12, 1))

    def test_cursed_rarity_has_a_floor(self) -> None:
        self.assertEqual(-60, item_rarity(200, 1))

    def test_monotonic_in_event_number(self) -> None:
        for roll in range(6, 21):
            values = [item_rarity(event, roll) for event in range(1, 51)]
            self.assertEqual(sorted(values), values)
        for roll in range(1, 6):
            values = [item_rarity(event, roll) for event in range(1, 51)]
            self.assertEqual(sorted(values, reverse=True), values)


class EnemyDifficultyTests(unittest.TestCase):
    def test_difficulty_follows_event_and_roll(self) -> None:
        self.assertEqual(20, enemy_difficulty(10, 10, rng=_Pinned(0.9)))
        self.assertEqual(4, enemy_difficulty(2, 10, rng=_Pinned(0.9)))
        self.assertEqual(38, enemy_difficulty(15, 18, rng=_Pinned(0.9)))

    def test_difficulty_is_never_negative(self) -> None:
        self.assertEqual(0, enemy_difficulty(1, 1, rng=_Pinned(0.9)))

    def test_special_tier_only_inside_its_window(self) -> None:
        self.assertIn(enemy_difficulty(45, 10, rng=_Pinned(0.0)), (300, 500, 700))
        self.assertEqual(60, enemy_difficulty(30, 10, rng=_Pinned(0.0)))
        self.assertEqual(90, enemy_difficulty(45, 10, rng=_Pinned(0.05)))


class RewardRarityTests(unittest.TestCase):
    def test_reward_combines_difficulty_and_roll(self) -> None:
        self.assertEqual(30, combat_reward_rarity(20, 10))
        self.assertEqual(21, combat_reward_rarity(1, 10))

    def test_special_tiers_map_to_themselves(self) -> None:
        for tier in (300, 500, 700):
            self.assertEqual(tier, combat_reward_rarity(tier, 1))


class RangeTests(unittest.TestCase):
    def test_ranges_clamp_at_zero(self) -> None:
        self.assertEqual((0, 8), rarity_range(3))
        self.assertEqual((17, 23), difficulty_range(20))
        self.assertEqual((0, -55), rarity_range(-60))

    def test_explicit_variance_overrides_config(self) -> None:
        self.assertEqual((40, 60), rarity_range(50, variance=10))


class BalanceConfigTests(unittest.TestCase):
    def test_env_overrides_are_typed(self) -> None:
        env = {
            "RPG_BALANCE_INVENTORY_CAPACITY": "12",
            "RPG_BALANCE_ITEM_DROP_EQUIPMENT_CHANCE": "0.5",
            "RPG_BALANCE_SPECIAL_ENEMY_DIFFICULTIES": "100, 200",
            "RPG_BALANCE_MAX_EVENT_NUMBER": " ",
        }

        with mock.patch.dict(os.environ, env, clear=False):
            config = BalanceConfig.from_env()

        self.assertEqual(12, config.inventory_capacity)
        self.assertEqual(0.5, config.item_drop_equipment_chance)
        self.assertEqual((100, 200), config.special_enemy_difficulties)
        self.assertEqual(50, config.max_event_number)

    def test_boss_threshold(self) -> None:
        config = BalanceConfig()
        self.assertTrue(config.is_boss_difficulty(1000))
        self.assertFalse(config.is_boss_difficulty(700))


if __name__ == "__main__":
    unittest.main()
