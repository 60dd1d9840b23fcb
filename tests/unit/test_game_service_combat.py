import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from game_fixtures import PinnedRandom, ScriptedNarrator, build_harness, catalog_with_enemies
from taleforge.application.dtos import GamePhase
from taleforge.application.services.game_service import ENDED_MESSAGE
from taleforge.domain.models.campaign import CampaignState
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.game_event import EventType


SPARRING_GOLEM = Enemy(id=1, name="Sparring Golem", difficulty=5, health=500, attack=30, defense=0)


def _in_combat(**harness_kwargs):
    harness = build_harness(**harness_kwargs)
    harness.seed_events(1, (EventType.DESCRIPTIVE,))
    harness.narrator.event_types = [EventType.COMBAT]
    harness.act("continue")
    response = harness.act("investigate", diceRoll=10)
    assert response.success, response.error
    return harness, response


class EncounterTests(unittest.TestCase):
    def test_investigating_combat_opens_encounter_near_target_difficulty(self) -> None:
        harness, response = _in_combat()

        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)
        self.assertEqual("Giant Rat", response.game_state.enemy.name)
        self.assertEqual(["Attack", "Flee"], response.choices)
        encounter = harness.log()[-1]
        self.assertEqual(2, encounter.event_number)
        self.assertEqual("encounter", encounter.event_data["phase"])
        self.assertEqual(4, encounter.event_data["target_difficulty"])
        self.assertFalse(encounter.event_data["boss"])

    def test_use_item_is_offered_when_pack_is_not_empty(self) -> None:
        harness = build_harness(seed=catalog_with_enemies(SPARRING_GOLEM))
        harness.stock(6)
        harness.seed_events(1, (EventType.DESCRIPTIVE,))
        harness.narrator.event_types = [EventType.COMBAT]
        harness.act("continue")

        response = harness.act("investigate", diceRoll=10)

        self.assertEqual(["Attack", "Flee", "Use Item"], response.choices)

    def test_continue_during_combat_is_rejected(self) -> None:
        harness, _ = _in_combat()

        response = harness.act("continue")

        self.assertFalse(response.success)
        self.assertIn("not allowed during combat", response.error)


class AttackTests(unittest.TestCase):
    def test_defeating_enemy_grants_reward_and_returns_to_exploration(self) -> None:
        harness, _ = _in_combat(rng=PinnedRandom(0.5), narrator=ScriptedNarrator(item_kind="weapon"))

        response = harness.act("attack", diceRoll=10)

        self.assertTrue(response.success)
        result = response.combat_result
        self.assertEqual(19, result.damage_dealt)
        self.assertEqual(0, result.damage_received)
        self.assertEqual("enemy_defeated", result.outcome)
        self.assertEqual("Hand Axe", response.item_found.name)
        self.assertTrue(response.item_found.auto_equipped)
        self.assertEqual(GamePhase.EXPLORATION, response.game_state.phase)
        self.assertEqual(["Continue Forward"], response.choices)
        self.assertEqual(26, harness.character().attack)
        self.assertIsNone(harness.service.snapshots.get(harness.campaign_id))

        conclusion = harness.log()[-1]
        self.assertEqual(3, conclusion.event_number)
        self.assertEqual(EventType.COMBAT, conclusion.event_type)
        self.assertEqual("enemy_defeated", conclusion.event_data["outcome"])
        self.assertEqual(1, conclusion.event_data["rounds"])

    def test_damage_stays_in_snapshot_until_combat_ends(self) -> None:
        harness, _ = _in_combat(seed=catalog_with_enemies(SPARRING_GOLEM))

        response = harness.act("attack", diceRoll=10)

        self.assertEqual(20, response.combat_result.damage_dealt)
        self.assertEqual(10, response.combat_result.damage_received)
        self.assertEqual(480, response.game_state.enemy.current_health)
        self.assertEqual(90, response.game_state.character.current_health)
        self.assertEqual(100, harness.character().current_health)
        self.assertIsNone(response.combat_result.outcome)

    def test_character_defeat_ends_the_campaign(self) -> None:
        ogre = Enemy(id=1, name="Ogre King", difficulty=5, health=500, attack=200, defense=0)
        harness, _ = _in_combat(seed=catalog_with_enemies(ogre))

        response = harness.act("attack", diceRoll=10)

        self.assertTrue(response.success)
        self.assertEqual("character_defeated", response.combat_result.outcome)
        self.assertEqual(GamePhase.GAME_OVER, response.game_state.phase)
        self.assertEqual([], response.choices)
        self.assertEqual(0, harness.character().current_health)
        self.assertEqual(CampaignState.GAME_OVER, harness.campaigns.get(harness.campaign_id).state)
        self.assertEqual("character_defeated", harness.log()[-1].event_data["outcome"])

        after = harness.act("attack", diceRoll=10)
        self.assertFalse(after.success)
        self.assertEqual(ENDED_MESSAGE, after.error)


class ItemUseTests(unittest.TestCase):
    def test_stacked_potions_are_removed_once_per_use_at_reconciliation(self) -> None:
        harness = build_harness(seed=catalog_with_enemies(SPARRING_GOLEM))
        harness.stock(6, 3)
        harness.seed_events(1, (EventType.DESCRIPTIVE,))
        harness.narrator.event_types = [EventType.COMBAT]
        harness.act("continue")
        harness.act("investigate", diceRoll=10)
        harness.act("attack", diceRoll=10)

        first = harness.act("use_item_combat", itemId=6)
        second = harness.act("use_item_combat", itemId=6)

        self.assertTrue(first.success and second.success)
        self.assertEqual(100, second.game_state.character.current_health)
        self.assertEqual(1, len(second.game_state.inventory))
        self.assertEqual([6, 6, 6], harness.inventory.list_item_ids(harness.character_id))

        fled = harness.act("flee", diceRoll=15)

        self.assertEqual("fled", fled.combat_result.outcome)
        self.assertEqual([6], harness.inventory.list_item_ids(harness.character_id))
        self.assertEqual(100, harness.character().current_health)
        self.assertEqual(2, harness.log()[-1].event_data["items_used"])

    def test_attack_buff_lasts_only_for_the_fight(self) -> None:
        harness = build_harness(seed=catalog_with_enemies(SPARRING_GOLEM))
        harness.stock(7)
        harness.seed_events(1, (EventType.DESCRIPTIVE,))
        harness.narrator.event_types = [EventType.COMBAT]
        harness.act("continue")
        harness.act("investigate", diceRoll=10)

        used = harness.act("use_item_combat", itemId=7)

        self.assertEqual(4, used.game_state.character.temporary_attack)
        self.assertEqual(24, used.game_state.character.attack)
        self.assertEqual(["Attack", "Flee"], used.choices)

        fled = harness.act("flee", diceRoll=15)

        self.assertEqual(20, harness.character().attack)
        self.assertEqual(0, fled.game_state.character.temporary_attack)
        self.assertEqual([], harness.inventory.list_item_ids(harness.character_id))

    def test_using_an_item_not_carried_fails(self) -> None:
        harness, _ = _in_combat()

        response = harness.act("use_item_combat", itemId=6)

        self.assertFalse(response.success)
        self.assertIn("not in your combat inventory", response.error)
        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)

    def test_non_numeric_item_id_is_a_validation_failure(self) -> None:
        harness, _ = _in_combat()

        with self.assertNoLogs("taleforge.application.services.game_service", level="ERROR"):
            response = harness.act("use_item_combat", itemId="potion")

        self.assertFalse(response.success)
        self.assertEqual("Item id must be a whole number, got 'potion'.", response.error)
        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)


class FleeTests(unittest.TestCase):
    def test_failed_flee_takes_a_harder_counter(self) -> None:
        harness, _ = _in_combat(seed=catalog_with_enemies(SPARRING_GOLEM))

        response = harness.act("flee", diceRoll=5)

        self.assertTrue(response.success)
        self.assertIsNone(response.combat_result.outcome)
        self.assertEqual(15, response.combat_result.damage_received)
        self.assertEqual(85, response.game_state.character.current_health)
        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)
        self.assertEqual(100, harness.character().current_health)

    def test_successful_flee_writes_snapshot_health_back(self) -> None:
        harness, _ = _in_combat(seed=catalog_with_enemies(SPARRING_GOLEM))
        harness.act("attack", diceRoll=10)

        response = harness.act("flee", diceRoll=11)

        self.assertEqual("fled", response.combat_result.outcome)
        self.assertEqual(90, harness.character().current_health)
        self.assertEqual(GamePhase.EXPLORATION, response.game_state.phase)

    def test_boss_refuses_flee(self) -> None:
        harness = build_harness()
        harness.seed_events(47)
        harness.act("continue")

        response = harness.act("flee", diceRoll=20)

        self.assertTrue(response.success)
        self.assertEqual("flee_refused", response.combat_result.outcome)
        self.assertEqual(0, response.combat_result.damage_received)
        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)


class VictoryTests(unittest.TestCase):
    def test_defeating_boss_completes_campaign_without_reward(self) -> None:
        paper_dragon = Enemy(id=1, name="Paper Dragon", difficulty=1000, health=5, attack=1, defense=0)
        harness = build_harness(seed=catalog_with_enemies(paper_dragon))
        harness.seed_events(47)
        harness.act("continue")

        response = harness.act("attack", diceRoll=10)

        self.assertTrue(response.success)
        self.assertEqual("victory", response.combat_result.outcome)
        self.assertEqual(GamePhase.VICTORY, response.game_state.phase)
        self.assertEqual([], response.choices)
        self.assertIsNone(response.item_found)
        self.assertIsNone(harness.character().weapon_id)
        self.assertEqual(CampaignState.COMPLETED, harness.campaigns.get(harness.campaign_id).state)
        self.assertEqual("enemy_defeated", harness.log()[-1].event_data["outcome"])

        validation = harness.service.validate_game_state(harness.campaign_id)
        self.assertTrue(validation.is_victory)
        self.assertTrue(validation.is_valid)


if __name__ == "__main__":
    unittest.main()
