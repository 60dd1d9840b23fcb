import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from game_fixtures import PinnedRandom, ScriptedNarrator, build_harness
from taleforge.application.dtos import GamePhase, PlayerAction
from taleforge.application.services.game_service import ENDED_MESSAGE
from taleforge.application.services.narrative import StatBoost
from taleforge.domain.models.campaign import CampaignState
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import Armour, StatType
from taleforge.infrastructure.db.seed_catalog import build_seed_catalog


def _prompted(event_type: EventType, **harness_kwargs):
    """Harness with one event already logged and a pending prompt of ``event_type``."""
    harness = build_harness(narrator=harness_kwargs.pop("narrator", None) or ScriptedNarrator(), **harness_kwargs)
    harness.seed_events(1, (EventType.DESCRIPTIVE,))
    harness.narrator.event_types = [event_type]
    response = harness.act("continue")
    assert response.success, response.error
    return harness


class ContinueTests(unittest.TestCase):
    def test_first_continue_logs_campaign_intro_without_asking_narrator(self) -> None:
        harness = build_harness()

        response = harness.act("continue")

        self.assertTrue(response.success)
        self.assertEqual(["Continue Forward"], response.choices)
        self.assertEqual(GamePhase.EXPLORATION, response.game_state.phase)
        log = harness.log()
        self.assertEqual(1, len(log))
        self.assertEqual(EventType.DESCRIPTIVE, log[0].event_type)
        self.assertEqual({"intro": True}, log[0].event_data)
        self.assertEqual(0, harness.narrator.proposals_requested)

    def test_descriptive_proposal_is_logged_immediately(self) -> None:
        harness = build_harness()
        harness.seed_events(1, (EventType.ITEM_DROP,))

        response = harness.act("continue")

        self.assertTrue(response.success)
        self.assertEqual(2, len(harness.log()))
        self.assertEqual(EventType.DESCRIPTIVE, harness.log()[-1].event_type)
        self.assertEqual("Descriptive scene at turn 2.", response.message)

    def test_non_descriptive_proposal_sets_prompt_without_logging(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL)

        state = harness.service.get_game_state(harness.campaign_id)
        self.assertEqual(GamePhase.INVESTIGATION_PROMPT, state.phase)
        self.assertEqual("Environmental", state.investigation_prompt.event_type)
        self.assertEqual(1, len(harness.log()))
        self.assertEqual(20, harness.character().attack)
        self.assertEqual(["Investigate", "Decline"], harness.service.available_choices(harness.campaign_id))

    def test_continue_while_prompt_pending_is_rejected(self) -> None:
        harness = _prompted(EventType.ITEM_DROP)

        response = harness.act("continue")

        self.assertFalse(response.success)
        self.assertIn("not allowed during investigation prompt", response.error)
        self.assertEqual(GamePhase.INVESTIGATION_PROMPT, response.game_state.phase)

    def test_decline_logs_original_type_flagged_as_declined(self) -> None:
        harness = _prompted(EventType.COMBAT)

        response = harness.act("decline")

        self.assertTrue(response.success)
        self.assertEqual(GamePhase.EXPLORATION, response.game_state.phase)
        last = harness.log()[-1]
        self.assertEqual(EventType.COMBAT, last.event_type)
        self.assertEqual({"declined": True}, last.event_data)
        self.assertTrue(last.declined)
        self.assertIsNone(harness.service.snapshots.get(harness.campaign_id))


class EnvironmentalTests(unittest.TestCase):
    def test_investigate_applies_roll_scaled_boost(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL, narrator=ScriptedNarrator(stat_boost=StatBoost(StatType.ATTACK, 4)))

        response = harness.act("investigate", diceRoll=16)

        self.assertTrue(response.success)
        self.assertEqual(28, harness.character().attack)
        last = harness.log()[-1]
        self.assertEqual(EventType.ENVIRONMENTAL, last.event_type)
        self.assertEqual(8, last.event_data["delta"])
        self.assertEqual(16, last.event_data["dice_roll"])
        self.assertEqual("critical_success", last.event_data["classification"])
        self.assertIn("Attack +8", response.message)

    def test_zero_base_value_uses_default_boost(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL, narrator=ScriptedNarrator(stat_boost=StatBoost(StatType.DEFENSE, 0)))

        harness.act("investigate", diceRoll=10)

        self.assertEqual(22, harness.character().defense)
        self.assertEqual(2, harness.log()[-1].event_data["base_value"])

    def test_health_boost_stops_at_true_max(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL, narrator=ScriptedNarrator(stat_boost=StatBoost(StatType.HEALTH, 10)))

        harness.act("investigate", diceRoll=16)

        self.assertEqual(100, harness.character().current_health)
        self.assertEqual(0, harness.log()[-1].event_data["delta"])

    def test_wound_to_zero_ends_the_campaign(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL, narrator=ScriptedNarrator(stat_boost=StatBoost(StatType.HEALTH, -10)))
        harness.set_health(15)

        response = harness.act("investigate", diceRoll=1)

        self.assertTrue(response.success)
        self.assertEqual(GamePhase.GAME_OVER, response.game_state.phase)
        self.assertEqual([], response.choices)
        self.assertEqual(0, harness.character().current_health)
        self.assertEqual(CampaignState.GAME_OVER, harness.campaigns.get(harness.campaign_id).state)
        self.assertEqual(-15, harness.log()[-1].event_data["delta"])

        after = harness.act("continue")
        self.assertFalse(after.success)
        self.assertEqual(ENDED_MESSAGE, after.error)


class ItemDropTests(unittest.TestCase):
    def test_consumable_goes_into_the_pack(self) -> None:
        harness = _prompted(EventType.ITEM_DROP, rng=PinnedRandom(0.5))

        response = harness.act("investigate", diceRoll=10)

        self.assertTrue(response.success)
        self.assertEqual([6], harness.inventory.list_item_ids(harness.character_id))
        found = response.item_found
        self.assertEqual("item", found.kind)
        self.assertEqual("Small Health Potion", found.name)
        self.assertFalse(found.auto_equipped)
        last = harness.log()[-1]
        self.assertEqual(22, last.event_data["target_rarity"])
        self.assertEqual(6, last.event_data["item_id"])
        self.assertEqual(["Small Health Potion"], [item.name for item in response.game_state.inventory])

    def test_equipment_is_equipped_and_replacement_reported(self) -> None:
        harness = _prompted(EventType.ITEM_DROP, rng=PinnedRandom(0.1), narrator=ScriptedNarrator(item_kind="weapon"))
        character = harness.character()
        character.weapon_id = 2
        character.attack = 24
        harness.characters.save(character)

        response = harness.act("investigate", diceRoll=10)

        found = response.item_found
        self.assertEqual("weapon", found.kind)
        self.assertEqual("Hand Axe", found.name)
        self.assertTrue(found.auto_equipped)
        self.assertEqual("Short Sword", found.replaced)
        self.assertEqual(26, harness.character().attack)
        self.assertEqual(3, harness.character().weapon_id)
        self.assertEqual([], harness.inventory.list_item_ids(harness.character_id))
        self.assertEqual("Hand Axe", response.game_state.equipment.weapon.name)

    def test_armour_outside_range_uses_nearest_and_keeps_health_ratio(self) -> None:
        harness = _prompted(EventType.ITEM_DROP, rng=PinnedRandom(0.1), narrator=ScriptedNarrator(item_kind="armour"))

        response = harness.act("investigate", diceRoll=10)

        self.assertEqual("Studded Jerkin", response.item_found.name)
        self.assertEqual(118, response.game_state.character.true_max_health)
        self.assertEqual(118, harness.character().current_health)
        self.assertEqual(100, harness.character().max_health)

    def test_weaker_armour_drop_never_kills_a_wounded_hero(self) -> None:
        seed = build_seed_catalog()
        seed.armours = [
            Armour(id=1, name="Bulwark", rarity=300, health=300),
            Armour(id=2, name="Rag", rarity=1, health=1),
        ]
        harness = _prompted(EventType.ITEM_DROP, rng=PinnedRandom(0.1), seed=seed, narrator=ScriptedNarrator(item_kind="armour"))
        character = harness.character()
        character.armour_id = 1
        character.current_health = 1
        harness.characters.save(character)

        response = harness.act("investigate", diceRoll=10)

        self.assertTrue(response.success)
        self.assertEqual("Rag", response.item_found.name)
        self.assertEqual(1, harness.character().current_health)
        self.assertEqual(GamePhase.EXPLORATION, response.game_state.phase)
        self.assertEqual(CampaignState.ACTIVE, harness.campaigns.get(harness.campaign_id).state)

    def test_full_pack_leaves_item_behind(self) -> None:
        harness = _prompted(EventType.ITEM_DROP, rng=PinnedRandom(0.5))
        harness.stock(6, 10)

        response = harness.act("investigate", diceRoll=10)

        self.assertTrue(response.success)
        self.assertTrue(response.item_found.left_behind)
        self.assertEqual(10, harness.inventory.count(harness.character_id))
        self.assertTrue(harness.log()[-1].event_data["left_behind"])
        self.assertIn("pack is full", response.message)


class BossTurnTests(unittest.TestCase):
    def test_boss_is_forced_from_event_48_without_consulting_narrator(self) -> None:
        harness = build_harness()
        harness.seed_events(47)

        response = harness.act("continue")

        self.assertTrue(response.success)
        self.assertEqual(GamePhase.COMBAT, response.game_state.phase)
        self.assertTrue(response.game_state.enemy.is_boss)
        self.assertEqual("Dragon", response.game_state.enemy.name)
        self.assertEqual(0, harness.narrator.proposals_requested)
        last = harness.log()[-1]
        self.assertEqual(48, last.event_number)
        self.assertEqual("encounter", last.event_data["phase"])
        self.assertTrue(last.event_data["boss"])


class ActionValidationTests(unittest.TestCase):
    def test_out_of_range_client_roll_is_rejected_and_prompt_kept(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL)

        response = harness.act("investigate", diceRoll=25)

        self.assertFalse(response.success)
        self.assertIn("1 to 20", response.error)
        self.assertEqual(GamePhase.INVESTIGATION_PROMPT, response.game_state.phase)
        self.assertEqual(1, len(harness.log()))

    def test_numeric_string_roll_is_accepted(self) -> None:
        harness = _prompted(EventType.ENVIRONMENTAL, narrator=ScriptedNarrator(stat_boost=StatBoost(StatType.ATTACK, 4)))

        response = harness.act("investigate", diceRoll="16")

        self.assertTrue(response.success)
        self.assertEqual(16, harness.log()[-1].event_data["dice_roll"])

    def test_client_roll_is_ignored_when_disabled(self) -> None:
        class FixedDice:
            def roll(self) -> int:
                return 12

        harness = _prompted(EventType.ENVIRONMENTAL, accept_client_dice=False, dice=FixedDice())

        response = harness.act("investigate", diceRoll=25)

        self.assertTrue(response.success)
        self.assertEqual(12, harness.log()[-1].event_data["dice_roll"])

    def test_unknown_action_type_fails(self) -> None:
        harness = build_harness()

        response = harness.act("dance")

        self.assertFalse(response.success)
        self.assertIn("Unknown action type", response.error)
        self.assertEqual([], harness.log())

    def test_caller_action_is_left_as_given(self) -> None:
        harness = build_harness()
        action = PlayerAction(campaign_id=harness.campaign_id, action_type="continue", action_data={"diceRoll": 12})

        response = harness.service.process_player_action(action)

        self.assertTrue(response.success)
        self.assertEqual("continue", action.action_type)
        self.assertEqual({"diceRoll": 12}, action.action_data)

    def test_unknown_campaign_fails_without_state(self) -> None:
        harness = build_harness()

        response = harness.service.process_player_action({"campaignId": 999, "actionType": "continue"})

        self.assertFalse(response.success)
        self.assertIn("not found", response.error)
        self.assertIsNone(response.game_state)
        self.assertEqual(0, len(harness.service.locks))

    def test_attack_outside_combat_is_rejected(self) -> None:
        harness = build_harness()

        response = harness.act("attack", diceRoll=10)

        self.assertFalse(response.success)
        self.assertIn("not allowed during exploration", response.error)


if __name__ == "__main__":
    unittest.main()
