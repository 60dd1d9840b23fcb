import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from taleforge.application.services.equipment_service import equip
from taleforge.application.services.investigation_prompt_store import InvestigationPrompt, InvestigationPromptStore
from taleforge.domain.errors import PromptConflictError
from taleforge.domain.models.character import Character
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import Armour, Equipment, EquipmentSlot, Shield, Weapon


def _hero(health: int = 100) -> Character:
    return Character(
        id=1, campaign_id=1, name="Ari", race_id=1, class_id=1,
        current_health=health, max_health=100, attack=20, defense=20,
    )


class EquipTests(unittest.TestCase):
    def test_weapon_swap_moves_the_bonus(self) -> None:
        hero = _hero()
        equipment = Equipment()

        first = equip(hero, equipment, Weapon(id=2, name="Short Sword", rarity=10, attack=4))
        second = equip(hero, equipment, Weapon(id=3, name="Hand Axe", rarity=25, attack=6))

        self.assertIsNone(first.replaced)
        self.assertEqual("Short Sword", second.replaced.name)
        self.assertEqual(26, hero.attack)
        self.assertEqual(3, hero.weapon_id)
        self.assertEqual(EquipmentSlot.WEAPON, second.slot)

    def test_shield_moves_defense(self) -> None:
        hero = _hero()

        equip(hero, Equipment(), Shield(id=3, name="Buckler", rarity=30, defense=5))

        self.assertEqual(25, hero.defense)
        self.assertEqual(3, hero.shield_id)

    def test_armour_keeps_the_health_ratio(self) -> None:
        hero = _hero(health=50)
        equipment = Equipment()

        equip(hero, equipment, Armour(id=4, name="Chainmail", rarity=50, health=20))
        self.assertEqual(60, hero.current_health)
        self.assertEqual(100, hero.max_health)

        equip(hero, equipment, Armour(id=2, name="Leather Armour", rarity=10, health=10))
        self.assertEqual(55, hero.current_health)
        self.assertEqual(10, equipment.armour_bonus)

    def test_fresh_armour_on_a_healthy_hero_fills_the_new_maximum(self) -> None:
        hero = _hero()

        equip(hero, Equipment(), Armour(id=3, name="Studded Jerkin", rarity=30, health=18))

        self.assertEqual(118, hero.current_health)

    def test_weaker_armour_never_drops_a_living_hero_to_zero(self) -> None:
        hero = _hero()
        equipment = Equipment()
        equip(hero, equipment, Armour(id=9, name="Bulwark", rarity=300, health=300))
        hero.current_health = 1

        equip(hero, equipment, Armour(id=10, name="Rag", rarity=1, health=1))

        self.assertEqual(1, hero.current_health)
        self.assertEqual(1, equipment.armour_bonus)

    def test_armour_swap_does_not_revive_a_fallen_hero(self) -> None:
        hero = _hero(health=0)

        equip(hero, Equipment(), Armour(id=4, name="Chainmail", rarity=50, health=20))

        self.assertEqual(0, hero.current_health)


class InvestigationPromptStoreTests(unittest.TestCase):
    def test_one_pending_prompt_per_campaign(self) -> None:
        store = InvestigationPromptStore()
        prompt = InvestigationPrompt(event_type=EventType.COMBAT, message="You sense danger approaching...", event_number=4)
        store.set(1, prompt)

        with self.assertRaises(PromptConflictError):
            store.set(1, prompt)
        store.set(2, prompt)
        self.assertEqual(prompt, store.clear(1))
        self.assertIsNone(store.clear(1))
        self.assertEqual(prompt, store.get(2))

    def test_restore_puts_back_or_removes(self) -> None:
        store = InvestigationPromptStore()
        prompt = InvestigationPrompt(event_type=EventType.ITEM_DROP, message="Something catches your eye nearby...", event_number=2)

        store.restore(1, prompt)
        self.assertEqual(prompt, store.get(1))
        store.restore(1, None)
        self.assertIsNone(store.get(1))


if __name__ == "__main__":
    unittest.main()
