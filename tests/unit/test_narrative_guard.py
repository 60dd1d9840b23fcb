import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from taleforge.application.services.narrative import (
    DESCRIPTION_MAX_CHARS,
    GuardedNarrativeGenerator,
    ItemDescriptor,
    NarrativeContext,
    NarrativeGenerator,
    StatBoost,
)
from taleforge.application.services.narrative_flavour import FlavourNarrativeGenerator
from taleforge.domain.errors import NarrativeUnavailableError
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import StatType


CONTEXT = NarrativeContext(
    campaign_name="The Long Road",
    character_name="Ari",
    current_health=40,
    max_health=100,
    attack=20,
    defense=20,
    event_number=12,
)


class _Unreachable(NarrativeGenerator):
    def propose_event_type(self, context):
        raise NarrativeUnavailableError("connection refused")

    def generate_description(self, event_type, context, featured_item=None):
        raise NarrativeUnavailableError("connection refused")

    def propose_stat_boost(self, context, event_type):
        raise NarrativeUnavailableError("connection refused")

    def propose_item_drop(self, context):
        raise NarrativeUnavailableError("connection refused")


class _Canned(NarrativeGenerator):
    def __init__(self, *, event_type=EventType.COMBAT, text="A crow watches.", boost=None, item=None) -> None:
        self.event_type = event_type
        self.text = text
        self.boost = boost or StatBoost(StatType.ATTACK, 3)
        self.item = item or ItemDescriptor(kind="weapon")

    def propose_event_type(self, context):
        return self.event_type

    def generate_description(self, event_type, context, featured_item=None):
        return self.text

    def propose_stat_boost(self, context, event_type):
        return self.boost

    def propose_item_drop(self, context):
        return self.item


def _guard(primary: NarrativeGenerator) -> GuardedNarrativeGenerator:
    return GuardedNarrativeGenerator(primary, FlavourNarrativeGenerator(random.Random(3)), default_stat_boost=2)


class GuardedNarrativeGeneratorTests(unittest.TestCase):
    def test_unreachable_primary_falls_back_for_every_operation(self) -> None:
        guard = _guard(_Unreachable())

        with self.assertLogs("taleforge.application.services.narrative", level="WARNING"):
            self.assertIsInstance(guard.propose_event_type(CONTEXT), EventType)
        self.assertTrue(guard.generate_description(EventType.ENVIRONMENTAL, CONTEXT))
        boost = guard.propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL)
        self.assertNotEqual(0, boost.base_value)
        self.assertIn(guard.propose_item_drop(CONTEXT).kind, ("weapon", "armour", "shield", "potion"))

    def test_string_event_type_is_parsed(self) -> None:
        guard = _guard(_Canned(event_type="item_drop"))

        self.assertEqual(EventType.ITEM_DROP, guard.propose_event_type(CONTEXT))

    def test_stat_boost_is_clamped_per_stat(self) -> None:
        self.assertEqual(10, _guard(_Canned(boost=StatBoost(StatType.HEALTH, 50))).propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL).base_value)
        self.assertEqual(-5, _guard(_Canned(boost=StatBoost(StatType.ATTACK, -9))).propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL).base_value)

    def test_zero_boost_becomes_default(self) -> None:
        boost = _guard(_Canned(boost=StatBoost("hp", 0))).propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL)

        self.assertEqual(StatType.HEALTH, boost.stat)
        self.assertEqual(2, boost.base_value)

    def test_overflowing_stat_boost_uses_fallback(self) -> None:
        guard = _guard(_Canned(boost=StatBoost(StatType.ATTACK, float("inf"))))

        with self.assertLogs("taleforge.application.services.narrative", level="WARNING") as logs:
            boost = guard.propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL)

        self.assertTrue(-5 <= boost.base_value <= 5)
        self.assertNotEqual(0, boost.base_value)
        self.assertEqual("OverflowError", logs.records[0].error_type)

    def test_item_kind_is_normalised_or_replaced(self) -> None:
        self.assertEqual("armour", _guard(_Canned(item=ItemDescriptor(kind="Armor"))).propose_item_drop(CONTEXT).kind)
        fallback = _guard(_Canned(item=ItemDescriptor(kind="spoon"))).propose_item_drop(CONTEXT)
        self.assertIn(fallback.kind, ("weapon", "armour", "shield", "potion"))

    def test_blank_description_uses_fallback(self) -> None:
        text = _guard(_Canned(text="   ")).generate_description(EventType.ITEM_DROP, CONTEXT, "a rusty key")

        self.assertIn("a rusty key", text)

    def test_long_description_is_truncated(self) -> None:
        text = _guard(_Canned(text="word " * 400)).generate_description(EventType.DESCRIPTIVE, CONTEXT)

        self.assertEqual(DESCRIPTION_MAX_CHARS, len(text))
        self.assertTrue(text.endswith("..."))


class FlavourNarrativeGeneratorTests(unittest.TestCase):
    def test_combat_description_names_the_enemy(self) -> None:
        narrator = FlavourNarrativeGenerator(random.Random(1))
        context = NarrativeContext(
            campaign_name="Road",
            character_name="Ari",
            current_health=10,
            max_health=10,
            attack=1,
            defense=1,
            event_number=3,
            enemy={"name": "Goblin"},
        )

        self.assertIn("Goblin", narrator.generate_description(EventType.COMBAT, context))

    def test_stat_boost_is_never_zero(self) -> None:
        narrator = FlavourNarrativeGenerator(random.Random(5))

        values = [narrator.propose_stat_boost(CONTEXT, EventType.ENVIRONMENTAL).base_value for _ in range(50)]

        self.assertNotIn(0, values)
        self.assertTrue(all(-5 <= value <= 5 for value in values))


if __name__ == "__main__":
    unittest.main()
