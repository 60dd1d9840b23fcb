from __future__ import annotations

import random
from typing import Dict, List, Optional, Tuple

from taleforge.application.services.narrative import (
    ItemDescriptor,
    NarrativeContext,
    NarrativeGenerator,
    StatBoost,
)
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import StatType


SCENARIOS = (
    "deep dungeon chamber",
    "ancient temple ruins",
    "dark forest path",
    "cave entrance",
    "abandoned tower",
    "underground crypt",
    "mountain pass",
    "swampy marshland",
)

EVENT_TYPE_WEIGHTS: Tuple[Tuple[EventType, int], ...] = (
    (EventType.DESCRIPTIVE, 15),
    (EventType.ENVIRONMENTAL, 15),
    (EventType.COMBAT, 15),
    (EventType.ITEM_DROP, 55),
)

_TEASERS: Dict[EventType, str] = {
    EventType.DESCRIPTIVE: "You notice something interesting in your surroundings...",
    EventType.ENVIRONMENTAL: "The environment around you begins to shift...",
    EventType.COMBAT: "You sense danger approaching...",
    EventType.ITEM_DROP: "Something catches your eye nearby...",
}

_DECLINES: Dict[EventType, str] = {
    EventType.DESCRIPTIVE: "You let the moment pass and walk on.",
    EventType.ENVIRONMENTAL: "You give the strange air a wide berth and move on.",
    EventType.COMBAT: "You slip away before whatever it was can find you.",
    EventType.ITEM_DROP: "You leave the glint where it lies and move on.",
}

_DESCRIPTIONS: Dict[EventType, List[str]] = {
    EventType.DESCRIPTIVE: [
        "Ancient runes glow faintly on the walls of the {place}, their meaning lost to time.",
        "Water drips somewhere deep in the {place}, each drop echoing longer than it should.",
        "A cold draught stirs the dust of the {place}, carrying the smell of old smoke.",
    ],
    EventType.ENVIRONMENTAL: [
        "The air of the {place} thickens and tingles against {name}'s skin.",
        "A spring bubbles up through the floor of the {place}, faintly luminous.",
        "Dark motes drift through the {place} and settle on {name}'s shoulders.",
    ],
    EventType.COMBAT: [
        "{enemy} lurches out of the shadows of the {place}, blocking the way.",
        "A snarl echoes through the {place} as {enemy} closes in on {name}.",
    ],
    EventType.ITEM_DROP: [
        "Half buried in the {place}, {name} uncovers {item}.",
        "A crumbling shelf in the {place} gives way and {item} tumbles free.",
    ],
}


def investigation_teaser(event_type: EventType) -> str:
    return _TEASERS[event_type]


def decline_line(event_type: EventType) -> str:
    return _DECLINES[event_type]


def campaign_intro(context: NarrativeContext) -> str:
    return (
        f"{context.character_name} sets out on '{context.campaign_name}'. "
        "The road ahead is dark, and only the dice know what waits along it."
    )


class FlavourNarrativeGenerator(NarrativeGenerator):
    """Template narrator used offline and whenever the model is unreachable."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def propose_event_type(self, context: NarrativeContext) -> EventType:
        kinds = [kind for kind, _ in EVENT_TYPE_WEIGHTS]
        weights = [weight for _, weight in EVENT_TYPE_WEIGHTS]
        return self.rng.choices(kinds, weights=weights, k=1)[0]

    def generate_description(
        self,
        event_type: EventType,
        context: NarrativeContext,
        featured_item: Optional[str] = None,
    ) -> str:
        template = self.rng.choice(_DESCRIPTIONS[event_type])
        enemy_name = str((context.enemy or {}).get("name") or "a shape")
        return template.format(
            place=self.rng.choice(SCENARIOS),
            name=context.character_name,
            enemy=enemy_name,
            item=featured_item or "something useful",
        )

    def propose_stat_boost(self, context: NarrativeContext, event_type: EventType) -> StatBoost:
        stat = self.rng.choice(list(StatType))
        magnitude = self.rng.randint(1, 5)
        # Wounded characters are more often offered a blessing than a curse.
        curse_odds = 0.2 if context.current_health * 2 < context.max_health else 0.35
        sign = -1 if self.rng.random() < curse_odds else 1
        return StatBoost(stat=stat, base_value=sign * magnitude)

    def propose_item_drop(self, context: NarrativeContext) -> ItemDescriptor:
        kind = self.rng.choice(("weapon", "armour", "shield", "potion"))
        return ItemDescriptor(kind=kind)
