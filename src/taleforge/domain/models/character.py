from dataclasses import dataclass
from typing import Optional

from taleforge.domain.models.item import EquipmentSlot


@dataclass
class Race:
    id: int
    name: str
    vitality: int
    attack: int
    defense: int
    sprite_path: Optional[str] = None


@dataclass
class CharacterClass:
    id: int
    name: str
    vitality: int
    attack: int
    defense: int
    sprite_path: Optional[str] = None


@dataclass
class Character:
    """Durable character row.

    ``max_health`` excludes the armour bonus; ``attack`` and ``defense`` already
    include the equipped weapon and shield bonuses.
    """

    id: Optional[int]
    campaign_id: Optional[int]
    name: str
    race_id: int
    class_id: int
    current_health: int
    max_health: int
    attack: int
    defense: int
    weapon_id: Optional[int] = None
    armour_id: Optional[int] = None
    shield_id: Optional[int] = None
    sprite_path: Optional[str] = None

    @classmethod
    def from_lineage(cls, name: str, race: Race, character_class: CharacterClass, *, campaign_id: int | None = None) -> "Character":
        vitality = int(race.vitality) + int(character_class.vitality)
        return cls(
            id=None,
            campaign_id=campaign_id,
            name=name,
            race_id=race.id,
            class_id=character_class.id,
            current_health=vitality,
            max_health=vitality,
            attack=int(race.attack) + int(character_class.attack),
            defense=int(race.defense) + int(character_class.defense),
            sprite_path=character_class.sprite_path or race.sprite_path,
        )

    def true_max_health(self, armour_bonus: int) -> int:
        return int(self.max_health) + max(0, int(armour_bonus))

    def clamp_health(self, armour_bonus: int) -> None:
        self.current_health = max(0, min(int(self.current_health), self.true_max_health(armour_bonus)))

    @property
    def is_defeated(self) -> bool:
        return int(self.current_health) <= 0

    def slot_item_id(self, slot: EquipmentSlot) -> Optional[int]:
        return getattr(self, f"{slot.value}_id")

    def set_slot_item_id(self, slot: EquipmentSlot, item_id: Optional[int]) -> None:
        setattr(self, f"{slot.value}_id", item_id)
