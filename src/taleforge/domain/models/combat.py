from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from taleforge.domain.models.campaign import utc_now
from taleforge.domain.models.character import Character
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.item import Equipment, Item, StatType


@dataclass
class CharacterSnapshot:
    id: int
    current_health: int
    max_health: int
    base_attack: int
    base_defense: int
    armour_bonus: int = 0

    @classmethod
    def of(cls, character: Character, armour_bonus: int) -> "CharacterSnapshot":
        return cls(
            id=int(character.id or 0),
            current_health=int(character.current_health),
            max_health=int(character.max_health),
            base_attack=int(character.attack),
            base_defense=int(character.defense),
            armour_bonus=int(armour_bonus),
        )

    @property
    def true_max_health(self) -> int:
        return self.max_health + max(0, self.armour_bonus)


@dataclass
class TemporaryBuffs:
    attack: int = 0
    defense: int = 0

    def add(self, stat: StatType, delta: int) -> None:
        if stat is StatType.ATTACK:
            self.attack += int(delta)
        elif stat is StatType.DEFENSE:
            self.defense += int(delta)
        else:
            raise ValueError(f"Temporary buffs only cover attack and defense, not {stat.value}")


@dataclass
class CombatSnapshot:
    """Working copy of one encounter; nothing in here is durable."""

    campaign_id: int
    enemy: Enemy
    enemy_current_hp: int
    character: CharacterSnapshot
    equipment: Equipment = field(default_factory=Equipment)
    inventory: List[Item] = field(default_factory=list)
    original_inventory_ids: List[int] = field(default_factory=list)
    temporary_buffs: TemporaryBuffs = field(default_factory=TemporaryBuffs)
    combat_log: List[str] = field(default_factory=list)
    round_number: int = 0
    encounter_event_number: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def open(
        cls,
        *,
        campaign_id: int,
        enemy: Enemy,
        character: Character,
        equipment: Equipment,
        inventory: List[Item],
        encounter_event_number: int | None = None,
    ) -> "CombatSnapshot":
        return cls(
            campaign_id=int(campaign_id),
            enemy=enemy,
            enemy_current_hp=int(enemy.health),
            character=CharacterSnapshot.of(character, equipment.armour_bonus),
            equipment=equipment,
            inventory=list(inventory),
            original_inventory_ids=[int(item.id) for item in inventory],
            encounter_event_number=encounter_event_number,
        )

    @property
    def effective_attack(self) -> int:
        return self.character.base_attack + self.temporary_buffs.attack

    @property
    def effective_defense(self) -> int:
        return self.character.base_defense + self.temporary_buffs.defense

    def find_item(self, item_id: int) -> Optional[Item]:
        for item in self.inventory:
            if int(item.id) == int(item_id):
                return item
        return None

    def remove_one(self, item_id: int) -> bool:
        for index, item in enumerate(self.inventory):
            if int(item.id) == int(item_id):
                del self.inventory[index]
                return True
        return False

    def consumed_item_counts(self) -> Dict[int, int]:
        """Multiset difference original - final, keyed by item id."""
        remaining = Counter(int(item.id) for item in self.inventory)
        consumed = Counter(int(item_id) for item_id in self.original_inventory_ids)
        consumed.subtract(remaining)
        return {item_id: count for item_id, count in consumed.items() if count > 0}
