from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StatType(str, Enum):
    HEALTH = "health"
    ATTACK = "attack"
    DEFENSE = "defense"

    @classmethod
    def normalize(cls, value: str | None, default: "StatType | None" = None) -> "StatType":
        raw = str(value or "").strip().lower()
        aliases = {
            "hp": cls.HEALTH.value,
            "vitality": cls.HEALTH.value,
            "atk": cls.ATTACK.value,
            "def": cls.DEFENSE.value,
            "defence": cls.DEFENSE.value,
        }
        resolved = aliases.get(raw, raw)
        for member in cls:
            if member.value == resolved:
                return member
        if default is not None:
            return default
        raise ValueError(f"Unknown stat type: {value!r}")


class EquipmentSlot(str, Enum):
    WEAPON = "weapon"
    ARMOUR = "armour"
    SHIELD = "shield"


@dataclass
class Item:
    """Consumable catalog entry; negative stat values are curses."""

    id: int
    name: str
    rarity: int
    stat_modified: StatType
    stat_value: int
    description: str = ""
    sprite_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.stat_modified, StatType):
            self.stat_modified = StatType.normalize(self.stat_modified)


@dataclass
class Weapon:
    id: int
    name: str
    rarity: int
    attack: int
    description: str = ""
    sprite_path: Optional[str] = None

    slot = EquipmentSlot.WEAPON

    @property
    def bonus_stat(self) -> StatType:
        return StatType.ATTACK

    @property
    def bonus(self) -> int:
        return self.attack


@dataclass
class Armour:
    id: int
    name: str
    rarity: int
    health: int
    description: str = ""
    sprite_path: Optional[str] = None

    slot = EquipmentSlot.ARMOUR

    @property
    def bonus_stat(self) -> StatType:
        return StatType.HEALTH

    @property
    def bonus(self) -> int:
        return self.health


@dataclass
class Shield:
    id: int
    name: str
    rarity: int
    defense: int
    description: str = ""
    sprite_path: Optional[str] = None

    slot = EquipmentSlot.SHIELD

    @property
    def bonus_stat(self) -> StatType:
        return StatType.DEFENSE

    @property
    def bonus(self) -> int:
        return self.defense


EquipmentPiece = Weapon | Armour | Shield


@dataclass
class Equipment:
    weapon: Optional[Weapon] = None
    armour: Optional[Armour] = None
    shield: Optional[Shield] = None

    def in_slot(self, slot: EquipmentSlot) -> Optional[EquipmentPiece]:
        return getattr(self, slot.value)

    @property
    def armour_bonus(self) -> int:
        return int(self.armour.health) if self.armour is not None else 0
