import math
from dataclasses import dataclass
from typing import Optional

from taleforge.domain.models.character import Character
from taleforge.domain.models.item import Armour, Equipment, EquipmentPiece, EquipmentSlot, Shield, Weapon


@dataclass(frozen=True)
class EquipOutcome:
    slot: EquipmentSlot
    equipped: EquipmentPiece
    replaced: Optional[EquipmentPiece] = None


def _preserve_health_ratio(character: Character, old_true_max: int, new_true_max: int) -> None:
    if old_true_max <= 0:
        character.current_health = new_true_max
        return
    current = int(character.current_health)
    # A rescale never kills; only combat damage does.
    least = 1 if current > 0 else 0
    rescaled = math.floor(new_true_max * current / old_true_max)
    character.current_health = max(least, min(new_true_max, rescaled))


def equip(character: Character, equipment: Equipment, piece: EquipmentPiece) -> EquipOutcome:
    """Swap ``piece`` into its slot, moving stat bonuses over.

    Weapon and shield bonuses live in ``attack`` and ``defense``. Armour only
    raises the true max HP, and current HP keeps its ratio to it.
    """
    slot = piece.slot
    previous = equipment.in_slot(slot)
    old_bonus = int(previous.bonus) if previous is not None else 0

    if isinstance(piece, Weapon):
        character.attack = int(character.attack) - old_bonus + int(piece.attack)
        equipment.weapon = piece
    elif isinstance(piece, Shield):
        character.defense = int(character.defense) - old_bonus + int(piece.defense)
        equipment.shield = piece
    elif isinstance(piece, Armour):
        old_true_max = character.true_max_health(old_bonus)
        new_true_max = character.true_max_health(int(piece.health))
        _preserve_health_ratio(character, old_true_max, new_true_max)
        equipment.armour = piece
    else:
        raise TypeError(f"Not an equipment piece: {piece!r}")

    character.set_slot_item_id(slot, int(piece.id))
    return EquipOutcome(slot=slot, equipped=piece, replaced=previous)
