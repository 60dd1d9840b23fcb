from __future__ import annotations

from typing import Optional, Sequence

from taleforge.application.dtos import (
    CampaignView,
    CharacterView,
    EnemyView,
    EquipmentItemView,
    EquipmentView,
    EventView,
    GamePhase,
    GameState,
    InvestigationPromptView,
    ItemFoundView,
    ItemView,
)
from taleforge.application.services.investigation_prompt_store import InvestigationPrompt
from taleforge.domain.models.campaign import Campaign
from taleforge.domain.models.character import Character
from taleforge.domain.models.combat import CombatSnapshot
from taleforge.domain.models.game_event import GameEvent
from taleforge.domain.models.item import Equipment, EquipmentPiece, Item


def to_campaign_view(campaign: Campaign) -> CampaignView:
    return CampaignView(
        id=int(campaign.id or 0),
        account_id=int(campaign.account_id),
        name=campaign.name,
        description=campaign.description,
        state=campaign.state.value,
    )


def to_character_view(character: Character, equipment: Equipment, snapshot: Optional[CombatSnapshot] = None) -> CharacterView:
    """During combat the snapshot is the live source for HP and temporary buffs."""
    view = CharacterView(
        id=int(character.id or 0),
        name=character.name,
        race_id=int(character.race_id),
        class_id=int(character.class_id),
        current_health=int(character.current_health),
        max_health=int(character.max_health),
        true_max_health=character.true_max_health(equipment.armour_bonus),
        attack=int(character.attack),
        defense=int(character.defense),
        sprite_path=character.sprite_path,
    )
    if snapshot is not None:
        view.current_health = int(snapshot.character.current_health)
        view.temporary_attack = int(snapshot.temporary_buffs.attack)
        view.temporary_defense = int(snapshot.temporary_buffs.defense)
        view.attack = int(snapshot.effective_attack)
        view.defense = int(snapshot.effective_defense)
    return view


def to_equipment_item_view(piece: Optional[EquipmentPiece]) -> Optional[EquipmentItemView]:
    if piece is None:
        return None
    return EquipmentItemView(
        id=int(piece.id),
        name=piece.name,
        slot=piece.slot.value,
        rarity=int(piece.rarity),
        bonus_stat=piece.bonus_stat.value,
        bonus=int(piece.bonus),
    )


def to_equipment_view(equipment: Equipment) -> EquipmentView:
    return EquipmentView(
        weapon=to_equipment_item_view(equipment.weapon),
        armour=to_equipment_item_view(equipment.armour),
        shield=to_equipment_item_view(equipment.shield),
    )


def to_item_view(item: Item) -> ItemView:
    return ItemView(
        id=int(item.id),
        name=item.name,
        rarity=int(item.rarity),
        stat_modified=item.stat_modified.value,
        stat_value=int(item.stat_value),
        description=item.description,
    )


def to_enemy_view(snapshot: CombatSnapshot) -> EnemyView:
    enemy = snapshot.enemy
    return EnemyView(
        id=int(enemy.id),
        name=enemy.name,
        difficulty=int(enemy.difficulty),
        current_health=int(snapshot.enemy_current_hp),
        max_health=int(enemy.health),
        attack=int(enemy.attack),
        defense=int(enemy.defense),
        is_boss=enemy.is_boss,
    )


def to_event_view(event: GameEvent) -> EventView:
    return EventView(
        event_number=int(event.event_number),
        event_type=event.event_type.value,
        message=event.message,
        event_data=dict(event.event_data),
    )


def to_prompt_view(prompt: Optional[InvestigationPrompt]) -> Optional[InvestigationPromptView]:
    if prompt is None:
        return None
    return InvestigationPromptView(event_type=prompt.event_type.value, message=prompt.message)


def to_item_found_view(
    entry: Item | EquipmentPiece,
    *,
    auto_equipped: bool = False,
    replaced: Optional[EquipmentPiece] = None,
    left_behind: bool = False,
) -> ItemFoundView:
    kind = "item" if isinstance(entry, Item) else entry.slot.value
    return ItemFoundView(
        kind=kind,
        id=int(entry.id),
        name=entry.name,
        rarity=int(entry.rarity),
        auto_equipped=auto_equipped,
        replaced=replaced.name if replaced is not None else None,
        left_behind=left_behind,
    )


def to_game_state(
    *,
    campaign: Campaign,
    character: Character,
    equipment: Equipment,
    inventory: Sequence[Item],
    recent_events: Sequence[GameEvent],
    phase: GamePhase,
    snapshot: Optional[CombatSnapshot] = None,
    prompt: Optional[InvestigationPrompt] = None,
) -> GameState:
    live_inventory = snapshot.inventory if snapshot is not None else inventory
    return GameState(
        campaign=to_campaign_view(campaign),
        character=to_character_view(character, equipment, snapshot),
        equipment=to_equipment_view(equipment),
        inventory=[to_item_view(item) for item in live_inventory],
        recent_events=[to_event_view(event) for event in recent_events],
        phase=phase,
        enemy=to_enemy_view(snapshot) if snapshot is not None else None,
        investigation_prompt=to_prompt_view(prompt),
    )
