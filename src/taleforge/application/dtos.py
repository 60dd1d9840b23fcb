from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from taleforge.domain.errors import ActionValidationError


class ActionType(str, Enum):
    CONTINUE = "continue"
    INVESTIGATE = "investigate"
    DECLINE = "decline"
    ATTACK = "attack"
    FLEE = "flee"
    USE_ITEM_COMBAT = "use_item_combat"

    @classmethod
    def parse(cls, value: object) -> "ActionType":
        raw = str(value.value if isinstance(value, Enum) else value or "").strip().lower()
        for member in cls:
            if member.value == raw:
                return member
        raise ValueError(f"Unknown action type: {value!r}")


class GamePhase(str, Enum):
    EXPLORATION = "exploration"
    INVESTIGATION_PROMPT = "investigation_prompt"
    COMBAT = "combat"
    GAME_OVER = "game_over"
    VICTORY = "victory"

    @property
    def is_terminal(self) -> bool:
        return self in (GamePhase.GAME_OVER, GamePhase.VICTORY)


@dataclass
class PlayerAction:
    campaign_id: int
    action_type: ActionType
    action_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "PlayerAction":
        """Accepts the camelCase body the web client posts."""
        campaign_id = payload.get("campaignId", payload.get("campaign_id"))
        action_type = payload.get("actionType", payload.get("action_type"))
        data = payload.get("actionData", payload.get("action_data")) or {}
        return cls(campaign_id=int(campaign_id), action_type=ActionType.parse(action_type), action_data=dict(data))

    @property
    def dice_roll(self) -> Any:
        return self.action_data.get("diceRoll", self.action_data.get("dice_roll"))

    @property
    def item_id(self) -> Optional[int]:
        raw = self.action_data.get("itemId", self.action_data.get("item_id"))
        if raw is None:
            return None
        if isinstance(raw, bool):
            raise ActionValidationError(f"Item id must be a whole number, got {raw!r}.")
        try:
            return int(str(raw).strip())
        except ValueError as exc:
            raise ActionValidationError(f"Item id must be a whole number, got {raw!r}.") from exc


@dataclass
class CampaignView:
    id: int
    account_id: int
    name: str
    description: str
    state: str


@dataclass
class CharacterView:
    id: int
    name: str
    race_id: int
    class_id: int
    current_health: int
    max_health: int
    true_max_health: int
    attack: int
    defense: int
    temporary_attack: int = 0
    temporary_defense: int = 0
    sprite_path: Optional[str] = None


@dataclass
class EquipmentItemView:
    id: int
    name: str
    slot: str
    rarity: int
    bonus_stat: str
    bonus: int


@dataclass
class EquipmentView:
    weapon: Optional[EquipmentItemView] = None
    armour: Optional[EquipmentItemView] = None
    shield: Optional[EquipmentItemView] = None


@dataclass
class ItemView:
    id: int
    name: str
    rarity: int
    stat_modified: str
    stat_value: int
    description: str = ""


@dataclass
class EnemyView:
    id: int
    name: str
    difficulty: int
    current_health: int
    max_health: int
    attack: int
    defense: int
    is_boss: bool = False


@dataclass
class EventView:
    event_number: int
    event_type: str
    message: str
    event_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InvestigationPromptView:
    event_type: str
    message: str


@dataclass
class GameState:
    campaign: CampaignView
    character: CharacterView
    equipment: EquipmentView
    inventory: List[ItemView]
    recent_events: List[EventView]
    phase: GamePhase
    enemy: Optional[EnemyView] = None
    investigation_prompt: Optional[InvestigationPromptView] = None


@dataclass
class CombatResult:
    action: str
    dice_roll: int
    classification: str
    damage_dealt: int = 0
    damage_received: int = 0
    enemy_hp: int = 0
    character_hp: int = 0
    outcome: Optional[str] = None
    log: List[str] = field(default_factory=list)


@dataclass
class ItemFoundView:
    kind: str
    id: int
    name: str
    rarity: int
    auto_equipped: bool = False
    replaced: Optional[str] = None
    left_behind: bool = False


@dataclass
class GameServiceResponse:
    success: bool
    message: str
    choices: List[str] = field(default_factory=list)
    game_state: Optional[GameState] = None
    error: Optional[str] = None
    combat_result: Optional[CombatResult] = None
    item_found: Optional[ItemFoundView] = None


@dataclass
class GameValidation:
    is_game_over: bool
    is_victory: bool
    phase: GamePhase
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class CampaignSummaryView:
    id: int
    name: str
    state: str
    character_name: Optional[str]
    event_count: int


@dataclass
class LineageOptionView:
    id: int
    name: str
    vitality: int
    attack: int
    defense: int
