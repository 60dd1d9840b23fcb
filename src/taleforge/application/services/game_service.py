from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from taleforge.application.dtos import (
    ActionType,
    CampaignSummaryView,
    CombatResult,
    EventView,
    GamePhase,
    GameServiceResponse,
    GameState,
    GameValidation,
    ItemFoundView,
    LineageOptionView,
    PlayerAction,
)
from taleforge.application.mappers.game_state_mapper import (
    to_event_view,
    to_game_state,
    to_item_found_view,
)
from taleforge.application.services.balance_tables import (
    BalanceConfig,
    DEFAULT_BALANCE,
    combat_reward_rarity,
    difficulty_range,
    enemy_difficulty,
    item_rarity,
    rarity_range,
)
from taleforge.application.services.campaign_locks import CampaignLockRegistry
from taleforge.application.services.catalog_selection import pick_at_least, pick_near
from taleforge.application.services.combat_service import CombatService, RoundOutcome
from taleforge.application.services.combat_snapshot_store import CombatSnapshotStore, plan_reconciliation
from taleforge.application.services.equipment_service import equip
from taleforge.application.services.event_bus import EventBus
from taleforge.application.services.event_type_selector import EventTypeSelector
from taleforge.application.services.investigation_prompt_store import (
    InvestigationPrompt,
    InvestigationPromptStore,
)
from taleforge.application.services.narrative import NarrativeContext, NarrativeGenerator
from taleforge.application.services.narrative_flavour import campaign_intro, decline_line, investigation_teaser
from taleforge.domain.errors import ActionValidationError, CatalogExhaustedError, GameError, NotFoundError
from taleforge.domain.events import CampaignStateChanged, CombatConcluded, ItemAcquired
from taleforge.domain.models.campaign import Campaign, CampaignState
from taleforge.domain.models.character import Character
from taleforge.domain.models.combat import CombatSnapshot
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.game_event import EventType, GameEvent
from taleforge.domain.models.item import Equipment, EquipmentPiece, EquipmentSlot, Item, StatType
from taleforge.domain.repositories import (
    AtomicPersistor,
    CampaignRepository,
    CatalogKind,
    CatalogRepository,
    CharacterRepository,
    GameEventRepository,
    InventoryRepository,
    Operation,
)
from taleforge.domain.services.dice import DiceRoller, classify_roll, is_valid_roll
from taleforge.domain.services.stat_calc import StatRule, apply_roll


logger = logging.getLogger(__name__)

CONTINUE_CHOICES = ["Continue Forward"]
PROMPT_CHOICES = ["Investigate", "Decline"]
COMBAT_CHOICES = ["Attack", "Flee"]
USE_ITEM_CHOICE = "Use Item"
ENDED_MESSAGE = "This campaign has ended. Please start a new campaign."
GENERIC_FAILURE = "An error occurred processing your action"

ALLOWED_ACTIONS: Dict[GamePhase, tuple[ActionType, ...]] = {
    GamePhase.EXPLORATION: (ActionType.CONTINUE,),
    GamePhase.INVESTIGATION_PROMPT: (ActionType.INVESTIGATE, ActionType.DECLINE),
    GamePhase.COMBAT: (ActionType.ATTACK, ActionType.FLEE, ActionType.USE_ITEM_COMBAT),
}


def derive_phase(
    campaign: Campaign,
    snapshot: Optional[CombatSnapshot],
    prompt: Optional[InvestigationPrompt],
) -> GamePhase:
    if campaign.state is CampaignState.GAME_OVER:
        return GamePhase.GAME_OVER
    if campaign.state is CampaignState.COMPLETED:
        return GamePhase.VICTORY
    if snapshot is not None:
        return GamePhase.COMBAT
    if prompt is not None:
        return GamePhase.INVESTIGATION_PROMPT
    return GamePhase.EXPLORATION


def choices_for(phase: GamePhase, snapshot: Optional[CombatSnapshot] = None) -> List[str]:
    if phase is GamePhase.EXPLORATION:
        return list(CONTINUE_CHOICES)
    if phase is GamePhase.INVESTIGATION_PROMPT:
        return list(PROMPT_CHOICES)
    if phase is GamePhase.COMBAT:
        choices = list(COMBAT_CHOICES)
        if snapshot is not None and snapshot.inventory:
            choices.append(USE_ITEM_CHOICE)
        return choices
    return []


@dataclass
class _Turn:
    """Everything one action reads and stages before the single commit."""

    campaign: Campaign
    character: Character
    equipment: Equipment
    inventory: List[Item]
    next_event_number: int
    operations: List[Operation] = field(default_factory=list)
    domain_events: List[object] = field(default_factory=list)

    @property
    def campaign_id(self) -> int:
        return int(self.campaign.id or 0)

    @property
    def character_id(self) -> int:
        return int(self.character.id or 0)


@dataclass
class _Outcome:
    message: str
    combat_result: Optional[CombatResult] = None
    item_found: Optional[ItemFoundView] = None


class GameService:
    """Turn orchestrator: validates an action, resolves it, commits once."""

    def __init__(
        self,
        *,
        campaign_repo: CampaignRepository,
        character_repo: CharacterRepository,
        inventory_repo: InventoryRepository,
        event_repo: GameEventRepository,
        catalog_repo: CatalogRepository,
        atomic_persistor: AtomicPersistor,
        narrator: NarrativeGenerator,
        config: BalanceConfig = DEFAULT_BALANCE,
        dice: DiceRoller | None = None,
        rng: random.Random | None = None,
        snapshots: CombatSnapshotStore | None = None,
        prompts: InvestigationPromptStore | None = None,
        locks: CampaignLockRegistry | None = None,
        event_bus: EventBus | None = None,
        stat_rule: StatRule = apply_roll,
        accept_client_dice: bool = True,
        recent_event_limit: int = 10,
    ) -> None:
        self.campaign_repo = campaign_repo
        self.character_repo = character_repo
        self.inventory_repo = inventory_repo
        self.event_repo = event_repo
        self.catalog_repo = catalog_repo
        self.atomic_persistor = atomic_persistor
        self.narrator = narrator
        self.config = config
        self.rng = rng or random.Random()
        self.dice = dice or DiceRoller(self.rng)
        self.snapshots = snapshots or CombatSnapshotStore()
        self.prompts = prompts or InvestigationPromptStore()
        self.locks = locks or CampaignLockRegistry()
        self.event_bus = event_bus or EventBus()
        self.stat_rule = stat_rule
        self.accept_client_dice = bool(accept_client_dice)
        self.recent_event_limit = int(recent_event_limit)
        self.selector = EventTypeSelector(event_repo, config, self.rng)
        self.combat = CombatService(self.snapshots, config)

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def process_player_action(self, action: PlayerAction | Mapping[str, Any]) -> GameServiceResponse:
        try:
            if not isinstance(action, PlayerAction):
                action = PlayerAction.from_mapping(action)
            else:
                action = replace(
                    action,
                    action_type=ActionType.parse(action.action_type),
                    action_data=dict(action.action_data),
                )
        except (KeyError, TypeError, ValueError) as exc:
            return GameServiceResponse(success=False, message=str(exc), error=str(exc))

        campaign_id = int(action.campaign_id)
        with self.locks.hold(campaign_id):
            snapshot_checkpoint = self.snapshots.checkpoint(campaign_id)
            prompt_checkpoint = self.prompts.get(campaign_id)
            streak_checkpoint = self.selector.checkpoint(campaign_id)
            try:
                turn = self._load_turn(campaign_id)
                outcome = self._dispatch(turn, action)
                if turn.operations:
                    self.atomic_persistor(turn.operations)
            except GameError as exc:
                self._rollback(campaign_id, snapshot_checkpoint, prompt_checkpoint, streak_checkpoint)
                logger.info(
                    "Player action rejected",
                    extra={"campaign_id": campaign_id, "action": action.action_type.value, "reason": str(exc)},
                )
                return self._failure(campaign_id, str(exc))
            except CatalogExhaustedError:
                self._rollback(campaign_id, snapshot_checkpoint, prompt_checkpoint, streak_checkpoint)
                raise
            except Exception:
                self._rollback(campaign_id, snapshot_checkpoint, prompt_checkpoint, streak_checkpoint)
                logger.exception(
                    "Player action failed",
                    extra={"campaign_id": campaign_id, "action": action.action_type.value},
                )
                return self._failure(campaign_id, GENERIC_FAILURE)

            state = self.get_game_state(campaign_id)

        self.event_bus.publish_all(turn.domain_events)
        return GameServiceResponse(
            success=True,
            message=outcome.message,
            choices=choices_for(state.phase, self.snapshots.get(campaign_id)),
            game_state=state,
            combat_result=outcome.combat_result,
            item_found=outcome.item_found,
        )

    def _rollback(self, campaign_id: int, snapshot, prompt, streak) -> None:
        self.snapshots.restore(campaign_id, snapshot)
        self.prompts.restore(campaign_id, prompt)
        self.selector.restore(campaign_id, streak)

    def _failure(self, campaign_id: int, message: str) -> GameServiceResponse:
        state: Optional[GameState] = None
        try:
            state = self.get_game_state(campaign_id)
        except GameError:
            state = None
        return GameServiceResponse(success=False, message=message, error=message, game_state=state)

    def _dispatch(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        if turn.campaign.state.is_terminal:
            raise ActionValidationError(ENDED_MESSAGE)

        snapshot = self.snapshots.get(turn.campaign_id)
        prompt = self.prompts.get(turn.campaign_id)
        phase = derive_phase(turn.campaign, snapshot, prompt)
        if action.action_type not in ALLOWED_ACTIONS.get(phase, ()):
            raise ActionValidationError(
                f"Action '{action.action_type.value}' is not allowed during {phase.value.replace('_', ' ')}."
            )

        handlers = {
            ActionType.CONTINUE: self._continue,
            ActionType.INVESTIGATE: self._investigate,
            ActionType.DECLINE: self._decline,
            ActionType.ATTACK: self._attack,
            ActionType.FLEE: self._flee,
            ActionType.USE_ITEM_COMBAT: self._use_item,
        }
        return handlers[action.action_type](turn, action)

    def _roll(self, action: PlayerAction) -> int:
        supplied = action.dice_roll
        if self.accept_client_dice and supplied is not None:
            if isinstance(supplied, str) and supplied.strip().isdigit():
                supplied = int(supplied.strip())
            if not is_valid_roll(supplied):
                raise ActionValidationError(f"Dice roll must be a whole number from 1 to 20, got {supplied!r}.")
            return int(supplied)
        return self.dice.roll()

    # ------------------------------------------------------------------
    # Exploration
    # ------------------------------------------------------------------

    def _continue(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        context = self._context(turn)
        if turn.next_event_number == 1:
            intro = campaign_intro(context)
            scene = self.narrator.generate_description(EventType.DESCRIPTIVE, context)
            message = f"{intro} {scene}".strip()
            self._log_event(turn, EventType.DESCRIPTIVE, message, {"intro": True})
            return _Outcome(message=message)

        selection = self.selector.choose(
            turn.campaign_id,
            turn.next_event_number,
            lambda: self.narrator.propose_event_type(context),
        )
        if selection.forced_boss:
            return self._start_encounter(turn, roll=None, boss=True)

        if selection.event_type is EventType.DESCRIPTIVE:
            message = self.narrator.generate_description(EventType.DESCRIPTIVE, context)
            self._log_event(turn, EventType.DESCRIPTIVE, message, {})
            return _Outcome(message=message)

        teaser = investigation_teaser(selection.event_type)
        self.prompts.set(
            turn.campaign_id,
            InvestigationPrompt(event_type=selection.event_type, message=teaser, event_number=turn.next_event_number),
        )
        return _Outcome(message=teaser)

    def _investigate(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        prompt = self.prompts.clear(turn.campaign_id)
        if prompt is None:
            raise ActionValidationError("There is nothing to investigate.")
        roll = self._roll(action)

        if prompt.event_type is EventType.ENVIRONMENTAL:
            return self._resolve_environmental(turn, roll)
        if prompt.event_type is EventType.COMBAT:
            return self._start_encounter(turn, roll=roll, boss=False)
        if prompt.event_type is EventType.ITEM_DROP:
            return self._resolve_item_drop(turn, roll)

        message = self.narrator.generate_description(EventType.DESCRIPTIVE, self._context(turn))
        self._log_event(turn, EventType.DESCRIPTIVE, message, {"dice_roll": roll})
        return _Outcome(message=message)

    def _decline(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        prompt = self.prompts.clear(turn.campaign_id)
        if prompt is None:
            raise ActionValidationError("There is nothing to decline.")
        message = decline_line(prompt.event_type)
        self._log_event(turn, prompt.event_type, message, {"declined": True})
        return _Outcome(message=message)

    def _resolve_environmental(self, turn: _Turn, roll: int) -> _Outcome:
        context = self._context(turn)
        description = self.narrator.generate_description(EventType.ENVIRONMENTAL, context)
        boost = self.narrator.propose_stat_boost(context, EventType.ENVIRONMENTAL)
        base_value = int(boost.base_value) or self.config.default_stat_boost
        delta = int(self.stat_rule(roll, base_value))

        character = turn.character
        if boost.stat is StatType.HEALTH:
            before = int(character.current_health)
            character.current_health = before + delta
            character.clamp_health(turn.equipment.armour_bonus)
            applied = int(character.current_health) - before
        elif boost.stat is StatType.ATTACK:
            before = int(character.attack)
            character.attack = max(0, before + delta)
            applied = int(character.attack) - before
        else:
            before = int(character.defense)
            character.defense = max(0, before + delta)
            applied = int(character.defense) - before
        turn.operations.append(self.character_repo.build_save_operation(character))

        event_data = {
            "dice_roll": roll,
            "classification": classify_roll(roll).value,
            "stat": boost.stat.value,
            "base_value": base_value,
            "delta": applied,
        }
        effect = f"{boost.stat.value.capitalize()} {applied:+d} (roll {roll})."
        message = f"{description} {effect}"
        self._log_event(turn, EventType.ENVIRONMENTAL, message, event_data)

        if character.is_defeated:
            self._transition(turn, CampaignState.GAME_OVER)
            message += " You collapse and do not rise again."
        return _Outcome(message=message)

    def _resolve_item_drop(self, turn: _Turn, roll: int) -> _Outcome:
        target = item_rarity(turn.next_event_number, roll, self.config)
        bounds = rarity_range(target, config=self.config)
        event_data: Dict[str, Any] = {"dice_roll": roll, "target_rarity": target}

        if len(turn.inventory) >= self.config.inventory_capacity:
            entry = pick_near(self.catalog_repo, CatalogKind.ITEM, target, bounds, self.rng)
            found = to_item_found_view(entry, left_behind=True)
            event_data.update(self._found_data(found))
            message = f"You find {entry.name}, but your pack is full. You leave it behind."
            self._log_event(turn, EventType.ITEM_DROP, message, event_data)
            return _Outcome(message=message, item_found=found)

        if self.rng.random() < self.config.item_drop_equipment_chance:
            slot = self._equipment_slot(turn)
            piece = pick_near(self.catalog_repo, CatalogKind(slot.value), target, bounds, self.rng)
            found = self._auto_equip(turn, piece, source="exploration")
        else:
            item = pick_near(self.catalog_repo, CatalogKind.ITEM, target, bounds, self.rng)
            found = self._stow(turn, item, source="exploration")

        description = self.narrator.generate_description(EventType.ITEM_DROP, self._context(turn), found.name)
        message = f"{description} {self._found_line(found)}"
        event_data.update(self._found_data(found))
        self._log_event(turn, EventType.ITEM_DROP, message, event_data)
        return _Outcome(message=message, item_found=found)

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------

    def _start_encounter(self, turn: _Turn, *, roll: Optional[int], boss: bool) -> _Outcome:
        if boss:
            enemy = pick_at_least(self.catalog_repo, CatalogKind.ENEMY, self.config.boss_difficulty_threshold, self.rng)
            target = int(enemy.difficulty)
        else:
            target = enemy_difficulty(turn.next_event_number, int(roll or 10), self.config, self.rng)
            enemy = pick_near(self.catalog_repo, CatalogKind.ENEMY, target, difficulty_range(target, config=self.config), self.rng)

        description = self.narrator.generate_description(EventType.COMBAT, self._context(turn, enemy=enemy))
        event_data: Dict[str, Any] = {
            "phase": "encounter",
            "enemy_id": int(enemy.id),
            "enemy_name": enemy.name,
            "difficulty": int(enemy.difficulty),
            "target_difficulty": target,
            "boss": bool(boss or self.config.is_boss_difficulty(enemy.difficulty)),
        }
        if roll is not None:
            event_data["dice_roll"] = roll
        encounter_number = self._log_event(turn, EventType.COMBAT, description, event_data)

        self.snapshots.create(
            CombatSnapshot.open(
                campaign_id=turn.campaign_id,
                enemy=enemy,
                character=turn.character,
                equipment=turn.equipment,
                inventory=turn.inventory,
                encounter_event_number=encounter_number,
            )
        )
        logger.info(
            "Combat started",
            extra={"campaign_id": turn.campaign_id, "enemy": enemy.name, "difficulty": enemy.difficulty, "boss": boss},
        )
        return _Outcome(message=description)

    def _attack(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        roll = self._roll(action)
        result = self.combat.attack(turn.campaign_id, roll)
        lines = list(result.log)
        item_found: Optional[ItemFoundView] = None

        if result.enemy_defeated:
            snapshot = self._require_snapshot(turn)
            if self.config.is_boss_difficulty(snapshot.enemy.difficulty):
                self._conclude(turn, snapshot, "enemy_defeated", roll)
                self._transition(turn, CampaignState.COMPLETED)
                lines.append("The final foe has fallen. Your legend is complete.")
                return _Outcome(" ".join(lines), self._combat_result("attack", result, "victory"))

            enemy = snapshot.enemy
            self._conclude(turn, snapshot, "enemy_defeated", roll)
            item_found = self._combat_reward(turn, enemy, roll)
            lines.append(self._found_line(item_found))
            return _Outcome(" ".join(lines), self._combat_result("attack", result, "enemy_defeated"), item_found)

        if result.character_defeated:
            self._conclude(turn, self._require_snapshot(turn), "character_defeated", roll)
            self._transition(turn, CampaignState.GAME_OVER)
            lines.append("You have been defeated...")
            return _Outcome(" ".join(lines), self._combat_result("attack", result, "character_defeated"))

        return _Outcome(" ".join(lines), self._combat_result("attack", result, None))

    def _flee(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        roll = self._roll(action)
        result = self.combat.flee(turn.campaign_id, roll)
        lines = list(result.log)

        if result.fled:
            self._conclude(turn, self._require_snapshot(turn), "fled", roll)
            return _Outcome(" ".join(lines), self._combat_result("flee", result, "fled"))
        if result.character_defeated:
            self._conclude(turn, self._require_snapshot(turn), "character_defeated", roll)
            self._transition(turn, CampaignState.GAME_OVER)
            lines.append("You have been defeated...")
            return _Outcome(" ".join(lines), self._combat_result("flee", result, "character_defeated"))
        outcome = "flee_refused" if result.flee_refused else None
        return _Outcome(" ".join(lines), self._combat_result("flee", result, outcome))

    def _use_item(self, turn: _Turn, action: PlayerAction) -> _Outcome:
        result = self.combat.use_item(turn.campaign_id, action.item_id)
        message = " ".join(result.log)
        if result.character_defeated:
            self._conclude(turn, self._require_snapshot(turn), "character_defeated", None)
            self._transition(turn, CampaignState.GAME_OVER)
            message += " You have been defeated..."
        return _Outcome(message=message)

    def _require_snapshot(self, turn: _Turn) -> CombatSnapshot:
        snapshot = self.snapshots.get(turn.campaign_id)
        if snapshot is None:
            raise ActionValidationError("There is no active combat for this campaign.")
        return snapshot

    def _conclude(self, turn: _Turn, snapshot: CombatSnapshot, outcome: str, roll: Optional[int]) -> None:
        """Reconcile the snapshot into durable state, log the conclusion, clear it."""
        plan = plan_reconciliation(snapshot)
        turn.character.current_health = plan.final_health
        turn.operations.append(self.character_repo.build_save_operation(turn.character))
        for item_id in plan.removed_item_ids:
            turn.operations.append(self.inventory_repo.build_remove_one_operation(turn.character_id, item_id))
            for index, item in enumerate(turn.inventory):
                if int(item.id) == int(item_id):
                    del turn.inventory[index]
                    break

        event_data: Dict[str, Any] = {
            "phase": "conclusion",
            "outcome": outcome,
            "enemy_id": int(snapshot.enemy.id),
            "enemy_name": snapshot.enemy.name,
            "rounds": int(snapshot.round_number),
            "items_used": len(plan.removed_item_ids),
        }
        if roll is not None:
            event_data["dice_roll"] = roll
        summary = {
            "enemy_defeated": f"{snapshot.enemy.name} is defeated.",
            "character_defeated": f"{turn.character.name} falls to {snapshot.enemy.name}.",
            "fled": f"{turn.character.name} escapes from {snapshot.enemy.name}.",
        }[outcome]
        self._log_event(turn, EventType.COMBAT, summary, event_data)
        self.snapshots.clear(turn.campaign_id)
        turn.domain_events.append(
            CombatConcluded(
                campaign_id=turn.campaign_id,
                enemy_name=snapshot.enemy.name,
                enemy_difficulty=int(snapshot.enemy.difficulty),
                outcome=outcome,
                rounds=int(snapshot.round_number),
            )
        )

    def _combat_reward(self, turn: _Turn, enemy: Enemy, roll: int) -> ItemFoundView:
        target = combat_reward_rarity(enemy.difficulty, roll, self.config)
        bounds = rarity_range(target, config=self.config)
        if self.rng.random() < self.config.combat_reward_equipment_chance:
            slot = self._equipment_slot(turn)
            piece = pick_near(self.catalog_repo, CatalogKind(slot.value), target, bounds, self.rng)
            return self._auto_equip(turn, piece, source="combat")

        item = pick_near(self.catalog_repo, CatalogKind.ITEM, target, bounds, self.rng)
        if len(turn.inventory) >= self.config.inventory_capacity:
            return to_item_found_view(item, left_behind=True)
        return self._stow(turn, item, source="combat")

    def _combat_result(self, action: str, result: RoundOutcome, outcome: Optional[str]) -> CombatResult:
        return CombatResult(
            action=action,
            dice_roll=result.roll,
            classification=result.classification.value,
            damage_dealt=result.damage_dealt,
            damage_received=result.damage_received,
            enemy_hp=result.enemy_hp,
            character_hp=result.character_hp,
            outcome=outcome,
            log=list(result.log),
        )

    # ------------------------------------------------------------------
    # Loot helpers
    # ------------------------------------------------------------------

    def _equipment_slot(self, turn: _Turn) -> EquipmentSlot:
        descriptor = self.narrator.propose_item_drop(self._context(turn))
        if descriptor.slot is not None:
            return descriptor.slot
        return self.rng.choice(list(EquipmentSlot))

    def _auto_equip(self, turn: _Turn, piece: EquipmentPiece, *, source: str) -> ItemFoundView:
        outcome = equip(turn.character, turn.equipment, piece)
        turn.operations.append(self.character_repo.build_save_operation(turn.character))
        turn.domain_events.append(
            ItemAcquired(
                campaign_id=turn.campaign_id,
                character_id=turn.character_id,
                item_kind=outcome.slot.value,
                item_id=int(piece.id),
                item_name=piece.name,
                rarity=int(piece.rarity),
                source=source,
            )
        )
        return to_item_found_view(piece, auto_equipped=True, replaced=outcome.replaced)

    def _stow(self, turn: _Turn, item: Item, *, source: str) -> ItemFoundView:
        turn.operations.append(self.inventory_repo.build_add_operation(turn.character_id, int(item.id)))
        turn.inventory.append(item)
        turn.domain_events.append(
            ItemAcquired(
                campaign_id=turn.campaign_id,
                character_id=turn.character_id,
                item_kind="item",
                item_id=int(item.id),
                item_name=item.name,
                rarity=int(item.rarity),
                source=source,
            )
        )
        return to_item_found_view(item)

    @staticmethod
    def _found_line(found: ItemFoundView) -> str:
        if found.left_behind:
            return f"You find {found.name}, but your pack is full. You leave it behind."
        if found.auto_equipped and found.replaced:
            return f"You equip {found.name}, replacing {found.replaced}."
        if found.auto_equipped:
            return f"You equip {found.name}."
        return f"You stow {found.name} in your pack."

    @staticmethod
    def _found_data(found: ItemFoundView) -> Dict[str, Any]:
        return {
            "item_kind": found.kind,
            "item_id": found.id,
            "item_name": found.name,
            "rarity": found.rarity,
            "auto_equipped": found.auto_equipped,
            "replaced": found.replaced,
            "left_behind": found.left_behind,
        }

    # ------------------------------------------------------------------
    # Turn plumbing
    # ------------------------------------------------------------------

    def _load_turn(self, campaign_id: int) -> _Turn:
        campaign = self.campaign_repo.get(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        character = self.character_repo.get_by_campaign(campaign_id)
        if character is None:
            raise NotFoundError(f"Campaign {campaign_id} has no character")
        latest = self.event_repo.latest(campaign_id)
        return _Turn(
            campaign=campaign,
            character=character,
            equipment=self._load_equipment(character),
            inventory=self._load_inventory(character),
            next_event_number=(latest.event_number if latest else 0) + 1,
        )

    def _load_equipment(self, character: Character) -> Equipment:
        equipment = Equipment()
        for slot in EquipmentSlot:
            item_id = character.slot_item_id(slot)
            if item_id is None:
                continue
            piece = self.catalog_repo.get(CatalogKind(slot.value), int(item_id))
            if piece is None:
                raise NotFoundError(f"Equipped {slot.value} {item_id} not found in catalog")
            setattr(equipment, slot.value, piece)
        return equipment

    def _load_inventory(self, character: Character) -> List[Item]:
        items: List[Item] = []
        for item_id in self.inventory_repo.list_item_ids(int(character.id or 0)):
            item = self.catalog_repo.get(CatalogKind.ITEM, item_id)
            if item is None:
                raise NotFoundError(f"Inventory item {item_id} not found in catalog")
            items.append(item)
        return items

    def _context(self, turn: _Turn, enemy: Optional[Enemy] = None) -> NarrativeContext:
        recent = self.event_repo.list_recent(turn.campaign_id, self.config.recent_event_window)
        enemy_stats = None
        if enemy is not None:
            enemy_stats = {
                "name": enemy.name,
                "health": enemy.health,
                "attack": enemy.attack,
                "defense": enemy.defense,
                "difficulty": enemy.difficulty,
            }
        return NarrativeContext(
            campaign_name=turn.campaign.name,
            character_name=turn.character.name,
            current_health=int(turn.character.current_health),
            max_health=turn.character.true_max_health(turn.equipment.armour_bonus),
            attack=int(turn.character.attack),
            defense=int(turn.character.defense),
            event_number=turn.next_event_number,
            recent_events=[event.summary() for event in recent],
            enemy=enemy_stats,
        )

    def _log_event(self, turn: _Turn, event_type: EventType, message: str, event_data: Dict[str, Any]) -> int:
        number = turn.next_event_number
        event = GameEvent(
            id=None,
            campaign_id=turn.campaign_id,
            message=message,
            event_number=number,
            event_type=event_type,
            event_data=dict(event_data),
        )
        turn.operations.append(self.event_repo.build_append_operation(event))
        turn.next_event_number += 1
        self.selector.record(turn.campaign_id, event_type)
        return number

    def _transition(self, turn: _Turn, state: CampaignState) -> None:
        previous = turn.campaign.state
        turn.campaign.transition_to(state)
        turn.operations.append(self.campaign_repo.build_set_state_operation(turn.campaign_id, state))
        turn.domain_events.append(
            CampaignStateChanged(
                campaign_id=turn.campaign_id,
                from_state=previous.value,
                to_state=state.value,
                event_number=turn.next_event_number - 1,
            )
        )
        logger.info(
            "Campaign state changed",
            extra={"campaign_id": turn.campaign_id, "from_state": previous.value, "to_state": state.value},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_game_state(self, campaign_id: int) -> GameState:
        with self.locks.hold(campaign_id):
            turn = self._load_turn(campaign_id)
            snapshot = self.snapshots.get(campaign_id)
            prompt = self.prompts.get(campaign_id)
            return to_game_state(
                campaign=turn.campaign,
                character=turn.character,
                equipment=turn.equipment,
                inventory=turn.inventory,
                recent_events=self.event_repo.list_recent(campaign_id, self.recent_event_limit),
                phase=derive_phase(turn.campaign, snapshot, prompt),
                snapshot=snapshot,
                prompt=prompt,
            )

    def available_choices(self, campaign_id: int) -> List[str]:
        with self.locks.hold(campaign_id):
            state = self.get_game_state(campaign_id)
            return choices_for(state.phase, self.snapshots.get(campaign_id))

    def validate_game_state(self, campaign_id: int) -> GameValidation:
        with self.locks.hold(campaign_id):
            campaign = self.campaign_repo.get(campaign_id)
            if campaign is None:
                raise NotFoundError(f"Campaign {campaign_id} not found")
            snapshot = self.snapshots.get(campaign_id)
            prompt = self.prompts.get(campaign_id)
            phase = derive_phase(campaign, snapshot, prompt)
            validation = GameValidation(
                is_game_over=campaign.state is CampaignState.GAME_OVER,
                is_victory=campaign.state is CampaignState.COMPLETED,
                phase=phase,
            )

            character = self.character_repo.get_by_campaign(campaign_id)
            if character is None:
                validation.errors.append("Campaign has no character")
                return validation

            equipment = self._load_equipment(character)
            if character.current_health > character.true_max_health(equipment.armour_bonus):
                validation.warnings.append("Character health is above its maximum")
            if character.is_defeated and not validation.is_game_over:
                validation.warnings.append("Character has no health left but the campaign is still active")
            if self.inventory_repo.count(int(character.id or 0)) > self.config.inventory_capacity:
                validation.warnings.append("Inventory holds more items than its capacity")
            if snapshot is not None and prompt is not None:
                validation.errors.append("Combat and an investigation prompt are both pending")
            if snapshot is not None and campaign.state.is_terminal:
                validation.errors.append("A finished campaign still has an open combat")
            if snapshot is not None and snapshot.enemy_current_hp <= 0:
                validation.errors.append("Combat is open against an enemy with no health left")
            latest = self.event_repo.latest(campaign_id)
            if latest is not None and latest.event_number > self.config.max_event_number and not campaign.state.is_terminal:
                validation.warnings.append("Campaign has run past its final event")
            return validation

    def list_campaigns(self, account_id: int) -> List[CampaignSummaryView]:
        rows: List[CampaignSummaryView] = []
        for campaign in self.campaign_repo.list_for_account(account_id):
            campaign_id = int(campaign.id or 0)
            character = self.character_repo.get_by_campaign(campaign_id)
            latest = self.event_repo.latest(campaign_id)
            rows.append(
                CampaignSummaryView(
                    id=campaign_id,
                    name=campaign.name,
                    state=campaign.state.value,
                    character_name=character.name if character else None,
                    event_count=latest.event_number if latest else 0,
                )
            )
        return rows

    def list_races(self) -> List[LineageOptionView]:
        return [
            LineageOptionView(id=row.id, name=row.name, vitality=row.vitality, attack=row.attack, defense=row.defense)
            for row in self.catalog_repo.list_races()
        ]

    def list_classes(self) -> List[LineageOptionView]:
        return [
            LineageOptionView(id=row.id, name=row.name, vitality=row.vitality, attack=row.attack, defense=row.defense)
            for row in self.catalog_repo.list_classes()
        ]

    def export_event_log(self, campaign_id: int) -> List[EventView]:
        if self.campaign_repo.get(campaign_id) is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        return [to_event_view(event) for event in self.event_repo.list_all(campaign_id)]

    # ------------------------------------------------------------------
    # Campaign lifecycle
    # ------------------------------------------------------------------

    def create_campaign(
        self,
        *,
        account_id: int,
        name: str,
        character_name: str,
        race_id: int,
        class_id: int,
        description: str = "",
    ) -> GameState:
        name = str(name or "").strip()
        character_name = str(character_name or "").strip()
        if not name:
            raise ActionValidationError("Campaign name is required")
        if not character_name:
            raise ActionValidationError("Character name is required")
        race = self.catalog_repo.get_race(race_id)
        if race is None:
            raise NotFoundError(f"Race {race_id} not found")
        character_class = self.catalog_repo.get_class(class_id)
        if character_class is None:
            raise NotFoundError(f"Class {class_id} not found")

        campaign = Campaign(id=None, account_id=int(account_id), name=name, description=str(description or ""))
        character = Character.from_lineage(character_name, race, character_class)
        self.atomic_persistor(
            [
                self.campaign_repo.build_create_operation(campaign),
                self.character_repo.build_create_operation(character, campaign),
            ]
        )
        logger.info(
            "Campaign created",
            extra={"campaign_id": campaign.id, "account_id": account_id, "race": race.name, "class": character_class.name},
        )
        return self.get_game_state(int(campaign.id or 0))

    def delete_campaign(self, campaign_id: int) -> bool:
        with self.locks.hold(campaign_id):
            if self.campaign_repo.get(campaign_id) is None:
                return False
            operations: List[Operation] = [self.event_repo.build_delete_for_campaign_operation(campaign_id)]
            character = self.character_repo.get_by_campaign(campaign_id)
            if character is not None:
                operations.append(self.inventory_repo.build_clear_operation(int(character.id or 0)))
            operations.append(self.character_repo.build_delete_for_campaign_operation(campaign_id))
            operations.append(self.campaign_repo.build_delete_operation(campaign_id))
            self.atomic_persistor(operations)

            self.snapshots.discard(campaign_id)
            self.prompts.clear(campaign_id)
            self.selector.forget(campaign_id)
        logger.info("Campaign deleted", extra={"campaign_id": campaign_id})
        return True
