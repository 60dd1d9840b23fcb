from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from taleforge.application.services.balance_tables import BalanceConfig, DEFAULT_BALANCE
from taleforge.application.services.combat_snapshot_store import CombatSnapshotStore
from taleforge.domain.errors import ActionValidationError
from taleforge.domain.models.item import Item, StatType
from taleforge.domain.services.dice import RollClassification, classify_roll


logger = logging.getLogger(__name__)


def roll_swing(roll: int) -> int:
    return int(roll) - 10


def attack_damage(effective_attack: int, enemy_defense: int, roll: int) -> int:
    """A high roll adds to the blow; the result never drops below 1."""
    base = max(1, int(effective_attack) - int(enemy_defense))
    return max(1, base + roll_swing(roll))


def counter_damage(enemy_attack: int, effective_defense: int, roll: int) -> int:
    """The same roll that lands a blow also softens the reply."""
    base = max(1, int(enemy_attack) - int(effective_defense))
    return max(1, base - roll_swing(roll))


@dataclass
class RoundOutcome:
    roll: int
    classification: RollClassification
    damage_dealt: int = 0
    damage_received: int = 0
    enemy_hp: int = 0
    character_hp: int = 0
    enemy_defeated: bool = False
    character_defeated: bool = False
    fled: bool = False
    flee_refused: bool = False
    log: List[str] = field(default_factory=list)


@dataclass
class ItemUseOutcome:
    item: Item
    stat: StatType
    applied: int
    character_hp: int
    character_defeated: bool = False
    log: List[str] = field(default_factory=list)


class CombatService:
    """Round resolution against a live combat snapshot."""

    def __init__(self, snapshots: CombatSnapshotStore, config: BalanceConfig = DEFAULT_BALANCE) -> None:
        self.snapshots = snapshots
        self.config = config

    def _snapshot(self, campaign_id: int):
        snapshot = self.snapshots.get(campaign_id)
        if snapshot is None:
            raise ActionValidationError("There is no active combat for this campaign.")
        return snapshot

    def _enemy_reply(self, campaign_id: int, roll: int, outcome: RoundOutcome) -> None:
        snapshot = self._snapshot(campaign_id)
        damage = counter_damage(snapshot.enemy.attack, snapshot.effective_defense, roll)
        hp = self.snapshots.update_character_hp(campaign_id, snapshot.character.current_health - damage)
        outcome.damage_received = damage
        outcome.character_hp = hp
        outcome.character_defeated = hp <= 0
        line = f"{snapshot.enemy.name} strikes back for {damage} damage."
        if outcome.character_defeated:
            line += " You fall."
        outcome.log.append(line)

    def attack(self, campaign_id: int, roll: int) -> RoundOutcome:
        snapshot = self._snapshot(campaign_id)
        self.snapshots.next_round(campaign_id)
        outcome = RoundOutcome(roll=roll, classification=classify_roll(roll))

        dealt = attack_damage(snapshot.effective_attack, snapshot.enemy.defense, roll)
        enemy_hp = self.snapshots.update_enemy_hp(campaign_id, snapshot.enemy_current_hp - dealt)
        outcome.damage_dealt = dealt
        outcome.enemy_hp = enemy_hp
        outcome.character_hp = snapshot.character.current_health
        outcome.log.append(f"You hit {snapshot.enemy.name} for {dealt} damage (roll {roll}).")

        if enemy_hp <= 0:
            outcome.enemy_defeated = True
            outcome.log.append(f"{snapshot.enemy.name} is defeated.")
        else:
            self._enemy_reply(campaign_id, roll, outcome)

        for line in outcome.log:
            self.snapshots.append_combat_log(campaign_id, line)
        logger.debug(
            "Attack resolved",
            extra={"campaign_id": campaign_id, "roll": roll, "dealt": dealt, "received": outcome.damage_received},
        )
        return outcome

    def flee(self, campaign_id: int, roll: int) -> RoundOutcome:
        snapshot = self._snapshot(campaign_id)
        self.snapshots.next_round(campaign_id)
        outcome = RoundOutcome(
            roll=roll,
            classification=classify_roll(roll),
            enemy_hp=snapshot.enemy_current_hp,
            character_hp=snapshot.character.current_health,
        )

        if self.config.is_boss_difficulty(snapshot.enemy.difficulty):
            outcome.flee_refused = True
            outcome.log.append(f"{snapshot.enemy.name} blocks every path. There is no escape.")
        elif roll > self.config.flee_success_above:
            outcome.fled = True
            outcome.log.append(f"You escape from {snapshot.enemy.name} (roll {roll}).")
        else:
            outcome.log.append(f"You fail to escape (roll {roll}).")
            self._enemy_reply(campaign_id, roll, outcome)

        for line in outcome.log:
            self.snapshots.append_combat_log(campaign_id, line)
        return outcome

    def use_item(self, campaign_id: int, item_id: Optional[int]) -> ItemUseOutcome:
        snapshot = self._snapshot(campaign_id)
        if item_id is None:
            raise ActionValidationError("Choose an item to use.")
        item = snapshot.find_item(int(item_id))
        if item is None:
            raise ActionValidationError(f"Item {item_id} is not in your combat inventory.")

        stat = item.stat_modified
        value = int(item.stat_value)
        if stat is StatType.HEALTH:
            before = snapshot.character.current_health
            after = self.snapshots.update_character_hp(campaign_id, before + value)
            applied = after - before
            line = f"You use {item.name} and {'recover' if applied >= 0 else 'lose'} {abs(applied)} HP."
        else:
            self.snapshots.apply_temporary_buff(campaign_id, stat, value)
            applied = value
            line = f"You use {item.name}: {stat.value} {applied:+d} until the fight ends."
        self.snapshots.remove_item(campaign_id, item.id)
        self.snapshots.append_combat_log(campaign_id, line)

        hp = snapshot.character.current_health
        return ItemUseOutcome(
            item=item,
            stat=stat,
            applied=applied,
            character_hp=hp,
            character_defeated=hp <= 0,
            log=[line],
        )
