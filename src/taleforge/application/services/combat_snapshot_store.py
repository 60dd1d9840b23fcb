from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from taleforge.domain.errors import ActionValidationError, SnapshotConflictError
from taleforge.domain.models.combat import CombatSnapshot
from taleforge.domain.models.item import StatType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationPlan:
    character_id: int
    final_health: int
    removed_item_ids: List[int] = field(default_factory=list)


def plan_reconciliation(snapshot: CombatSnapshot) -> ReconciliationPlan:
    """Final HP plus one removal per consumed unit; temporary buffs are dropped."""
    removals: List[int] = []
    for item_id, count in sorted(snapshot.consumed_item_counts().items()):
        removals.extend([item_id] * count)
    return ReconciliationPlan(
        character_id=snapshot.character.id,
        final_health=max(0, int(snapshot.character.current_health)),
        removed_item_ids=removals,
    )


class CombatSnapshotStore:
    """Process-local, per-campaign encounter state. Never survives a restart."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._snapshots: Dict[int, CombatSnapshot] = {}

    def create(self, snapshot: CombatSnapshot) -> None:
        key = int(snapshot.campaign_id)
        with self._guard:
            if key in self._snapshots:
                raise SnapshotConflictError(f"Campaign {key} already has an active combat snapshot")
            self._snapshots[key] = snapshot
        logger.info("Combat snapshot created", extra={"campaign_id": key, "enemy": snapshot.enemy.name})

    def get(self, campaign_id: int) -> Optional[CombatSnapshot]:
        with self._guard:
            return self._snapshots.get(int(campaign_id))

    def has(self, campaign_id: int) -> bool:
        return self.get(campaign_id) is not None

    def _require(self, campaign_id: int) -> CombatSnapshot:
        snapshot = self.get(campaign_id)
        if snapshot is None:
            raise ActionValidationError(f"Campaign {campaign_id} is not in combat")
        return snapshot

    def update_enemy_hp(self, campaign_id: int, hp: int) -> int:
        snapshot = self._require(campaign_id)
        snapshot.enemy_current_hp = max(0, int(hp))
        return snapshot.enemy_current_hp

    def update_character_hp(self, campaign_id: int, hp: int) -> int:
        snapshot = self._require(campaign_id)
        ceiling = snapshot.character.true_max_health
        snapshot.character.current_health = max(0, min(int(hp), ceiling))
        return snapshot.character.current_health

    def apply_temporary_buff(self, campaign_id: int, stat: StatType, delta: int) -> None:
        snapshot = self._require(campaign_id)
        snapshot.temporary_buffs.add(stat, delta)

    def remove_item(self, campaign_id: int, item_id: int) -> bool:
        snapshot = self._require(campaign_id)
        removed = snapshot.remove_one(item_id)
        if not removed:
            logger.warning("Item missing from combat inventory", extra={"campaign_id": campaign_id, "item_id": item_id})
        return removed

    def append_combat_log(self, campaign_id: int, line: str) -> None:
        self._require(campaign_id).combat_log.append(str(line))

    def next_round(self, campaign_id: int) -> int:
        snapshot = self._require(campaign_id)
        snapshot.round_number += 1
        return snapshot.round_number

    def clear(self, campaign_id: int) -> CombatSnapshot:
        key = int(campaign_id)
        with self._guard:
            snapshot = self._snapshots.pop(key, None)
        if snapshot is None:
            raise SnapshotConflictError(f"Campaign {key} has no combat snapshot to clear")
        logger.info("Combat snapshot cleared", extra={"campaign_id": key})
        return snapshot

    def discard(self, campaign_id: int) -> None:
        with self._guard:
            self._snapshots.pop(int(campaign_id), None)

    def checkpoint(self, campaign_id: int) -> Optional[CombatSnapshot]:
        snapshot = self.get(campaign_id)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    def restore(self, campaign_id: int, checkpoint: Optional[CombatSnapshot]) -> None:
        key = int(campaign_id)
        with self._guard:
            if checkpoint is None:
                self._snapshots.pop(key, None)
            else:
                self._snapshots[key] = checkpoint
