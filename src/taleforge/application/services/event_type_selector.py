from __future__ import annotations

import logging
import random
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from taleforge.application.services.balance_tables import BalanceConfig, DEFAULT_BALANCE
from taleforge.domain.models.game_event import EventType
from taleforge.domain.repositories import GameEventRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSelection:
    event_type: EventType
    forced_boss: bool = False
    proposals: List[EventType] = field(default_factory=list)
    fallback: bool = False


class EventTypeSelector:
    """Chooses the next event category for a ``continue`` action.

    The narrator proposes a category; proposals that would make the recent log
    monotonous are resampled a bounded number of times. The consecutive
    Descriptive counter is kept per campaign and re-seeded from the log the
    first time a campaign is seen in this process.
    """

    def __init__(
        self,
        events: GameEventRepository,
        config: BalanceConfig = DEFAULT_BALANCE,
        rng: random.Random | None = None,
    ) -> None:
        self.events = events
        self.config = config
        self.rng = rng or random.Random()
        self._guard = threading.Lock()
        self._consecutive: Dict[int, int] = {}

    def consecutive_descriptive(self, campaign_id: int) -> int:
        key = int(campaign_id)
        with self._guard:
            if key in self._consecutive:
                return self._consecutive[key]
        seeded = self._seed_from_log(key)
        with self._guard:
            return self._consecutive.setdefault(key, seeded)

    def _seed_from_log(self, campaign_id: int) -> int:
        depth = max(self.config.max_consecutive_descriptive, self.config.recent_event_window) + 1
        streak = 0
        for event in self.events.list_recent(campaign_id, depth):
            if event.event_type is not EventType.DESCRIPTIVE:
                break
            streak += 1
        return streak

    def record(self, campaign_id: int, event_type: EventType) -> None:
        current = self.consecutive_descriptive(campaign_id)
        with self._guard:
            if event_type is EventType.DESCRIPTIVE:
                self._consecutive[int(campaign_id)] = current + 1
            else:
                self._consecutive[int(campaign_id)] = 0

    def checkpoint(self, campaign_id: int) -> int | None:
        with self._guard:
            return self._consecutive.get(int(campaign_id))

    def restore(self, campaign_id: int, value: int | None) -> None:
        with self._guard:
            if value is None:
                self._consecutive.pop(int(campaign_id), None)
            else:
                self._consecutive[int(campaign_id)] = int(value)

    def forget(self, campaign_id: int) -> None:
        self.restore(campaign_id, None)

    def is_boss_turn(self, next_event_number: int) -> bool:
        return int(next_event_number) >= self.config.boss_forced_event_start

    def choose(
        self,
        campaign_id: int,
        next_event_number: int,
        propose: Callable[[], EventType],
    ) -> EventSelection:
        if self.is_boss_turn(next_event_number):
            logger.info(
                "Boss encounter forced",
                extra={"campaign_id": campaign_id, "event_number": next_event_number},
            )
            return EventSelection(event_type=EventType.COMBAT, forced_boss=True)

        recent = self.events.list_recent(campaign_id, self.config.recent_event_window)
        recent_counts = Counter(event.event_type for event in recent)
        lifetime_descriptive = self.events.count_by_type(campaign_id, EventType.DESCRIPTIVE)
        streak = self.consecutive_descriptive(campaign_id)

        def rejected(candidate: EventType) -> bool:
            if recent_counts[candidate] >= self.config.max_type_in_window:
                return True
            if candidate is EventType.DESCRIPTIVE:
                if lifetime_descriptive >= self.config.max_descriptive_events:
                    return True
                if streak >= self.config.max_consecutive_descriptive:
                    return True
            return False

        proposals: List[EventType] = []
        for _ in range(max(1, self.config.event_type_max_attempts)):
            proposal = propose()
            proposals.append(proposal)
            if not rejected(proposal):
                return EventSelection(event_type=proposal, proposals=proposals)

        alternatives = [candidate for candidate in EventType if not rejected(candidate)]
        if alternatives:
            chosen = self.rng.choice(alternatives)
            logger.debug(
                "Event type proposals exhausted; using alternative",
                extra={"campaign_id": campaign_id, "proposals": [p.value for p in proposals], "chosen": chosen.value},
            )
            return EventSelection(event_type=chosen, proposals=proposals, fallback=True)

        logger.debug(
            "Every event type is overrepresented; accepting first proposal",
            extra={"campaign_id": campaign_id, "proposal": proposals[0].value},
        )
        return EventSelection(event_type=proposals[0], proposals=proposals, fallback=True)
