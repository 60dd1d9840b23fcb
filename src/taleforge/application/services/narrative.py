from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from taleforge.domain.errors import NarrativeUnavailableError
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import EquipmentSlot, StatType


logger = logging.getLogger(__name__)


STAT_BOOST_LIMITS: Dict[StatType, int] = {
    StatType.HEALTH: 10,
    StatType.ATTACK: 5,
    StatType.DEFENSE: 5,
}
ITEM_KINDS = ("weapon", "armour", "shield", "potion")
DESCRIPTION_MAX_CHARS = 600


@dataclass(frozen=True)
class NarrativeContext:
    campaign_name: str
    character_name: str
    current_health: int
    max_health: int
    attack: int
    defense: int
    event_number: int
    recent_events: List[str] = field(default_factory=list)
    enemy: Optional[Dict[str, Any]] = None

    def character_line(self) -> str:
        return (
            f"{self.character_name} (HP {self.current_health}/{self.max_health}, "
            f"ATK {self.attack}, DEF {self.defense})"
        )


@dataclass(frozen=True)
class StatBoost:
    stat: StatType
    base_value: int


@dataclass(frozen=True)
class ItemDescriptor:
    kind: str
    name: str = ""
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def slot(self) -> Optional[EquipmentSlot]:
        if self.kind == "potion":
            return None
        return EquipmentSlot(self.kind)


def normalize_item_kind(value: object) -> Optional[str]:
    raw = str(value or "").strip().lower()
    if raw == "armor":
        raw = "armour"
    if raw in ("consumable", "item"):
        raw = "potion"
    return raw if raw in ITEM_KINDS else None


class NarrativeGenerator(ABC):
    """Source of prose and proposals. Implementations may be slow or fail."""

    @abstractmethod
    def propose_event_type(self, context: NarrativeContext) -> EventType:
        raise NotImplementedError

    @abstractmethod
    def generate_description(
        self,
        event_type: EventType,
        context: NarrativeContext,
        featured_item: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    @abstractmethod
    def propose_stat_boost(self, context: NarrativeContext, event_type: EventType) -> StatBoost:
        raise NotImplementedError

    @abstractmethod
    def propose_item_drop(self, context: NarrativeContext) -> ItemDescriptor:
        raise NotImplementedError


class GuardedNarrativeGenerator(NarrativeGenerator):
    """Validates every answer from ``primary`` and substitutes ``fallback`` on failure.

    The fallback must be an offline generator that never raises.
    """

    def __init__(self, primary: NarrativeGenerator, fallback: NarrativeGenerator, *, default_stat_boost: int = 2) -> None:
        self.primary = primary
        self.fallback = fallback
        self.default_stat_boost = int(default_stat_boost) or 2

    def _warn(self, operation: str, exc: Exception) -> None:
        logger.warning(
            "Narrative generator failed; using fallback",
            extra={"operation": operation, "error": str(exc), "error_type": type(exc).__name__},
        )

    def propose_event_type(self, context: NarrativeContext) -> EventType:
        try:
            proposal = self.primary.propose_event_type(context)
            if not isinstance(proposal, EventType):
                proposal = EventType.parse(proposal)
            return proposal
        except (NarrativeUnavailableError, ValueError, TypeError, OverflowError) as exc:
            self._warn("propose_event_type", exc)
            return self.fallback.propose_event_type(context)

    def generate_description(
        self,
        event_type: EventType,
        context: NarrativeContext,
        featured_item: Optional[str] = None,
    ) -> str:
        try:
            text = " ".join(str(self.primary.generate_description(event_type, context, featured_item) or "").split())
        except (NarrativeUnavailableError, ValueError, TypeError, OverflowError) as exc:
            self._warn("generate_description", exc)
            text = ""
        if not text:
            return self.fallback.generate_description(event_type, context, featured_item)
        if len(text) > DESCRIPTION_MAX_CHARS:
            text = text[: DESCRIPTION_MAX_CHARS - 3].rstrip() + "..."
        return text

    def propose_stat_boost(self, context: NarrativeContext, event_type: EventType) -> StatBoost:
        try:
            boost = self.primary.propose_stat_boost(context, event_type)
            stat = boost.stat if isinstance(boost.stat, StatType) else StatType.normalize(boost.stat)
            value = int(boost.base_value)
        except (NarrativeUnavailableError, ValueError, TypeError, AttributeError, OverflowError) as exc:
            self._warn("propose_stat_boost", exc)
            boost = self.fallback.propose_stat_boost(context, event_type)
            stat, value = boost.stat, int(boost.base_value)

        limit = STAT_BOOST_LIMITS[stat]
        value = max(-limit, min(limit, value))
        if value == 0:
            value = self.default_stat_boost
        return StatBoost(stat=stat, base_value=value)

    def propose_item_drop(self, context: NarrativeContext) -> ItemDescriptor:
        try:
            descriptor = self.primary.propose_item_drop(context)
            kind = normalize_item_kind(descriptor.kind)
            if kind is None:
                raise ValueError(f"Unknown item kind: {descriptor.kind!r}")
            return ItemDescriptor(kind=kind, name=str(descriptor.name or "").strip(), stats=dict(descriptor.stats or {}))
        except (NarrativeUnavailableError, ValueError, TypeError, AttributeError, OverflowError) as exc:
            self._warn("propose_item_drop", exc)
            return self.fallback.propose_item_drop(context)
