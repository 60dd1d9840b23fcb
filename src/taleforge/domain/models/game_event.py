from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from taleforge.domain.models.campaign import utc_now


class EventType(str, Enum):
    DESCRIPTIVE = "Descriptive"
    ENVIRONMENTAL = "Environmental"
    COMBAT = "Combat"
    ITEM_DROP = "Item_Drop"

    @classmethod
    def parse(cls, value: str | None) -> "EventType":
        raw = str(value or "").strip()
        for member in cls:
            if member.value.lower() == raw.lower() or member.name.lower() == raw.lower():
                return member
        raise ValueError(f"Unknown event type: {value!r}")


@dataclass
class GameEvent:
    """Append-only log entry; the log is the only record of turn order."""

    id: Optional[int]
    campaign_id: int
    message: str
    event_number: int
    event_type: EventType
    event_data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.event_type, EventType):
            self.event_type = EventType.parse(self.event_type)

    @property
    def declined(self) -> bool:
        return bool(self.event_data.get("declined", False))

    def summary(self, width: int = 80) -> str:
        text = " ".join(str(self.message or "").split())
        if len(text) > width:
            text = text[: width - 3].rstrip() + "..."
        return f"#{self.event_number} [{self.event_type.value}] {text}"
