from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CampaignState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    GAME_OVER = "game_over"

    @property
    def is_terminal(self) -> bool:
        return self is not CampaignState.ACTIVE


@dataclass
class Campaign:
    id: Optional[int]
    account_id: int
    name: str
    description: str = ""
    state: CampaignState = CampaignState.ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.state, CampaignState):
            self.state = CampaignState(str(self.state).strip().lower())

    def transition_to(self, state: CampaignState) -> None:
        self.state = state
        self.updated_at = utc_now()
