import threading
from dataclasses import dataclass
from typing import Dict, Optional

from taleforge.domain.errors import PromptConflictError
from taleforge.domain.models.game_event import EventType


@dataclass(frozen=True)
class InvestigationPrompt:
    event_type: EventType
    message: str
    event_number: int


class InvestigationPromptStore:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._prompts: Dict[int, InvestigationPrompt] = {}

    def set(self, campaign_id: int, prompt: InvestigationPrompt) -> None:
        key = int(campaign_id)
        with self._guard:
            if key in self._prompts:
                raise PromptConflictError(f"Campaign {key} already has a pending investigation prompt")
            self._prompts[key] = prompt

    def get(self, campaign_id: int) -> Optional[InvestigationPrompt]:
        with self._guard:
            return self._prompts.get(int(campaign_id))

    def clear(self, campaign_id: int) -> Optional[InvestigationPrompt]:
        with self._guard:
            return self._prompts.pop(int(campaign_id), None)

    def restore(self, campaign_id: int, prompt: Optional[InvestigationPrompt]) -> None:
        with self._guard:
            if prompt is None:
                self._prompts.pop(int(campaign_id), None)
            else:
                self._prompts[int(campaign_id)] = prompt
