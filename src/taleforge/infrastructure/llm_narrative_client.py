from __future__ import annotations

import json
import logging
import math
import os
from typing import Any, Dict, Optional

import httpx

from taleforge.application.services.narrative import (
    ItemDescriptor,
    NarrativeContext,
    NarrativeGenerator,
    StatBoost,
    normalize_item_kind,
)
from taleforge.domain.errors import NarrativeUnavailableError
from taleforge.domain.models.game_event import EventType
from taleforge.domain.models.item import StatType
from taleforge.infrastructure.resilient_http import CircuitOpenError, post_json_with_retry


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the dungeon master of a short dark-fantasy adventure. "
    "Answer with a single JSON object and nothing else."
)

_EVENT_RULES: Dict[EventType, str] = {
    EventType.DESCRIPTIVE: (
        "Pure atmosphere and exploration. No creatures, enemies or combat. "
        "Focus on sounds, smells, old history and strange objects."
    ),
    EventType.ENVIRONMENTAL: (
        "A natural hazard or blessing with no creatures involved, such as a "
        "magical aura, toxic gas, a healing spring or cursed ground."
    ),
    EventType.COMBAT: "An enemy encounter. Make it dramatic and describe the enemy's look and threat.",
    EventType.ITEM_DROP: "The discovery of an item, such as a chest, an abandoned weapon or a hidden cache.",
}


class LlmNarrativeClient(NarrativeGenerator):
    """Narrator backed by an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout: float = 20.0,
        retries: int = 1,
        backoff_seconds: float = 0.5,
        temperature: float = 0.8,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.model = model
        self.temperature = float(temperature)
        self._retries = int(retries)
        self._backoff_seconds = float(backoff_seconds)
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout, headers=headers)

    @classmethod
    def from_env(cls) -> "LlmNarrativeClient":
        return cls(
            base_url=os.getenv("RPG_LLM_BASE_URL", "http://localhost:8080/v1"),
            model=os.getenv("RPG_LLM_MODEL", "gpt-4o-mini"),
            api_key=os.getenv("RPG_LLM_API_KEY") or None,
            timeout=float(os.getenv("RPG_LLM_TIMEOUT_S", "20")),
            retries=int(os.getenv("RPG_LLM_RETRIES", "1")),
            backoff_seconds=float(os.getenv("RPG_LLM_BACKOFF_S", "0.5")),
            temperature=float(os.getenv("RPG_LLM_TEMPERATURE", "0.8")),
        )

    def close(self) -> None:
        self.client.close()

    def _complete(self, prompt: str, operation: str) -> Dict[str, Any]:
        body = {
            "model": self.model,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        try:
            payload = post_json_with_retry(
                self.client,
                "/chat/completions",
                body,
                retries=self._retries,
                backoff_seconds=self._backoff_seconds,
                operation=operation,
            )
        except (httpx.HTTPError, CircuitOpenError) as exc:
            raise NarrativeUnavailableError(f"{operation} request failed: {exc}") from exc

        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"{operation} response has no message content") from exc
        parsed = _parse_json_object(str(content or ""))
        logger.debug("Narrator answered", extra={"operation": operation, "model": self.model})
        return parsed

    @staticmethod
    def _history(context: NarrativeContext) -> str:
        if not context.recent_events:
            return "This is the very beginning of the adventure."
        return "\n".join(f"- {line}" for line in context.recent_events)

    def propose_event_type(self, context: NarrativeContext) -> EventType:
        prompt = (
            "Decide the NEXT event type.\n\n"
            f"Character: {context.character_line()}\n"
            f"Turn: {context.event_number}\n"
            f"Recent events (most recent first):\n{self._history(context)}\n\n"
            "Options: Descriptive (atmosphere only), Environmental (hazards or blessings affecting stats), "
            "Combat (an enemy encounter), Item_Drop (finding an item).\n"
            "Never repeat the same type three times in a row; match intensity to the character's health.\n"
            'Return JSON: {"type": "Descriptive"|"Environmental"|"Combat"|"Item_Drop"}'
        )
        answer = self._complete(prompt, "propose_event_type")
        return EventType.parse(answer.get("type"))

    def generate_description(
        self,
        event_type: EventType,
        context: NarrativeContext,
        featured_item: Optional[str] = None,
    ) -> str:
        lines = [
            f"Write a vivid description for a {event_type.value} event.",
            "",
            f"Character: {context.character_line()}",
            f"Recent events (most recent first):\n{self._history(context)}",
            "",
            _EVENT_RULES[event_type],
        ]
        if context.enemy:
            enemy = context.enemy
            lines.append(
                f"Enemy: {enemy.get('name')} (HP {enemy.get('health')}, ATK {enemy.get('attack')}, DEF {enemy.get('defense')})"
            )
        if featured_item:
            lines.append(f"The item found is: {featured_item}.")
        lines.append("Build naturally from the previous event and keep the same setting.")
        lines.append('Write one or two sentences. Return JSON: {"description": "..."}')
        answer = self._complete("\n".join(lines), "generate_description")
        return str(answer.get("description") or "")

    def propose_stat_boost(self, context: NarrativeContext, event_type: EventType) -> StatBoost:
        prompt = (
            f"Decide the stat change for a {event_type.value} event before the dice are applied.\n\n"
            f"Character: {context.character_line()}\n\n"
            "Rules: health -10 to +10, attack -5 to +5, defense -5 to +5. "
            "Environmental events may help or harm.\n"
            'Return JSON: {"statType": "health"|"attack"|"defense", "value": <integer>}'
        )
        answer = self._complete(prompt, "propose_stat_boost")
        return StatBoost(stat=StatType.normalize(answer.get("statType")), base_value=int(answer.get("value")))

    def propose_item_drop(self, context: NarrativeContext) -> ItemDescriptor:
        prompt = (
            "Generate ONE balanced item for the adventurer.\n\n"
            f"Character: {context.character_line()}\n\n"
            "Types: weapon (attack), armour (health), shield (defense), potion (healAmount). "
            "If health is below half, slightly favour potions. Only include the stat for the type.\n"
            'Return JSON: {"itemType": "weapon"|"armour"|"shield"|"potion", "itemName": "...", "itemStats": {...}}'
        )
        answer = self._complete(prompt, "propose_item_drop")
        kind = normalize_item_kind(answer.get("itemType"))
        if kind is None:
            raise ValueError(f"Unknown item type: {answer.get('itemType')!r}")
        stats = answer.get("itemStats") or {}
        return ItemDescriptor(
            kind=kind,
            name=str(answer.get("itemName") or ""),
            stats={str(key): int(value) for key, value in dict(stats).items() if isinstance(value, (int, float))},
        )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Narrator reply uses a non-finite number: {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"Narrator reply uses a non-finite number: {text}")
    return value


def _parse_json_object(content: str) -> Dict[str, Any]:
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    start, end = text.find("{"), text.rfind("}")
    if start < 0 or end < start:
        raise ValueError("Narrator reply is not a JSON object")
    try:
        parsed = json.loads(text[start : end + 1], parse_float=_finite_float, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Narrator reply is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Narrator reply is not a JSON object")
    return parsed
