import copy
from typing import Dict, List, Optional

from taleforge.domain.models.campaign import Campaign, CampaignState, utc_now
from taleforge.domain.models.character import Character, CharacterClass, Race
from taleforge.domain.models.game_event import EventType, GameEvent
from taleforge.domain.repositories import (
    CampaignRepository,
    CatalogEntry,
    CatalogKind,
    CatalogRepository,
    CharacterRepository,
    GameEventRepository,
    InventoryRepository,
    Operation,
    catalog_score,
)
from taleforge.infrastructure.db.seed_catalog import SeedCatalog, build_seed_catalog


class InMemoryCampaignRepository(CampaignRepository):
    def __init__(self) -> None:
        self._campaigns: Dict[int, Campaign] = {}
        self._next_id = 1

    def get(self, campaign_id: int) -> Optional[Campaign]:
        row = self._campaigns.get(int(campaign_id))
        return copy.deepcopy(row) if row else None

    def list_for_account(self, account_id: int) -> List[Campaign]:
        rows = [row for row in self._campaigns.values() if int(row.account_id) == int(account_id)]
        return [copy.deepcopy(row) for row in sorted(rows, key=lambda row: int(row.id or 0))]

    def create(self, campaign: Campaign) -> Campaign:
        campaign.id = self._next_id
        self._next_id += 1
        self._campaigns[campaign.id] = copy.deepcopy(campaign)
        return campaign

    def set_state(self, campaign_id: int, state: CampaignState) -> None:
        row = self._campaigns.get(int(campaign_id))
        if row is None:
            raise KeyError(f"Campaign {campaign_id} does not exist")
        row.state = state
        row.updated_at = utc_now()

    def delete(self, campaign_id: int) -> None:
        self._campaigns.pop(int(campaign_id), None)

    def build_create_operation(self, campaign: Campaign) -> Operation:
        def _operation(_session: object) -> None:
            self.create(campaign)

        return _operation

    def build_set_state_operation(self, campaign_id: int, state: CampaignState) -> Operation:
        def _operation(_session: object) -> None:
            self.set_state(campaign_id, state)

        return _operation

    def build_delete_operation(self, campaign_id: int) -> Operation:
        def _operation(_session: object) -> None:
            self.delete(campaign_id)

        return _operation


class InMemoryCharacterRepository(CharacterRepository):
    def __init__(self) -> None:
        self._characters: Dict[int, Character] = {}
        self._next_id = 1

    def get(self, character_id: int) -> Optional[Character]:
        row = self._characters.get(int(character_id))
        return copy.deepcopy(row) if row else None

    def get_by_campaign(self, campaign_id: int) -> Optional[Character]:
        for row in self._characters.values():
            if row.campaign_id is not None and int(row.campaign_id) == int(campaign_id):
                return copy.deepcopy(row)
        return None

    def create(self, character: Character, campaign_id: int) -> Character:
        if self.get_by_campaign(campaign_id) is not None:
            raise ValueError(f"Campaign {campaign_id} already has a character")
        character.id = self._next_id
        character.campaign_id = int(campaign_id)
        self._next_id += 1
        self._characters[character.id] = copy.deepcopy(character)
        return character

    def save(self, character: Character) -> None:
        if character.id is None or int(character.id) not in self._characters:
            raise KeyError(f"Character {character.id} does not exist")
        self._characters[int(character.id)] = copy.deepcopy(character)

    def build_create_operation(self, character: Character, campaign: Campaign) -> Operation:
        def _operation(_session: object) -> None:
            if campaign.id is None:
                raise ValueError("Campaign must be created before its character")
            self.create(character, int(campaign.id))

        return _operation

    def build_save_operation(self, character: Character) -> Operation:
        staged = copy.deepcopy(character)

        def _operation(_session: object) -> None:
            self.save(staged)

        return _operation

    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        def _operation(_session: object) -> None:
            doomed = [key for key, row in self._characters.items() if int(row.campaign_id or 0) == int(campaign_id)]
            for key in doomed:
                del self._characters[key]

        return _operation


class InMemoryInventoryRepository(InventoryRepository):
    def __init__(self) -> None:
        self._rows: Dict[int, List[int]] = {}

    def list_item_ids(self, character_id: int) -> List[int]:
        return list(self._rows.get(int(character_id), []))

    def add(self, character_id: int, item_id: int) -> None:
        self._rows.setdefault(int(character_id), []).append(int(item_id))

    def remove_one(self, character_id: int, item_id: int) -> None:
        rows = self._rows.get(int(character_id), [])
        if int(item_id) not in rows:
            raise KeyError(f"Character {character_id} does not hold item {item_id}")
        rows.remove(int(item_id))

    def build_add_operation(self, character_id: int, item_id: int) -> Operation:
        def _operation(_session: object) -> None:
            self.add(character_id, item_id)

        return _operation

    def build_remove_one_operation(self, character_id: int, item_id: int) -> Operation:
        def _operation(_session: object) -> None:
            self.remove_one(character_id, item_id)

        return _operation

    def build_clear_operation(self, character_id: int) -> Operation:
        def _operation(_session: object) -> None:
            self._rows.pop(int(character_id), None)

        return _operation


class InMemoryGameEventRepository(GameEventRepository):
    def __init__(self) -> None:
        self._events: Dict[int, List[GameEvent]] = {}
        self._next_id = 1

    def list_recent(self, campaign_id: int, limit: int) -> List[GameEvent]:
        rows = sorted(self._events.get(int(campaign_id), []), key=lambda row: row.event_number, reverse=True)
        return [copy.deepcopy(row) for row in rows[: max(0, int(limit))]]

    def list_all(self, campaign_id: int) -> List[GameEvent]:
        rows = sorted(self._events.get(int(campaign_id), []), key=lambda row: row.event_number)
        return [copy.deepcopy(row) for row in rows]

    def count_by_type(self, campaign_id: int, event_type: EventType) -> int:
        return sum(1 for row in self._events.get(int(campaign_id), []) if row.event_type is event_type)

    def append(self, event: GameEvent) -> GameEvent:
        rows = self._events.setdefault(int(event.campaign_id), [])
        if any(row.event_number == event.event_number for row in rows):
            raise ValueError(f"Event number {event.event_number} already logged for campaign {event.campaign_id}")
        stored = copy.deepcopy(event)
        stored.id = self._next_id
        self._next_id += 1
        rows.append(stored)
        event.id = stored.id
        return event

    def build_append_operation(self, event: GameEvent) -> Operation:
        def _operation(_session: object) -> None:
            self.append(event)

        return _operation

    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        def _operation(_session: object) -> None:
            self._events.pop(int(campaign_id), None)

        return _operation


class InMemoryCatalogRepository(CatalogRepository):
    def __init__(self, seed: SeedCatalog | None = None) -> None:
        seed = seed or build_seed_catalog()
        self._races: Dict[int, Race] = {row.id: row for row in seed.races}
        self._classes: Dict[int, CharacterClass] = {row.id: row for row in seed.classes}
        self._tables: Dict[CatalogKind, Dict[int, CatalogEntry]] = {
            CatalogKind.ITEM: {row.id: row for row in seed.items},
            CatalogKind.WEAPON: {row.id: row for row in seed.weapons},
            CatalogKind.ARMOUR: {row.id: row for row in seed.armours},
            CatalogKind.SHIELD: {row.id: row for row in seed.shields},
            CatalogKind.ENEMY: {row.id: row for row in seed.enemies},
        }

    def get_race(self, race_id: int) -> Optional[Race]:
        return self._races.get(int(race_id))

    def list_races(self) -> List[Race]:
        return [self._races[key] for key in sorted(self._races)]

    def get_class(self, class_id: int) -> Optional[CharacterClass]:
        return self._classes.get(int(class_id))

    def list_classes(self) -> List[CharacterClass]:
        return [self._classes[key] for key in sorted(self._classes)]

    def get(self, kind: CatalogKind, entry_id: int) -> Optional[CatalogEntry]:
        return self._tables[kind].get(int(entry_id))

    def list_in_range(self, kind: CatalogKind, low: int, high: int) -> List[CatalogEntry]:
        rows = [row for row in self._tables[kind].values() if int(low) <= catalog_score(row) <= int(high)]
        return sorted(rows, key=lambda row: (catalog_score(row), row.id))

    def nearest(self, kind: CatalogKind, target: int) -> Optional[CatalogEntry]:
        rows = list(self._tables[kind].values())
        if not rows:
            return None
        return min(rows, key=lambda row: (abs(catalog_score(row) - int(target)), catalog_score(row), row.id))
