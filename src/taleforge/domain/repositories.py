from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from enum import Enum
from typing import List, Optional

from taleforge.domain.models.campaign import Campaign, CampaignState
from taleforge.domain.models.character import Character, CharacterClass, Race
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.game_event import EventType, GameEvent
from taleforge.domain.models.item import Armour, Item, Shield, Weapon


Operation = Callable[[object], None]
AtomicPersistor = Callable[[Sequence[Operation]], None]


class CatalogKind(str, Enum):
    ITEM = "item"
    WEAPON = "weapon"
    ARMOUR = "armour"
    SHIELD = "shield"
    ENEMY = "enemy"


CatalogEntry = Item | Weapon | Armour | Shield | Enemy


def catalog_score(entry: CatalogEntry) -> int:
    """Rarity for loot, difficulty for enemies."""
    if isinstance(entry, Enemy):
        return int(entry.difficulty)
    return int(entry.rarity)


class CampaignRepository(ABC):
    @abstractmethod
    def get(self, campaign_id: int) -> Optional[Campaign]:
        raise NotImplementedError

    @abstractmethod
    def list_for_account(self, account_id: int) -> List[Campaign]:
        raise NotImplementedError

    @abstractmethod
    def build_create_operation(self, campaign: Campaign) -> Operation:
        """Insert ``campaign`` and write the assigned id back onto it."""
        raise NotImplementedError

    @abstractmethod
    def build_set_state_operation(self, campaign_id: int, state: CampaignState) -> Operation:
        raise NotImplementedError

    @abstractmethod
    def build_delete_operation(self, campaign_id: int) -> Operation:
        raise NotImplementedError


class CharacterRepository(ABC):
    @abstractmethod
    def get(self, character_id: int) -> Optional[Character]:
        raise NotImplementedError

    @abstractmethod
    def get_by_campaign(self, campaign_id: int) -> Optional[Character]:
        raise NotImplementedError

    @abstractmethod
    def build_create_operation(self, character: Character, campaign: Campaign) -> Operation:
        """Insert ``character`` under ``campaign.id`` as known at execution time."""
        raise NotImplementedError

    @abstractmethod
    def build_save_operation(self, character: Character) -> Operation:
        raise NotImplementedError

    @abstractmethod
    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        raise NotImplementedError


class InventoryRepository(ABC):
    """One row per held item; stacks are repeated rows with the same item id."""

    @abstractmethod
    def list_item_ids(self, character_id: int) -> List[int]:
        raise NotImplementedError

    def count(self, character_id: int) -> int:
        return len(self.list_item_ids(character_id))

    @abstractmethod
    def build_add_operation(self, character_id: int, item_id: int) -> Operation:
        raise NotImplementedError

    @abstractmethod
    def build_remove_one_operation(self, character_id: int, item_id: int) -> Operation:
        raise NotImplementedError

    @abstractmethod
    def build_clear_operation(self, character_id: int) -> Operation:
        raise NotImplementedError


class GameEventRepository(ABC):
    @abstractmethod
    def list_recent(self, campaign_id: int, limit: int) -> List[GameEvent]:
        """Newest first, ordered by event number."""
        raise NotImplementedError

    @abstractmethod
    def list_all(self, campaign_id: int) -> List[GameEvent]:
        """Oldest first."""
        raise NotImplementedError

    @abstractmethod
    def count_by_type(self, campaign_id: int, event_type: EventType) -> int:
        raise NotImplementedError

    def latest(self, campaign_id: int) -> Optional[GameEvent]:
        rows = self.list_recent(campaign_id, 1)
        return rows[0] if rows else None

    @abstractmethod
    def build_append_operation(self, event: GameEvent) -> Operation:
        raise NotImplementedError

    @abstractmethod
    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        raise NotImplementedError


class CatalogRepository(ABC):
    @abstractmethod
    def get_race(self, race_id: int) -> Optional[Race]:
        raise NotImplementedError

    @abstractmethod
    def list_races(self) -> List[Race]:
        raise NotImplementedError

    @abstractmethod
    def get_class(self, class_id: int) -> Optional[CharacterClass]:
        raise NotImplementedError

    @abstractmethod
    def list_classes(self) -> List[CharacterClass]:
        raise NotImplementedError

    @abstractmethod
    def get(self, kind: CatalogKind, entry_id: int) -> Optional[CatalogEntry]:
        raise NotImplementedError

    def get_many(self, kind: CatalogKind, entry_ids: Sequence[int]) -> List[CatalogEntry]:
        rows: List[CatalogEntry] = []
        for entry_id in entry_ids:
            row = self.get(kind, entry_id)
            if row is not None:
                rows.append(row)
        return rows

    @abstractmethod
    def list_in_range(self, kind: CatalogKind, low: int, high: int) -> List[CatalogEntry]:
        raise NotImplementedError

    @abstractmethod
    def nearest(self, kind: CatalogKind, target: int) -> Optional[CatalogEntry]:
        """Closest entry by score, or None only when the table is empty."""
        raise NotImplementedError
