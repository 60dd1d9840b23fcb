import json
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import text

from taleforge.domain.models.campaign import Campaign, CampaignState, utc_now
from taleforge.domain.models.character import Character, CharacterClass, Race
from taleforge.domain.models.enemy import Enemy
from taleforge.domain.models.game_event import EventType, GameEvent
from taleforge.domain.models.item import Armour, Item, Shield, Weapon
from taleforge.domain.repositories import (
    CampaignRepository,
    CatalogEntry,
    CatalogKind,
    CatalogRepository,
    CharacterRepository,
    GameEventRepository,
    InventoryRepository,
    Operation,
)
from .connection import SessionLocal


def _in_session(operation: Operation) -> Operation:
    """Let an operation run standalone by opening its own transaction when given no session."""

    def _wrapped(session) -> None:
        if session is None:
            with SessionLocal.begin() as internal_session:
                operation(internal_session)
            return
        operation(session)

    return _wrapped


def _to_iso(value: datetime) -> str:
    return value.isoformat()


def _from_iso(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return utc_now()
    return datetime.fromisoformat(str(value))


def _parse_event_data(raw_value) -> Dict[str, object]:
    if raw_value is None:
        return {}
    if isinstance(raw_value, dict):
        return raw_value
    text_value = str(raw_value).strip()
    if not text_value:
        return {}
    parsed = json.loads(text_value)
    return parsed if isinstance(parsed, dict) else {"value": parsed}


def _row_to_campaign(row) -> Campaign:
    return Campaign(
        id=row.id,
        account_id=row.account_id,
        name=row.name,
        description=row.description or "",
        state=CampaignState(row.state),
        created_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
    )


def _row_to_character(row) -> Character:
    return Character(
        id=row.id,
        campaign_id=row.campaign_id,
        name=row.name,
        race_id=row.race_id,
        class_id=row.class_id,
        current_health=row.current_health,
        max_health=row.max_health,
        attack=row.attack,
        defense=row.defense,
        weapon_id=row.weapon_id,
        armour_id=row.armour_id,
        shield_id=row.shield_id,
        sprite_path=row.sprite_path,
    )


def _row_to_event(row) -> GameEvent:
    return GameEvent(
        id=row.id,
        campaign_id=row.campaign_id,
        message=row.message,
        event_number=row.event_number,
        event_type=EventType.parse(row.event_type),
        event_data=_parse_event_data(row.event_data),
        created_at=_from_iso(row.created_at),
    )


class SqlCampaignRepository(CampaignRepository):
    _COLUMNS = "id, account_id, name, description, state, created_at, updated_at"

    def get(self, campaign_id: int) -> Optional[Campaign]:
        with SessionLocal() as session:
            row = session.execute(
                text(f"SELECT {self._COLUMNS} FROM campaigns WHERE id = :id"),
                {"id": int(campaign_id)},
            ).first()
            return _row_to_campaign(row) if row else None

    def list_for_account(self, account_id: int) -> List[Campaign]:
        with SessionLocal() as session:
            rows = session.execute(
                text(f"SELECT {self._COLUMNS} FROM campaigns WHERE account_id = :account ORDER BY id"),
                {"account": int(account_id)},
            ).all()
            return [_row_to_campaign(row) for row in rows]

    def build_create_operation(self, campaign: Campaign) -> Operation:
        def _operation(session) -> None:
            result = session.execute(
                text(
                    """
                    INSERT INTO campaigns (account_id, name, description, state, created_at, updated_at)
                    VALUES (:account, :name, :description, :state, :created_at, :updated_at)
                    """
                ),
                {
                    "account": int(campaign.account_id),
                    "name": campaign.name,
                    "description": campaign.description,
                    "state": campaign.state.value,
                    "created_at": _to_iso(campaign.created_at),
                    "updated_at": _to_iso(campaign.updated_at),
                },
            )
            campaign.id = result.lastrowid

        return _in_session(_operation)

    def build_set_state_operation(self, campaign_id: int, state: CampaignState) -> Operation:
        def _operation(session) -> None:
            result = session.execute(
                text("UPDATE campaigns SET state = :state, updated_at = :updated_at WHERE id = :id"),
                {"state": state.value, "updated_at": _to_iso(utc_now()), "id": int(campaign_id)},
            )
            if result.rowcount == 0:
                raise KeyError(f"Campaign {campaign_id} does not exist")

        return _in_session(_operation)

    def build_delete_operation(self, campaign_id: int) -> Operation:
        def _operation(session) -> None:
            session.execute(text("DELETE FROM campaigns WHERE id = :id"), {"id": int(campaign_id)})

        return _in_session(_operation)


class SqlCharacterRepository(CharacterRepository):
    _COLUMNS = (
        "id, campaign_id, race_id, class_id, name, current_health, max_health, attack, defense, "
        "weapon_id, armour_id, shield_id, sprite_path"
    )

    def get(self, character_id: int) -> Optional[Character]:
        with SessionLocal() as session:
            row = session.execute(
                text(f"SELECT {self._COLUMNS} FROM characters WHERE id = :id"),
                {"id": int(character_id)},
            ).first()
            return _row_to_character(row) if row else None

    def get_by_campaign(self, campaign_id: int) -> Optional[Character]:
        with SessionLocal() as session:
            row = session.execute(
                text(f"SELECT {self._COLUMNS} FROM characters WHERE campaign_id = :campaign"),
                {"campaign": int(campaign_id)},
            ).first()
            return _row_to_character(row) if row else None

    def build_create_operation(self, character: Character, campaign: Campaign) -> Operation:
        def _operation(session) -> None:
            if campaign.id is None:
                raise ValueError("Campaign must be created before its character")
            result = session.execute(
                text(
                    """
                    INSERT INTO characters (campaign_id, race_id, class_id, name, current_health, max_health,
                                            attack, defense, weapon_id, armour_id, shield_id, sprite_path)
                    VALUES (:campaign, :race, :class_id, :name, :current_health, :max_health,
                            :attack, :defense, :weapon, :armour, :shield, :sprite)
                    """
                ),
                {
                    "campaign": int(campaign.id),
                    "race": int(character.race_id),
                    "class_id": int(character.class_id),
                    "name": character.name,
                    "current_health": int(character.current_health),
                    "max_health": int(character.max_health),
                    "attack": int(character.attack),
                    "defense": int(character.defense),
                    "weapon": character.weapon_id,
                    "armour": character.armour_id,
                    "shield": character.shield_id,
                    "sprite": character.sprite_path,
                },
            )
            character.id = result.lastrowid
            character.campaign_id = int(campaign.id)

        return _in_session(_operation)

    def build_save_operation(self, character: Character) -> Operation:
        values = {
            "id": character.id,
            "name": character.name,
            "current_health": int(character.current_health),
            "max_health": int(character.max_health),
            "attack": int(character.attack),
            "defense": int(character.defense),
            "weapon": character.weapon_id,
            "armour": character.armour_id,
            "shield": character.shield_id,
            "sprite": character.sprite_path,
        }

        def _operation(session) -> None:
            if values["id"] is None:
                raise KeyError("Character has no id")
            result = session.execute(
                text(
                    """
                    UPDATE characters
                    SET name = :name,
                        current_health = :current_health,
                        max_health = :max_health,
                        attack = :attack,
                        defense = :defense,
                        weapon_id = :weapon,
                        armour_id = :armour,
                        shield_id = :shield,
                        sprite_path = :sprite
                    WHERE id = :id
                    """
                ),
                values,
            )
            if result.rowcount == 0:
                raise KeyError(f"Character {values['id']} does not exist")

        return _in_session(_operation)

    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        def _operation(session) -> None:
            session.execute(
                text(
                    """
                    DELETE FROM character_items
                    WHERE character_id IN (SELECT id FROM characters WHERE campaign_id = :campaign)
                    """
                ),
                {"campaign": int(campaign_id)},
            )
            session.execute(text("DELETE FROM characters WHERE campaign_id = :campaign"), {"campaign": int(campaign_id)})

        return _in_session(_operation)


class SqlInventoryRepository(InventoryRepository):
    def list_item_ids(self, character_id: int) -> List[int]:
        with SessionLocal() as session:
            rows = session.execute(
                text("SELECT item_id FROM character_items WHERE character_id = :cid ORDER BY id"),
                {"cid": int(character_id)},
            ).all()
            return [int(row.item_id) for row in rows]

    def count(self, character_id: int) -> int:
        with SessionLocal() as session:
            return int(
                session.execute(
                    text("SELECT COUNT(*) FROM character_items WHERE character_id = :cid"),
                    {"cid": int(character_id)},
                ).scalar_one()
            )

    def build_add_operation(self, character_id: int, item_id: int) -> Operation:
        def _operation(session) -> None:
            session.execute(
                text("INSERT INTO character_items (character_id, item_id) VALUES (:cid, :item)"),
                {"cid": int(character_id), "item": int(item_id)},
            )

        return _in_session(_operation)

    def build_remove_one_operation(self, character_id: int, item_id: int) -> Operation:
        def _operation(session) -> None:
            row = session.execute(
                text(
                    """
                    SELECT id FROM character_items
                    WHERE character_id = :cid AND item_id = :item
                    ORDER BY id
                    LIMIT 1
                    """
                ),
                {"cid": int(character_id), "item": int(item_id)},
            ).first()
            if row is None:
                raise KeyError(f"Character {character_id} does not hold item {item_id}")
            session.execute(text("DELETE FROM character_items WHERE id = :id"), {"id": int(row.id)})

        return _in_session(_operation)

    def build_clear_operation(self, character_id: int) -> Operation:
        def _operation(session) -> None:
            session.execute(text("DELETE FROM character_items WHERE character_id = :cid"), {"cid": int(character_id)})

        return _in_session(_operation)


class SqlGameEventRepository(GameEventRepository):
    _COLUMNS = "id, campaign_id, message, event_number, event_type, event_data, created_at"

    def list_recent(self, campaign_id: int, limit: int) -> List[GameEvent]:
        if int(limit) <= 0:
            return []
        with SessionLocal() as session:
            rows = session.execute(
                text(
                    f"""
                    SELECT {self._COLUMNS} FROM logs
                    WHERE campaign_id = :campaign
                    ORDER BY event_number DESC
                    LIMIT :limit
                    """
                ),
                {"campaign": int(campaign_id), "limit": int(limit)},
            ).all()
            return [_row_to_event(row) for row in rows]

    def list_all(self, campaign_id: int) -> List[GameEvent]:
        with SessionLocal() as session:
            rows = session.execute(
                text(f"SELECT {self._COLUMNS} FROM logs WHERE campaign_id = :campaign ORDER BY event_number"),
                {"campaign": int(campaign_id)},
            ).all()
            return [_row_to_event(row) for row in rows]

    def count_by_type(self, campaign_id: int, event_type: EventType) -> int:
        with SessionLocal() as session:
            return int(
                session.execute(
                    text("SELECT COUNT(*) FROM logs WHERE campaign_id = :campaign AND event_type = :event_type"),
                    {"campaign": int(campaign_id), "event_type": event_type.value},
                ).scalar_one()
            )

    def build_append_operation(self, event: GameEvent) -> Operation:
        def _operation(session) -> None:
            result = session.execute(
                text(
                    """
                    INSERT INTO logs (campaign_id, message, event_number, event_type, event_data, created_at)
                    VALUES (:campaign, :message, :event_number, :event_type, :event_data, :created_at)
                    """
                ),
                {
                    "campaign": int(event.campaign_id),
                    "message": event.message,
                    "event_number": int(event.event_number),
                    "event_type": event.event_type.value,
                    "event_data": json.dumps(event.event_data, sort_keys=True),
                    "created_at": _to_iso(event.created_at),
                },
            )
            event.id = result.lastrowid

        return _in_session(_operation)

    def build_delete_for_campaign_operation(self, campaign_id: int) -> Operation:
        def _operation(session) -> None:
            session.execute(text("DELETE FROM logs WHERE campaign_id = :campaign"), {"campaign": int(campaign_id)})

        return _in_session(_operation)


# kind -> (table, score column, select list)
_CATALOG_TABLES = {
    CatalogKind.ITEM: ("items", "rarity", "id, name, rarity, stat_modified, stat_value, description, sprite_path"),
    CatalogKind.WEAPON: ("weapons", "rarity", "id, name, rarity, attack, description, sprite_path"),
    CatalogKind.ARMOUR: ("armours", "rarity", "id, name, rarity, health, description, sprite_path"),
    CatalogKind.SHIELD: ("shields", "rarity", "id, name, rarity, defense, description, sprite_path"),
    CatalogKind.ENEMY: ("enemies", "difficulty", "id, name, difficulty, health, attack, defense, sprite_path"),
}


def _row_to_entry(kind: CatalogKind, row) -> CatalogEntry:
    if kind is CatalogKind.ITEM:
        return Item(
            id=row.id,
            name=row.name,
            rarity=row.rarity,
            stat_modified=row.stat_modified,
            stat_value=row.stat_value,
            description=row.description or "",
            sprite_path=row.sprite_path,
        )
    if kind is CatalogKind.WEAPON:
        return Weapon(id=row.id, name=row.name, rarity=row.rarity, attack=row.attack, description=row.description or "", sprite_path=row.sprite_path)
    if kind is CatalogKind.ARMOUR:
        return Armour(id=row.id, name=row.name, rarity=row.rarity, health=row.health, description=row.description or "", sprite_path=row.sprite_path)
    if kind is CatalogKind.SHIELD:
        return Shield(id=row.id, name=row.name, rarity=row.rarity, defense=row.defense, description=row.description or "", sprite_path=row.sprite_path)
    return Enemy(
        id=row.id,
        name=row.name,
        difficulty=row.difficulty,
        health=row.health,
        attack=row.attack,
        defense=row.defense,
        sprite_path=row.sprite_path,
    )


class SqlCatalogRepository(CatalogRepository):
    def get_race(self, race_id: int) -> Optional[Race]:
        with SessionLocal() as session:
            row = session.execute(
                text("SELECT id, name, health, attack, defense, sprite_path FROM races WHERE id = :id"),
                {"id": int(race_id)},
            ).first()
            if row is None:
                return None
            return Race(id=row.id, name=row.name, vitality=row.health, attack=row.attack, defense=row.defense, sprite_path=row.sprite_path)

    def list_races(self) -> List[Race]:
        with SessionLocal() as session:
            rows = session.execute(text("SELECT id, name, health, attack, defense, sprite_path FROM races ORDER BY id")).all()
            return [
                Race(id=row.id, name=row.name, vitality=row.health, attack=row.attack, defense=row.defense, sprite_path=row.sprite_path)
                for row in rows
            ]

    def get_class(self, class_id: int) -> Optional[CharacterClass]:
        with SessionLocal() as session:
            row = session.execute(
                text("SELECT id, name, health, attack, defense, sprite_path FROM classes WHERE id = :id"),
                {"id": int(class_id)},
            ).first()
            if row is None:
                return None
            return CharacterClass(
                id=row.id, name=row.name, vitality=row.health, attack=row.attack, defense=row.defense, sprite_path=row.sprite_path
            )

    def list_classes(self) -> List[CharacterClass]:
        with SessionLocal() as session:
            rows = session.execute(text("SELECT id, name, health, attack, defense, sprite_path FROM classes ORDER BY id")).all()
            return [
                CharacterClass(
                    id=row.id, name=row.name, vitality=row.health, attack=row.attack, defense=row.defense, sprite_path=row.sprite_path
                )
                for row in rows
            ]

    def get(self, kind: CatalogKind, entry_id: int) -> Optional[CatalogEntry]:
        table, _score, columns = _CATALOG_TABLES[kind]
        with SessionLocal() as session:
            row = session.execute(text(f"SELECT {columns} FROM {table} WHERE id = :id"), {"id": int(entry_id)}).first()
            return _row_to_entry(kind, row) if row else None

    def list_in_range(self, kind: CatalogKind, low: int, high: int) -> List[CatalogEntry]:
        table, score, columns = _CATALOG_TABLES[kind]
        with SessionLocal() as session:
            rows = session.execute(
                text(f"SELECT {columns} FROM {table} WHERE {score} BETWEEN :low AND :high ORDER BY {score}, id"),
                {"low": int(low), "high": int(high)},
            ).all()
            return [_row_to_entry(kind, row) for row in rows]

    def nearest(self, kind: CatalogKind, target: int) -> Optional[CatalogEntry]:
        table, score, columns = _CATALOG_TABLES[kind]
        with SessionLocal() as session:
            row = session.execute(
                text(f"SELECT {columns} FROM {table} ORDER BY ABS({score} - :target), {score}, id LIMIT 1"),
                {"target": int(target)},
            ).first()
            return _row_to_entry(kind, row) if row else None
