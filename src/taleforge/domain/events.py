from dataclasses import dataclass


@dataclass
class CampaignStateChanged:
    campaign_id: int
    from_state: str
    to_state: str
    event_number: int


@dataclass
class CombatConcluded:
    campaign_id: int
    enemy_name: str
    enemy_difficulty: int
    outcome: str
    rounds: int


@dataclass
class ItemAcquired:
    campaign_id: int
    character_id: int
    item_kind: str
    item_id: int
    item_name: str
    rarity: int
    source: str
