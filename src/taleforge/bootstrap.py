import logging
import os
import socket
from urllib.parse import urlparse

from taleforge.application.services.balance_tables import BalanceConfig
from taleforge.application.services.event_bus import EventBus
from taleforge.application.services.game_service import GameService
from taleforge.application.services.narrative import GuardedNarrativeGenerator, NarrativeGenerator
from taleforge.application.services.narrative_flavour import FlavourNarrativeGenerator
from taleforge.infrastructure.db.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from taleforge.infrastructure.db.inmemory.repos import (
    InMemoryCampaignRepository,
    InMemoryCatalogRepository,
    InMemoryCharacterRepository,
    InMemoryGameEventRepository,
    InMemoryInventoryRepository,
)


logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _looks_like_local_mysql_unreachable(database_url: str) -> bool:
    if not database_url:
        return False

    parsed = urlparse(database_url)
    if not parsed.scheme.startswith("mysql"):
        return False

    host = (parsed.hostname or "").strip().lower()
    if host not in {"localhost", "127.0.0.1", "::1"}:
        return False

    port = parsed.port or 3306
    timeout = float(os.getenv("RPG_DB_CONNECT_PROBE_TIMEOUT_S", "0.35"))

    try:
        with socket.create_connection((host, port), timeout=timeout):
            return False
    except OSError:
        return True


def _build_narrator() -> NarrativeGenerator:
    fallback = FlavourNarrativeGenerator()
    if not _env_flag("RPG_LLM_ENABLED", "0"):
        return fallback

    from taleforge.infrastructure.llm_narrative_client import LlmNarrativeClient

    balance = BalanceConfig.from_env()
    return GuardedNarrativeGenerator(
        LlmNarrativeClient.from_env(),
        fallback,
        default_stat_boost=balance.default_stat_boost,
    )


def _log_domain_event(event: object) -> None:
    logger.debug("Domain event published", extra={"event_type": type(event).__name__, "payload": vars(event)})


def _build_event_bus() -> EventBus:
    event_bus = EventBus()
    event_bus.subscribe(None, _log_domain_event, priority=1000)
    return event_bus


def _build_inmemory_game_service() -> GameService:
    campaign_repo = InMemoryCampaignRepository()
    character_repo = InMemoryCharacterRepository()
    inventory_repo = InMemoryInventoryRepository()
    event_repo = InMemoryGameEventRepository()
    catalog_repo = InMemoryCatalogRepository()

    return GameService(
        campaign_repo=campaign_repo,
        character_repo=character_repo,
        inventory_repo=inventory_repo,
        event_repo=event_repo,
        catalog_repo=catalog_repo,
        atomic_persistor=create_inmemory_atomic_persistor(campaign_repo, character_repo, inventory_repo, event_repo),
        narrator=_build_narrator(),
        config=BalanceConfig.from_env(),
        event_bus=_build_event_bus(),
        accept_client_dice=_env_flag("RPG_ACCEPT_CLIENT_DICE", "1"),
    )


def _build_sql_game_service() -> GameService:
    # Imported lazily so the engine is only created when RPG_DATABASE_URL is set
    from taleforge.infrastructure.db.sql.atomic_persistence import save_operations_atomic
    from taleforge.infrastructure.db.sql.connection import engine
    from taleforge.infrastructure.db.sql.migrate import apply_schema, seed_catalog
    from taleforge.infrastructure.db.sql.repos import (
        SqlCampaignRepository,
        SqlCatalogRepository,
        SqlCharacterRepository,
        SqlGameEventRepository,
        SqlInventoryRepository,
    )

    # Doubles as the connectivity probe so fallback happens before play starts.
    if _env_flag("RPG_DB_AUTO_MIGRATE", "1"):
        try:
            apply_schema(engine)
            seed_catalog(engine)
        except Exception as exc:
            raise RuntimeError(f"Database bootstrap failed: {exc}") from exc

    return GameService(
        campaign_repo=SqlCampaignRepository(),
        character_repo=SqlCharacterRepository(),
        inventory_repo=SqlInventoryRepository(),
        event_repo=SqlGameEventRepository(),
        catalog_repo=SqlCatalogRepository(),
        atomic_persistor=save_operations_atomic,
        narrator=_build_narrator(),
        config=BalanceConfig.from_env(),
        event_bus=_build_event_bus(),
        accept_client_dice=_env_flag("RPG_ACCEPT_CLIENT_DICE", "1"),
    )


def create_game_service() -> GameService:
    database_url = os.getenv("RPG_DATABASE_URL")
    if database_url:
        if _looks_like_local_mysql_unreachable(database_url):
            logger.warning("MySQL appears unreachable, falling back to in-memory.")
            return _build_inmemory_game_service()
        try:
            return _build_sql_game_service()
        except RuntimeError as exc:
            logger.warning("Database unavailable, falling back to in-memory. Reason: %s", exc)

    return _build_inmemory_game_service()
