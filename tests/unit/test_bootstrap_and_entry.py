import io
import os
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import taleforge.__main__ as runtime_main
from taleforge import bootstrap
from taleforge.application.services.narrative import GuardedNarrativeGenerator
from taleforge.application.services.narrative_flavour import FlavourNarrativeGenerator
from taleforge.infrastructure.db.inmemory.repos import InMemoryCampaignRepository


class BootstrapTests(unittest.TestCase):
    def test_without_database_url_uses_inmemory_repositories(self) -> None:
        with mock.patch.dict(os.environ, {"RPG_LLM_ENABLED": "0"}, clear=False):
            os.environ.pop("RPG_DATABASE_URL", None)
            service = bootstrap.create_game_service()

        self.assertIsInstance(service.campaign_repo, InMemoryCampaignRepository)
        self.assertIsInstance(service.narrator, FlavourNarrativeGenerator)
        self.assertTrue(service.accept_client_dice)

    def test_llm_flag_wraps_client_in_guard(self) -> None:
        env = {"RPG_LLM_ENABLED": "1", "RPG_LLM_BASE_URL": "http://localhost:9/v1"}
        with mock.patch.dict(os.environ, env, clear=False):
            narrator = bootstrap._build_narrator()

        self.assertIsInstance(narrator, GuardedNarrativeGenerator)
        self.assertIsInstance(narrator.fallback, FlavourNarrativeGenerator)
        narrator.primary.close()

    def test_balance_and_dice_settings_come_from_env(self) -> None:
        env = {"RPG_BALANCE_INVENTORY_CAPACITY": "4", "RPG_ACCEPT_CLIENT_DICE": "0", "RPG_LLM_ENABLED": "0"}
        with mock.patch.dict(os.environ, env, clear=False):
            service = bootstrap._build_inmemory_game_service()

        self.assertEqual(4, service.config.inventory_capacity)
        self.assertFalse(service.accept_client_dice)

    def test_unreachable_local_mysql_falls_back(self) -> None:
        env = {"RPG_DATABASE_URL": "mysql+mysqlconnector://root@127.0.0.1:3307/taleforge", "RPG_LLM_ENABLED": "0"}
        with mock.patch.dict(os.environ, env, clear=False), mock.patch.object(
            bootstrap, "_looks_like_local_mysql_unreachable", return_value=True
        ), mock.patch.object(bootstrap, "_build_sql_game_service") as sql_builder:
            service = bootstrap.create_game_service()

        sql_builder.assert_not_called()
        self.assertIsInstance(service.campaign_repo, InMemoryCampaignRepository)

    def test_database_bootstrap_failure_falls_back(self) -> None:
        env = {"RPG_DATABASE_URL": "sqlite:///unused.db", "RPG_LLM_ENABLED": "0"}
        with mock.patch.dict(os.environ, env, clear=False), mock.patch.object(
            bootstrap, "_build_sql_game_service", side_effect=RuntimeError("Database bootstrap failed: locked")
        ), self.assertLogs("taleforge.bootstrap", level="WARNING") as logs:
            service = bootstrap.create_game_service()

        self.assertIsInstance(service.campaign_repo, InMemoryCampaignRepository)
        self.assertIn("falling back to in-memory", logs.output[0])

    def test_remote_mysql_is_not_probed(self) -> None:
        self.assertFalse(bootstrap._looks_like_local_mysql_unreachable("mysql+mysqlconnector://db.internal:3306/x"))
        self.assertFalse(bootstrap._looks_like_local_mysql_unreachable("sqlite:///taleforge.db"))


class MainEntryTests(unittest.TestCase):
    def test_main_handles_runtime_exceptions_without_traceback(self) -> None:
        output = io.StringIO()
        with mock.patch.object(runtime_main, "create_game_service", side_effect=RuntimeError("db unavailable")), mock.patch(
            "sys.stdout", output
        ), mock.patch.object(runtime_main, "load_dotenv"), mock.patch.object(runtime_main, "_configure_logging"):
            code = runtime_main.main()

        text = output.getvalue()
        self.assertEqual(1, code)
        self.assertIn("An unexpected error occurred", text)
        self.assertIn("db unavailable", text)
        self.assertIn("Help:", text)
        self.assertNotIn("Traceback", text)

    def test_main_handles_keyboard_interrupt(self) -> None:
        output = io.StringIO()
        with mock.patch.object(runtime_main, "create_game_service", side_effect=KeyboardInterrupt), mock.patch(
            "sys.stdout", output
        ), mock.patch.object(runtime_main, "load_dotenv"), mock.patch.object(runtime_main, "_configure_logging"):
            code = runtime_main.main()

        self.assertEqual(0, code)
        self.assertIn("Session ended", output.getvalue())

    def test_main_passes_account_from_env(self) -> None:
        service = object()
        with mock.patch.dict(os.environ, {"RPG_ACCOUNT_ID": "9"}, clear=False), mock.patch.object(
            runtime_main, "create_game_service", return_value=service
        ), mock.patch.object(runtime_main, "main_menu") as menu, mock.patch.object(
            runtime_main, "load_dotenv"
        ), mock.patch.object(runtime_main, "_configure_logging"):
            runtime_main.main()

        menu.assert_called_once_with(service, account_id=9)


if __name__ == "__main__":
    unittest.main()
