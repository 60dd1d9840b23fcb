import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from taleforge.bootstrap import create_game_service
from taleforge.presentation.console import main_menu


def _configure_logging() -> None:
    level_name = os.getenv("RPG_LOG_LEVEL", "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_help_surface() -> None:
    print("\nHelp:")
    print("- Pick a numbered choice and press ENTER; type q to go back.")
    print("- Startup issues: verify RPG_DATABASE_URL or unset it to use in-memory mode.")
    print("- Narration: set RPG_LLM_ENABLED=1 and RPG_LLM_BASE_URL to use a language model.")


def main() -> int:
    load_dotenv()
    _configure_logging()
    try:
        game_service = create_game_service()
        main_menu(game_service, account_id=int(os.getenv("RPG_ACCOUNT_ID", "1")))
    except KeyboardInterrupt:
        print("\nSession ended.")
    except Exception as exc:
        logging.getLogger(__name__).exception("Playtest session crashed")
        print("An unexpected error occurred. The game closed safely.")
        print(f"Reason: {exc}")
        _print_help_surface()
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
