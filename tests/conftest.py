import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

_OFFLINE_SUITES = ("tests/e2e/", "tests/integration/")
_LOCAL_HOSTS = ("http://127.0.0.1", "http://localhost", "https://127.0.0.1", "https://localhost")


def _suite_path(request: pytest.FixtureRequest) -> str:
    return str(request.node.fspath).replace("\\", "/")


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture(autouse=True)
def fresh_circuit_breakers():
    from taleforge.infrastructure.resilient_http import reset_circuit_breakers

    reset_circuit_breakers()
    yield
    reset_circuit_breakers()


@pytest.fixture(autouse=True)
def offline_narrator_env(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if "tests/e2e/" not in _suite_path(request):
        return

    monkeypatch.setenv("RPG_LLM_ENABLED", "0")
    monkeypatch.setenv("RPG_LLM_RETRIES", "0")
    monkeypatch.setenv("RPG_LLM_TIMEOUT_S", "0.05")
    monkeypatch.delenv("RPG_DATABASE_URL", raising=False)
    for name in ("RPG_BALANCE_INVENTORY_CAPACITY", "RPG_ACCEPT_CLIENT_DICE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def local_http_only(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if not any(suite in _suite_path(request) for suite in _OFFLINE_SUITES):
        return

    import httpx

    passthrough = httpx.Client.send

    def _send(self, request, *args, **kwargs):
        if str(request.url).startswith(_LOCAL_HOSTS):
            return passthrough(self, request, *args, **kwargs)
        raise RuntimeError(f"Outbound HTTP is blocked in offline suites: {request.url}")

    monkeypatch.setattr(httpx.Client, "send", _send)
