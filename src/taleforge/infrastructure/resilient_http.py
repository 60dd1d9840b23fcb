import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import httpx


logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
MAX_RETRY_AFTER_SECONDS = 30.0


class CircuitOpenError(RuntimeError):
    pass


@dataclass
class _Breaker:
    failures: int = 0
    open_until: float = 0.0


def _env_flag(name: str, default: str) -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


class CircuitBreakers:
    """Consecutive-failure counters, one per narrator endpoint.

    Settings come from ``RPG_HTTP_CIRCUIT_*`` and are read on every call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._breakers: dict[str, _Breaker] = {}

    @staticmethod
    def enabled() -> bool:
        return _env_flag("RPG_HTTP_CIRCUIT_BREAKER_ENABLED", "1")

    @staticmethod
    def threshold() -> int:
        return max(1, int(os.getenv("RPG_HTTP_CIRCUIT_FAILURE_THRESHOLD", "3")))

    @staticmethod
    def reset_seconds() -> float:
        return max(0.0, float(os.getenv("RPG_HTTP_CIRCUIT_RESET_SECONDS", "120")))

    def check(self, key: str) -> None:
        if not self.enabled():
            return
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                return
            if breaker.open_until > time.time():
                raise CircuitOpenError(f"Narrator circuit open for {key} until {int(breaker.open_until)}")
            if breaker.open_until > 0:
                # Half-open: one attempt goes through with a clean count.
                self._breakers[key] = _Breaker()

    def succeeded(self, key: str) -> None:
        with self._lock:
            self._breakers.pop(key, None)

    def failed(self, key: str, operation: str) -> None:
        if not self.enabled():
            return
        with self._lock:
            breaker = self._breakers.setdefault(key, _Breaker())
            breaker.failures += 1
            failures = breaker.failures
            if failures < self.threshold():
                return
            breaker.open_until = time.time() + self.reset_seconds()
        logger.warning(
            "Narrator circuit opened; turns use offline narration",
            extra={"target": key, "operation": operation, "failures": failures},
        )

    def is_open(self, key: str) -> bool:
        with self._lock:
            breaker = self._breakers.get(key)
            return breaker is not None and breaker.open_until > time.time()

    def reset(self) -> None:
        with self._lock:
            self._breakers.clear()


BREAKERS = CircuitBreakers()


def reset_circuit_breakers() -> None:
    BREAKERS.reset()


def endpoint_key(client: httpx.Client) -> str:
    return str(getattr(client, "base_url", "") or "unknown")


def is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


def retry_delay(exc: Exception, attempt: int, backoff_seconds: float) -> float:
    """Seconds to wait before ``attempt + 1``.

    A numeric ``Retry-After`` on a throttled reply wins over exponential
    backoff, capped at ``MAX_RETRY_AFTER_SECONDS``.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        header = exc.response.headers.get("Retry-After", "").strip()
        try:
            hinted = float(header)
        except ValueError:
            hinted = None
        if hinted is not None and 0 <= hinted < float("inf"):
            return min(hinted, MAX_RETRY_AFTER_SECONDS)
    return max(0.0, backoff_seconds) * (2**attempt)


def post_json_with_retry(
    client: httpx.Client,
    path: str,
    payload: Any,
    *,
    retries: int = 0,
    backoff_seconds: float = 0.2,
    operation: str = "request",
) -> dict[str, Any]:
    """POST ``payload`` and return the JSON object reply.

    Transient failures are retried and counted against the endpoint's
    breaker; other errors propagate on the first attempt.
    """
    key = endpoint_key(client)
    attempts = max(0, int(retries)) + 1

    for attempt in range(attempts):
        try:
            BREAKERS.check(key)
            response = client.request("POST", path, json=payload)
            if response.status_code in RETRYABLE_STATUS_CODES:
                raise httpx.HTTPStatusError(
                    f"Retryable HTTP status: {response.status_code}",
                    request=response.request,
                    response=response,
                )
            response.raise_for_status()
            body = response.json()
            BREAKERS.succeeded(key)
        except Exception as exc:
            retryable = is_retryable(exc)
            if retryable:
                BREAKERS.failed(key, operation)
            if not retryable or attempt >= attempts - 1:
                raise
            delay = retry_delay(exc, attempt, backoff_seconds)
            logger.debug(
                "Retrying narrator request",
                extra={"target": key, "operation": operation, "attempt": attempt + 1, "delay": delay},
            )
            if delay > 0:
                time.sleep(delay)
            continue

        if not isinstance(body, dict):
            raise ValueError(f"{operation} reply is not a JSON object")
        return body

    return {}
