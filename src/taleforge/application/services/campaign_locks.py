import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class CampaignLockRegistry:
    """One re-entrant lock per campaign id; turns for the same campaign never interleave.

    An entry lives only while some thread holds or waits for it, so ids that
    are looked up once (including ones that do not exist) leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[int, _Entry] = {}

    @contextmanager
    def hold(self, campaign_id: int) -> Iterator[None]:
        key = int(campaign_id)
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
