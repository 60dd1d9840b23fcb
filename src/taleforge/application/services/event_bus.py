import logging
from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List, Optional, Type


Handler = Callable[[object], None]


class EventBus:
    """Synchronous in-process publisher for domain events.

    Handlers run in priority order (lower first, then subscription order). A
    failing handler is logged and skipped so one listener cannot undo a turn
    that has already been committed.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Optional[Type[object]], List[tuple[int, int, Handler]]] = defaultdict(list)
        self._sequence = 0
        self._errors: List[Exception] = []
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Optional[Type[object]], handler: Handler, *, priority: int = 100) -> None:
        """``event_type=None`` receives every event."""
        rows = self._handlers[event_type]
        rows.append((int(priority), self._sequence, handler))
        rows.sort(key=lambda row: (row[0], row[1]))
        self._sequence += 1

    def _handlers_for(self, event: object) -> List[tuple[int, int, Handler]]:
        rows = list(self._handlers.get(type(event), [])) + list(self._handlers.get(None, []))
        return sorted(rows, key=lambda row: (row[0], row[1]))

    def publish(self, event: object) -> None:
        self._errors = []
        self._dispatch(event)

    def publish_all(self, events: Iterable[object]) -> None:
        self._errors = []
        for event in events:
            self._dispatch(event)

    def _dispatch(self, event: object) -> None:
        for priority, _, handler in self._handlers_for(event):
            try:
                handler(event)
            except Exception as exc:
                self._errors.append(exc)
                self._logger.exception(
                    "Event handler failed and was isolated",
                    extra={
                        "event_type": type(event).__name__,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "priority": priority,
                    },
                )

    def last_publish_errors(self) -> List[Exception]:
        return list(self._errors)
