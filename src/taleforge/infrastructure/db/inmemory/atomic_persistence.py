from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Sequence

from taleforge.domain.repositories import AtomicPersistor, Operation


logger = logging.getLogger(__name__)


def create_inmemory_atomic_persistor(*repositories: object) -> AtomicPersistor:
    """Run operation batches against in-memory repositories all-or-nothing.

    Every repository's attribute dict is deep-copied before the batch and put
    back if any operation raises.
    """
    guard = threading.Lock()

    def _persist(operations: Sequence[Operation]) -> None:
        with guard:
            saved = [copy.deepcopy(vars(repo)) for repo in repositories]
            try:
                for operation in operations:
                    operation(None)
            except Exception:
                for repo, state in zip(repositories, saved):
                    vars(repo).clear()
                    vars(repo).update(state)
                logger.warning("In-memory batch rolled back", extra={"operations": len(operations)})
                raise

    return _persist
