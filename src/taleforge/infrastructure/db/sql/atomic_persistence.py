from __future__ import annotations

from collections.abc import Sequence

from taleforge.domain.repositories import Operation
from .connection import SessionLocal


def save_operations_atomic(operations: Sequence[Operation]) -> None:
    """Run every staged operation inside one transaction; any failure rolls back all of them."""
    with SessionLocal.begin() as session:
        for operation in operations:
            operation(session)
