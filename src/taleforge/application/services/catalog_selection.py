from __future__ import annotations

import logging
import random

from taleforge.domain.errors import CatalogExhaustedError
from taleforge.domain.repositories import CatalogEntry, CatalogKind, CatalogRepository, catalog_score


logger = logging.getLogger(__name__)


def pick_near(
    catalog: CatalogRepository,
    kind: CatalogKind,
    target: int,
    bounds: tuple[int, int],
    rng: random.Random | None = None,
) -> CatalogEntry:
    """Random entry inside ``bounds``, else the single entry closest to ``target``."""
    rng = rng or random
    low, high = bounds
    candidates = catalog.list_in_range(kind, low, high) if low <= high else []
    if candidates:
        ordered = sorted(candidates, key=lambda entry: (catalog_score(entry), int(entry.id)))
        return rng.choice(ordered)

    fallback = catalog.nearest(kind, target)
    if fallback is None:
        raise CatalogExhaustedError(f"The {kind.value} catalog is empty")
    logger.debug(
        "No catalog entry in range; using nearest",
        extra={"kind": kind.value, "target": target, "chosen_id": fallback.id},
    )
    return fallback


def pick_at_least(
    catalog: CatalogRepository,
    kind: CatalogKind,
    threshold: int,
    rng: random.Random | None = None,
) -> CatalogEntry:
    rng = rng or random
    candidates = catalog.list_in_range(kind, threshold, 2**31 - 1)
    if candidates:
        ordered = sorted(candidates, key=lambda entry: (catalog_score(entry), int(entry.id)))
        return rng.choice(ordered)
    fallback = catalog.nearest(kind, threshold)
    if fallback is None:
        raise CatalogExhaustedError(f"The {kind.value} catalog is empty")
    return fallback
