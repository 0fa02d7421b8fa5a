"""Novelty slice selection: flagged questions first, then the least shown."""
from __future__ import annotations

from collections.abc import Iterable

from .models import Question


def exclude(pool: Iterable[Question], chosen: Iterable[Question]) -> list[Question]:
    """Set difference by question id, preserving pool order."""
    chosen_ids = {q.id for q in chosen}
    return [q for q in pool if q.id not in chosen_ids]


def select_novelty(pool: list[Question], count: int) -> list[Question]:
    """
    Pick up to count supplementary questions.

    Novelty-flagged questions come first (pool order). Any shortfall is
    backfilled with non-novelty questions in ascending view order.
    """
    if count <= 0:
        return []

    selected = [q for q in pool if q.is_novelty]
    if len(selected) < count:
        rest = sorted((q for q in pool if not q.is_novelty), key=lambda q: q.performance.views)
        selected.extend(rest[: count - len(selected)])

    return selected[:count]
