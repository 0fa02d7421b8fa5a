"""
Coverage-balanced selection.

Picks the best-scoring question for every category, then for every phase,
then tops up by score. A question leaves the pool the first time it is
chosen, so it fills at most one coverage slot.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from .models import ALL_CATEGORIES, ALL_PHASES, Question


def _by_score_desc(questions: Iterable[Question]) -> list[Question]:
    # sorted() is stable: equal scores keep their pool order
    return sorted(questions, key=lambda q: q.score, reverse=True)


def _take_best(
    pool: list[Question],
    selected: list[Question],
    tags: Iterable[Any],
    attr: Callable[[Question], Any],
    target_count: int,
) -> None:
    for tag in tags:
        if len(selected) >= target_count:
            return
        matching = [q for q in pool if attr(q) == tag]
        if not matching:
            continue
        best = _by_score_desc(matching)[0]
        pool.remove(best)
        selected.append(best)


def select_with_coverage(pool: list[Question], target_count: int) -> list[Question]:
    """
    Select up to target_count questions covering every category and phase.

    The pool is mutated: chosen questions are removed from it. Callers pass a
    disposable copy.

    Args:
        pool: Scored candidate questions
        target_count: Desired size of the selection

    Returns:
        Selected questions (may be shorter than target_count)
    """
    selected: list[Question] = []
    if target_count <= 0:
        return selected

    _take_best(pool, selected, ALL_CATEGORIES, lambda q: q.category, target_count)
    _take_best(pool, selected, ALL_PHASES, lambda q: q.deck_phase, target_count)

    for question in _by_score_desc(pool):
        if len(selected) >= target_count:
            break
        pool.remove(question)
        selected.append(question)

    logger.debug(
        f"Coverage selection: {len(selected)}/{target_count} chosen, {len(pool)} left in pool"
    )
    return selected
