"""
Question scoring.

score = like_weight * like_rate + freshness_weight * freshness_boost + jitter

- like_rate: likes / views (0 when never viewed)
- freshness_boost: max(0, 1 - age_days / horizon_days)
- jitter: uniform in [0, jitter) so repeated generations do not rank identically
"""
from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from .models import Question

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class ScoreWeights:
    """Weights for the question score."""

    like_weight: float = 0.7
    freshness_weight: float = 0.3
    jitter: float = 0.1
    horizon_days: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> ScoreWeights:
        return cls(**settings.get_score_config())


def freshness_boost(created_at: datetime, now: datetime, horizon_days: float = 30.0) -> float:
    """Linear decay from 1.0 at creation to 0.0 at the horizon."""
    age_days = (now - created_at).total_seconds() / SECONDS_PER_DAY
    return max(0.0, 1.0 - age_days / horizon_days)


def score(
    question: Question,
    now: datetime,
    *,
    weights: ScoreWeights | None = None,
    rng: random.Random | None = None,
) -> float:
    """Compute the freshness/popularity score for a question."""
    weights = weights or ScoreWeights()
    rng = rng or random

    boost = freshness_boost(question.created_at, now, weights.horizon_days)
    # Questions created "in the future" (clock skew) get full credit, not more
    boost = min(boost, 1.0)
    jitter = rng.random() * weights.jitter if weights.jitter > 0 else 0.0
    # Several participants can like a card from one deck inclusion
    like_rate = min(question.performance.like_rate, 1.0)

    return (
        weights.like_weight * like_rate
        + weights.freshness_weight * boost
        + jitter
    )


def score_question(
    question: Question,
    now: datetime,
    *,
    weights: ScoreWeights | None = None,
    rng: random.Random | None = None,
) -> Question:
    """Return a copy of the question with a freshly computed score."""
    value = score(question, now, weights=weights, rng=rng)
    return replace(question, performance=replace(question.performance, score=value))


def score_pool(
    questions: Iterable[Question],
    now: datetime,
    *,
    weights: ScoreWeights | None = None,
    rng: random.Random | None = None,
) -> list[Question]:
    """Score every candidate; stale scores are never reused."""
    return [score_question(q, now, weights=weights, rng=rng) for q in questions]
