"""
Unit tests for question scoring.

Jitter is disabled where exact values are asserted.
"""
import random
from datetime import timedelta
from types import SimpleNamespace

import pytest

from entalk.decks.scoring import (
    ScoreWeights,
    freshness_boost,
    score,
    score_pool,
    score_question,
)
from tests.factories import NOW, make_question

NO_JITTER = ScoreWeights(jitter=0.0)


class TestFreshnessBoost:
    def test_brand_new_question_gets_full_boost(self):
        assert freshness_boost(NOW, NOW) == 1.0

    def test_halfway_through_horizon(self):
        assert freshness_boost(NOW - timedelta(days=15), NOW) == pytest.approx(0.5)

    def test_past_horizon_is_zero(self):
        assert freshness_boost(NOW - timedelta(days=45), NOW) == 0.0

    def test_custom_horizon(self):
        assert freshness_boost(NOW - timedelta(days=5), NOW, horizon_days=10) == pytest.approx(0.5)


class TestScore:
    def test_combines_like_rate_and_freshness(self):
        q = make_question(created_at=NOW, views=10, likes=5)
        # 0.7 * 0.5 + 0.3 * 1.0
        assert score(q, NOW, weights=NO_JITTER) == pytest.approx(0.65)

    def test_never_viewed_question_scores_on_freshness_only(self):
        q = make_question(created_at=NOW - timedelta(days=15))
        assert score(q, NOW, weights=NO_JITTER) == pytest.approx(0.15)

    def test_like_rate_is_clamped_to_one(self):
        q = make_question(created_at=NOW - timedelta(days=60), views=2, likes=5)
        assert score(q, NOW, weights=NO_JITTER) == pytest.approx(0.7)

    def test_future_creation_date_does_not_exceed_full_boost(self):
        q = make_question(created_at=NOW + timedelta(days=3))
        assert score(q, NOW, weights=NO_JITTER) == pytest.approx(0.3)

    def test_jitter_stays_within_bound(self):
        q = make_question(created_at=NOW, views=4, likes=4)
        rng = random.Random(7)
        for _ in range(200):
            value = score(q, NOW, rng=rng)
            assert 1.0 <= value < 1.1

    def test_jitter_uses_injected_rng(self):
        q = make_question(created_at=NOW)
        assert score(q, NOW, rng=random.Random(3)) == score(q, NOW, rng=random.Random(3))


class TestScoreQuestion:
    def test_returns_updated_copy(self):
        q = make_question(created_at=NOW, score=0.0)
        scored = score_question(q, NOW, weights=NO_JITTER)

        assert scored.score == pytest.approx(0.3)
        assert q.score == 0.0
        assert scored.id == q.id

    def test_stale_scores_are_replaced(self):
        pool = [make_question(created_at=NOW, score=99.0) for _ in range(3)]
        scored = score_pool(pool, NOW, weights=NO_JITTER)
        assert [s.score for s in scored] == pytest.approx([0.3, 0.3, 0.3])


def test_weights_from_settings():
    settings = SimpleNamespace(
        get_score_config=lambda: {
            "like_weight": 0.5,
            "freshness_weight": 0.5,
            "jitter": 0.0,
            "horizon_days": 10.0,
        }
    )
    weights = ScoreWeights.from_settings(settings)
    assert weights == ScoreWeights(0.5, 0.5, 0.0, 10.0)
