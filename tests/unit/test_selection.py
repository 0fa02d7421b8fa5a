"""
Unit tests for coverage-balanced and novelty selection.
"""
from entalk.decks.coverage import select_with_coverage
from entalk.decks.models import ALL_CATEGORIES, ALL_PHASES, Category, DeckPhase
from entalk.decks.novelty import exclude, select_novelty
from tests.factories import make_question


def _mixed_pool(size: int):
    return [
        make_question(
            ALL_CATEGORIES[i % len(ALL_CATEGORIES)],
            ALL_PHASES[i % len(ALL_PHASES)],
            score=i / 100,
        )
        for i in range(size)
    ]


class TestSelectWithCoverage:
    def test_covers_every_category_and_phase(self):
        pool = _mixed_pool(24)
        selected = select_with_coverage(list(pool), 12)

        assert len(selected) == 12
        assert {q.category for q in selected} == set(ALL_CATEGORIES)
        assert {q.deck_phase for q in selected} == set(ALL_PHASES)

    def test_picks_best_scoring_question_per_category(self):
        low = make_question(Category.CULTURAL, score=0.1)
        high = make_question(Category.CULTURAL, score=0.9)
        selected = select_with_coverage([low, high], 1)
        assert selected == [high]

    def test_equal_scores_keep_pool_order(self):
        first = make_question(Category.OPINION, score=0.5)
        second = make_question(Category.OPINION, score=0.5)
        assert select_with_coverage([first, second], 1) == [first]

    def test_question_fills_at_most_one_slot(self):
        only = make_question(Category.ICEBREAKER, DeckPhase.WARM_UP)
        selected = select_with_coverage([only], 12)
        assert selected == [only]

    def test_stops_at_target_during_category_pass(self):
        pool = _mixed_pool(12)
        selected = select_with_coverage(pool, 3)
        assert [q.category for q in selected] == list(ALL_CATEGORIES[:3])

    def test_tops_up_by_score_after_coverage(self):
        pool = [make_question(Category.PERSONAL, DeckPhase.PERSONAL, score=s) for s in (0.2, 0.8, 0.5)]
        selected = select_with_coverage(list(pool), 3)
        assert [q.score for q in selected] == [0.8, 0.5, 0.2]

    def test_chosen_questions_leave_the_pool(self):
        pool = _mixed_pool(10)
        selected = select_with_coverage(pool, 4)
        assert len(pool) == 6
        assert not {q.id for q in selected} & {q.id for q in pool}

    def test_non_positive_target_selects_nothing(self):
        assert select_with_coverage(_mixed_pool(5), 0) == []

    def test_empty_pool(self):
        assert select_with_coverage([], 12) == []


class TestExclude:
    def test_removes_chosen_by_id(self):
        pool = _mixed_pool(5)
        remaining = exclude(pool, pool[1:3])
        assert remaining == [pool[0], pool[3], pool[4]]


class TestSelectNovelty:
    def test_flagged_questions_come_first_in_pool_order(self):
        plain = make_question(views=0)
        flagged_a = make_question(is_novelty=True, views=50)
        flagged_b = make_question(is_novelty=True, views=1)
        assert select_novelty([plain, flagged_a, flagged_b], 2) == [flagged_a, flagged_b]

    def test_backfills_with_least_viewed(self):
        flagged = make_question(is_novelty=True)
        popular = make_question(views=30)
        unseen = make_question(views=0)
        middling = make_question(views=5)
        selected = select_novelty([flagged, popular, unseen, middling], 3)
        assert selected == [flagged, unseen, middling]

    def test_truncates_to_count(self):
        pool = [make_question(is_novelty=True) for _ in range(5)]
        assert select_novelty(pool, 3) == pool[:3]

    def test_short_pool_returns_what_exists(self):
        pool = [make_question()]
        assert select_novelty(pool, 3) == pool

    def test_zero_count(self):
        assert select_novelty([make_question(is_novelty=True)], 0) == []
