"""
Unit tests for DeckAssembler.

Runs against InMemoryStore with a fixed clock and seeded RNG. The template
generator backs every gap-fill so no network access is needed.
"""
import itertools
import random
import threading
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from entalk.decks.assembler import DeckAssembler, DeckConfig, LocationLocks, unique_by_text
from entalk.decks.errors import (
    AccessCodeExhaustedError,
    DeckGenerationError,
    NotFoundError,
    StoreWriteError,
)
from entalk.decks.models import ALL_CATEGORIES, ALL_PHASES, Deck, normalize_text
from entalk.generation import TemplateQuestionGenerator
from tests.factories import EVENT_ID, LOCATION_ID, NOW, make_question


def seed(store, count: int, event_id: str = EVENT_ID):
    questions = [
        make_question(
            ALL_CATEGORIES[i % len(ALL_CATEGORIES)],
            ALL_PHASES[i % len(ALL_PHASES)],
            event_id=event_id,
        )
        for i in range(count)
    ]
    for q in questions:
        store.add_question(q)
    return questions


def build(store, *, clock=None, config=None, generator=None, code_factory=None, locks=None):
    return DeckAssembler(
        question_store=store,
        deck_store=store,
        event_directory=store,
        generator=generator or TemplateQuestionGenerator("street food"),
        config=config,
        clock=clock or (lambda: NOW),
        rng=random.Random(42),
        code_factory=code_factory,
        locks=locks,
    )


class TestGenerateDeck:
    def test_full_pool_yields_main_plus_novelty(self, store):
        seed(store, 20)
        deck = build(store).generate_deck(LOCATION_ID, EVENT_ID)

        assert deck.size == 15
        assert len(set(deck.question_ids)) == 15
        assert deck.event_id == EVENT_ID
        assert deck.location_id == LOCATION_ID
        assert deck.created_at == NOW

    def test_deck_covers_all_categories_and_phases(self, store):
        seed(store, 24)
        assembler = build(store)
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        questions = assembler.get_deck_questions(deck.access_code)

        assert {q.category for q in questions} == set(ALL_CATEGORIES)
        assert {q.deck_phase for q in questions} == set(ALL_PHASES)

    def test_usage_is_recorded_for_every_question(self, store):
        seed(store, 20)
        deck = build(store).generate_deck(LOCATION_ID, EVENT_ID)

        for question_id in deck.question_ids:
            question = store.get(question_id)
            assert question.last_used_at(LOCATION_ID) == NOW
            assert question.performance.views == 1

    def test_scores_are_written_back(self, store):
        seed(store, 5)
        build(store).generate_deck(LOCATION_ID, EVENT_ID)
        assert all(q.score > 0 for q in store.find_by_event(EVENT_ID) if not q.is_novelty)

    def test_second_deck_at_same_location_has_no_repeats(self, store):
        seed(store, 20)
        assembler = build(store)

        first = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        second = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert second.size == 15
        assert set(first.question_ids).isdisjoint(second.question_ids)
        assert first.access_code != second.access_code

    def test_other_location_can_reuse_questions(self, store):
        seed(store, 15)
        assembler = build(store)

        first = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        other = assembler.generate_deck("loc-2", EVENT_ID)

        assert set(first.question_ids) == set(other.question_ids)

    def test_questions_return_after_lookback_window(self, store):
        seed(store, 15)
        now = [NOW]
        assembler = build(store, clock=lambda: now[0])

        first = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        now[0] = NOW + timedelta(days=27)
        still_resting = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        now[0] = NOW + timedelta(days=29)
        rested = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert set(first.question_ids).isdisjoint(still_resting.question_ids)
        assert set(first.question_ids) <= set(rested.question_ids)

    def test_empty_pool_is_fully_generated(self, store):
        assembler = build(store)
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        questions = assembler.get_deck_questions(deck.access_code)

        assert deck.size == 15
        assert all(q.is_novelty for q in questions)
        assert all(q.event_id == EVENT_ID for q in questions)
        # Event name is the topic
        assert all("street food" in q.text for q in questions)

    def test_other_events_questions_are_never_used(self, store):
        seed(store, 10)
        foreign = {q.id for q in seed(store, 10, event_id="event-2")}

        deck = build(store).generate_deck(LOCATION_ID, EVENT_ID)

        assert foreign.isdisjoint(deck.question_ids)
        assert deck.size == 15

    def test_custom_sizes(self, store):
        seed(store, 30)
        config = DeckConfig(main_size=8, novelty_size=2, floor=10)
        deck = build(store, config=config).generate_deck(LOCATION_ID, EVENT_ID)
        assert deck.size == 10

    def test_nothing_selected_or_generated_raises(self, store):
        generator = Mock()
        generator.generate.return_value = []

        with pytest.raises(DeckGenerationError):
            build(store, generator=generator).generate_deck(LOCATION_ID, EVENT_ID)

    def test_unknown_event(self, store):
        with pytest.raises(NotFoundError) as exc:
            build(store).generate_deck(LOCATION_ID, "nope")
        assert exc.value.kind == "event"

    def test_unknown_location(self, store):
        with pytest.raises(NotFoundError) as exc:
            build(store).generate_deck("nowhere", EVENT_ID)
        assert exc.value.kind == "location"


class TestDuplicateTexts:
    def test_repeated_backfill_never_repeats_a_text(self, store):
        assembler = build(store)

        decks = [
            assembler.generate_deck(LOCATION_ID, EVENT_ID),
            assembler.generate_deck(LOCATION_ID, EVENT_ID),
            assembler.generate_deck("loc-2", EVENT_ID),
        ]

        for deck in decks:
            texts = [normalize_text(q.text) for q in assembler.get_deck_questions(deck.access_code)]
            assert len(texts) == len(set(texts)) == 15
        pool = [normalize_text(q.text) for q in store.find_by_event(EVENT_ID)]
        assert len(pool) == len(set(pool)) == 30

    def test_duplicate_pool_texts_appear_once_per_deck(self, store):
        seed(store, 20)
        store.add_question(make_question(text="Sample  question 1?"))
        store.add_question(make_question(text="sample question 1?"))

        assembler = build(store, config=DeckConfig(main_size=20, novelty_size=5, floor=1))
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        texts = [normalize_text(q.text) for q in assembler.get_deck_questions(deck.access_code)]
        assert len(texts) == len(set(texts))

    def test_unique_by_text_keeps_highest_score(self):
        low = make_question(text="Same?", score=0.2)
        other = make_question(text="Different?", score=0.1)
        high = make_question(text="  same? ", score=0.9)

        assert unique_by_text([low, other, high]) == [other, high]


class TestConcurrency:
    def test_simultaneous_decks_at_one_location_share_no_questions(self, store):
        seed(store, 30)
        locks = LocationLocks()
        assemblers = [build(store, locks=locks), build(store, locks=locks)]
        barrier = threading.Barrier(2)
        decks, errors = [], []

        def run(assembler):
            barrier.wait()
            try:
                decks.append(assembler.generate_deck(LOCATION_ID, EVENT_ID))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run, args=(a,)) for a in assemblers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        assert len(decks) == 2
        assert set(decks[0].question_ids).isdisjoint(decks[1].question_ids)

    def test_locks_are_per_location(self):
        locks = LocationLocks()

        assert locks.for_location(LOCATION_ID) is locks.for_location(LOCATION_ID)
        assert locks.for_location(LOCATION_ID) is not locks.for_location("loc-2")


class TestAccessCodes:
    def test_collision_is_retried(self, store):
        seed(store, 30)
        codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        assembler = build(store, code_factory=lambda length: next(codes))

        first = assembler.generate_deck(LOCATION_ID, EVENT_ID)
        second = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert first.access_code == "AAAAAA"
        assert second.access_code == "BBBBBB"

    def test_exhausted_attempts_raise_without_side_effects(self, store):
        seed(store, 20)
        store.create(
            Deck(
                id="existing",
                access_code="SAME01",
                event_id=EVENT_ID,
                location_id="loc-2",
                question_ids=(),
                created_at=NOW,
            )
        )
        calls = itertools.count()

        def always_same(length):
            next(calls)
            return "SAME01"

        assembler = build(
            store, config=DeckConfig(access_code_attempts=3), code_factory=always_same
        )
        with pytest.raises(AccessCodeExhaustedError):
            assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert next(calls) == 3
        assert all(not q.usage_history for q in store.find_by_event(EVENT_ID))

    def test_default_codes_are_six_uppercase_alphanumerics(self, store):
        seed(store, 15)
        deck = build(store).generate_deck(LOCATION_ID, EVENT_ID)
        assert len(deck.access_code) == 6
        assert deck.access_code.isalnum()
        assert deck.access_code == deck.access_code.upper()


class TestUsageRollback:
    def test_failed_usage_write_removes_deck_and_partial_usage(self, store):
        seed(store, 20)
        original = store.record_usage
        calls = itertools.count(1)

        def flaky(question_id, location_id, used_at):
            if next(calls) == 4:
                raise StoreWriteError("disk full")
            original(question_id, location_id, used_at)

        store.record_usage = flaky
        assembler = build(store, code_factory=lambda length: "ROLL01")

        with pytest.raises(StoreWriteError):
            assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert store.find_by_access_code("ROLL01") is None
        for question in store.find_by_event(EVENT_ID):
            assert question.usage_history == ()
            assert question.performance.views == 0

    def test_failed_usage_removal_still_deletes_deck(self, store):
        seed(store, 20)
        original = store.record_usage
        calls = itertools.count(1)
        usage_error = StoreWriteError("disk full")

        def flaky(question_id, location_id, used_at):
            if next(calls) == 4:
                raise usage_error
            original(question_id, location_id, used_at)

        store.record_usage = flaky
        store.remove_usage = Mock(side_effect=StoreWriteError("still down"))
        assembler = build(store, code_factory=lambda length: "ROLL02")

        with pytest.raises(StoreWriteError) as exc:
            assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert exc.value.__cause__ is usage_error
        assert store.remove_usage.call_count == 3
        assert store.find_by_access_code("ROLL02") is None


class TestLookup:
    def test_get_deck_is_case_insensitive(self, store):
        seed(store, 15)
        assembler = build(store)
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assert assembler.get_deck(f"  {deck.access_code.lower()} ") == deck

    def test_unknown_code(self, store):
        with pytest.raises(NotFoundError):
            build(store).get_deck("ZZZZZZ")

    def test_questions_come_back_in_persisted_order(self, store):
        seed(store, 15)
        assembler = build(store)
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        questions = assembler.get_deck_questions(deck.access_code)
        assert tuple(q.id for q in questions) == deck.question_ids

    def test_reconcile_is_idempotent(self, store):
        seed(store, 15)
        assembler = build(store)
        deck = assembler.generate_deck(LOCATION_ID, EVENT_ID)

        assembler.reconcile_deck_usage(deck.access_code)

        for question_id in deck.question_ids:
            question = store.get(question_id)
            assert len(question.usage_history) == 1
            assert question.performance.views == 1


def test_config_from_settings():
    settings = SimpleNamespace(
        get_deck_config=lambda: {
            "lookback_days": 7,
            "main_size": 10,
            "novelty_size": 5,
            "floor": 15,
            "access_code_length": 8,
            "access_code_attempts": 4,
        },
        get_score_config=lambda: {
            "like_weight": 0.6,
            "freshness_weight": 0.4,
            "jitter": 0.05,
            "horizon_days": 14.0,
        },
    )
    config = DeckConfig.from_settings(settings)

    assert config.lookback_days == 7
    assert config.access_code_length == 8
    assert config.score_weights.like_weight == 0.6
