"""
Unit tests for QuestionAuthor.
"""
import random
from unittest.mock import ANY, Mock

import pytest

from entalk.content import QuestionAuthor
from entalk.decks.errors import NotFoundError
from entalk.decks.models import Category, DeckPhase, GeneratedQuestion, normalize_text
from entalk.generation import TemplateQuestionGenerator
from tests.factories import EVENT_ID, make_question


@pytest.fixture
def author(store):
    return QuestionAuthor(store, store, TemplateQuestionGenerator(rng=random.Random(3)))


def test_generated_questions_join_the_event_pool(store, author):
    created = author.generate_for_event(
        EVENT_ID, 4, categories=[Category.CULTURAL], phases=[DeckPhase.CHALLENGE]
    )

    assert len(created) == 4
    assert {q.category for q in created} == {Category.CULTURAL}
    assert {q.deck_phase for q in created} == {DeckPhase.CHALLENGE}
    assert all("street food" in q.text for q in created)
    assert all(not q.is_novelty for q in created)
    assert {q.id for q in store.find_by_event(EVENT_ID)} == {q.id for q in created}


def test_topic_override(author):
    created = author.generate_for_event(EVENT_ID, 2, topic="jazz")
    assert all("jazz" in q.text for q in created)


def test_novelty_questions_are_flagged(author):
    created = author.generate_for_event(EVENT_ID, 7, novelty=True)

    assert len(created) == 7
    assert all(q.is_novelty for q in created)
    assert len({normalize_text(q.text) for q in created}) == 7


def test_repeated_runs_never_duplicate_texts(store, author):
    store.add_question(make_question(text="Challenge: What is your honest opinion about street food?"))

    for _ in range(3):
        author.generate_for_event(EVENT_ID, 6, categories=[Category.OPINION])

    texts = [normalize_text(q.text) for q in store.find_by_event(EVENT_ID)]
    assert len(texts) == len(set(texts)) == 19


def test_existing_texts_are_passed_as_exclusions(store):
    store.add_question(make_question(text="Already here?"))
    generator = Mock()
    generator.generate.return_value = [
        GeneratedQuestion("already  HERE?", Category.OPINION, DeckPhase.CHALLENGE),
        GeneratedQuestion("Brand new?", Category.OPINION, DeckPhase.CHALLENGE),
    ]

    created = QuestionAuthor(store, store, generator).generate_for_event(EVENT_ID, 2)

    assert [q.text for q in created] == ["Brand new?"]
    generator.generate.assert_called_once_with([], [], 2, topic="street food", exclude=ANY)
    assert "already here?" in generator.generate.call_args.kwargs["exclude"]


def test_unknown_event(author):
    with pytest.raises(NotFoundError):
        author.generate_for_event("nope", 3)


def test_count_must_be_positive(author):
    with pytest.raises(ValueError):
        author.generate_for_event(EVENT_ID, 0)
