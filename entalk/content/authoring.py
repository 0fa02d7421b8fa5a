"""
AI-assisted authoring - organizers ask the generator for new questions and
store them in an event's pool ahead of deck generation.

Texts already in the pool are passed to the generator as exclusions and
filtered again before insert, so an event never holds the same text twice.
"""
from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from entalk.decks.errors import NotFoundError
from entalk.decks.models import Category, DeckPhase, NewQuestion, Question, normalize_text


class QuestionAuthor:
    """Generate questions for an event and add them to its pool."""

    def __init__(self, question_store, event_directory, generator):
        self.question_store = question_store
        self.event_directory = event_directory
        self.generator = generator

    def generate_for_event(
        self,
        event_id: str,
        count: int,
        *,
        categories: Sequence[Category] = (),
        phases: Sequence[DeckPhase] = (),
        novelty: bool = False,
        topic: str | None = None,
    ) -> list[Question]:
        """
        Generate and store up to ``count`` new questions.

        Args:
            event_id: Event owning the new questions
            count: Number of questions requested
            categories: Categories to aim for (all when empty)
            phases: Deck phases to aim for (all when empty)
            novelty: Ask for unusual free-standing questions instead
            topic: Topic override (defaults to the event name)

        Returns:
            The stored questions

        Raises:
            NotFoundError: Unknown event
            ValueError: count is not positive
        """
        event = self.event_directory.get_event(event_id)
        if event is None:
            raise NotFoundError("event", event_id)
        if count <= 0:
            raise ValueError("count must be positive")

        existing = {normalize_text(q.text) for q in self.question_store.find_by_event(event_id)}
        if novelty:
            generated = self.generator.generate_novelty(count, exclude=set(existing))
        else:
            generated = self.generator.generate(
                list(categories),
                list(phases),
                count,
                topic=topic or event.name,
                exclude=set(existing),
            )

        new_questions = []
        for g in generated[:count]:
            key = normalize_text(g.text)
            if not key or key in existing:
                continue
            existing.add(key)
            new_questions.append(
                NewQuestion(
                    text=g.text,
                    event_id=event_id,
                    category=g.category,
                    deck_phase=g.deck_phase,
                    is_novelty=novelty,
                )
            )

        created = self.question_store.insert_many(new_questions) if new_questions else []
        logger.info(f"Authored {len(created)}/{count} questions for event {event_id}")
        return created
