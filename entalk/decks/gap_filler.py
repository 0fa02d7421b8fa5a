"""
Gap filling for short decks.

When the selection falls below the deck floor, the generator is asked for the
shortfall, aimed at the categories and phases the selection does not cover.
Generated questions are stored as novelty questions owned by the event. Texts
already in the event pool or the selection are never stored twice.
"""
from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from .models import (
    ALL_CATEGORIES,
    ALL_PHASES,
    Category,
    DeckPhase,
    NewQuestion,
    Question,
    normalize_text,
)


def missing_categories(selected: Sequence[Question]) -> list[Category]:
    present = {q.category for q in selected}
    return [c for c in ALL_CATEGORIES if c not in present]


def missing_phases(selected: Sequence[Question]) -> list[DeckPhase]:
    present = {q.deck_phase for q in selected}
    return [p for p in ALL_PHASES if p not in present]


class GapFiller:
    """Backfills a selection up to the deck floor."""

    def __init__(self, question_store, generator, floor: int = 15):
        """
        Args:
            question_store: Store used to persist generated questions
            generator: QuestionGenerator (never raises; templates on failure)
            floor: Minimum deck size
        """
        self.question_store = question_store
        self.generator = generator
        self.floor = floor

    def fill_gaps(
        self,
        selected: Sequence[Question],
        event_id: str,
        *,
        topic: str | None = None,
    ) -> list[Question]:
        """
        Generate and persist enough questions to reach the floor.

        Args:
            selected: Questions already chosen for the deck
            event_id: Event that will own the new questions
            topic: Topic interpolated into prompts and templates

        Returns:
            The stored questions (empty when the floor is already met)
        """
        missing_count = self.floor - len(selected)
        if missing_count <= 0:
            return []

        # Full coverage but too few questions: let the generator use every tag
        categories = missing_categories(selected) or list(ALL_CATEGORIES)
        phases = missing_phases(selected) or list(ALL_PHASES)
        existing = {normalize_text(q.text) for q in self.question_store.find_by_event(event_id)}
        existing.update(normalize_text(q.text) for q in selected)

        logger.info(
            f"Deck for event {event_id} is {missing_count} short; requesting "
            f"{len(categories)} categories / {len(phases)} phases from generator"
        )
        generated = self.generator.generate(
            categories, phases, missing_count, topic=topic, exclude=set(existing)
        )

        new_questions = []
        for g in generated:
            if len(new_questions) == missing_count:
                break
            if not g.text or not g.text.strip() or normalize_text(g.text) in existing:
                continue
            existing.add(normalize_text(g.text))
            new_questions.append(
                NewQuestion(
                    text=g.text,
                    event_id=event_id,
                    category=g.category,
                    deck_phase=g.deck_phase,
                    is_novelty=True,
                )
            )
        if not new_questions:
            logger.warning(f"Generator returned no usable questions for event {event_id}")
            return []

        return self.question_store.insert_many(new_questions)
