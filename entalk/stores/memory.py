"""
In-memory store.

One object backs all four store interfaces so a test or demo can wire the
deck service with a single instance. Create it once and pass it to every
component that needs it.
"""
from __future__ import annotations

import threading
import uuid
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from entalk.decks.errors import AccessCodeCollisionError, NotFoundError
from entalk.decks.models import (
    Deck,
    Event,
    Feedback,
    Location,
    NewQuestion,
    Question,
    UsageEntry,
    utcnow,
)


class InMemoryStore:
    """Thread-safe dict-backed implementation of the store interfaces."""

    def __init__(self, clock=None):
        self._clock = clock or utcnow
        self._lock = threading.RLock()
        self._questions: dict[str, Question] = {}
        self._decks: dict[str, Deck] = {}
        self._feedback: list[Feedback] = []
        self._events: dict[str, Event] = {}
        self._locations: dict[str, Location] = {}

    # ========================================
    # Questions
    # ========================================

    def add_question(self, question: Question) -> Question:
        """Insert a fully-formed question (ids chosen by the caller)."""
        with self._lock:
            self._questions[question.id] = question
        return question

    def get(self, question_id: str) -> Question | None:
        with self._lock:
            return self._questions.get(question_id)

    def find_by_event(self, event_id: str) -> list[Question]:
        with self._lock:
            return [q for q in self._questions.values() if q.event_id == event_id]

    def find_available(self, event_id: str, location_id: str, cutoff: datetime) -> list[Question]:
        with self._lock:
            return [
                q
                for q in self._questions.values()
                if q.event_id == event_id and not q.was_used_recently(location_id, cutoff)
            ]

    def insert_many(self, questions: Sequence[NewQuestion]) -> list[Question]:
        now = self._clock()
        created = [
            Question(
                id=str(uuid.uuid4()),
                text=q.text.strip(),
                event_id=q.event_id,
                category=q.category,
                deck_phase=q.deck_phase,
                created_at=now,
                is_novelty=q.is_novelty,
            )
            for q in questions
        ]
        with self._lock:
            for q in created:
                self._questions[q.id] = q
        return created

    def _require(self, question_id: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFoundError("question", question_id)
        return question

    def record_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        entry = UsageEntry(location_id=location_id, used_at=used_at)
        with self._lock:
            question = self._require(question_id)
            if entry in question.usage_history:
                return
            self._questions[question_id] = replace(
                question,
                usage_history=question.usage_history + (entry,),
                performance=replace(
                    question.performance, views=question.performance.views + 1
                ),
            )

    def remove_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        entry = UsageEntry(location_id=location_id, used_at=used_at)
        with self._lock:
            question = self._questions.get(question_id)
            if question is None or entry not in question.usage_history:
                return
            self._questions[question_id] = replace(
                question,
                usage_history=tuple(u for u in question.usage_history if u != entry),
                performance=replace(
                    question.performance, views=max(0, question.performance.views - 1)
                ),
            )

    def update_performance(
        self,
        question_id: str,
        *,
        likes: int = 0,
        dislikes: int = 0,
        views: int = 0,
    ) -> None:
        with self._lock:
            question = self._require(question_id)
            perf = question.performance
            self._questions[question_id] = replace(
                question,
                performance=replace(
                    perf,
                    likes=perf.likes + likes,
                    dislikes=perf.dislikes + dislikes,
                    views=perf.views + views,
                ),
            )

    def save_scores(self, questions: Sequence[Question]) -> None:
        with self._lock:
            for q in questions:
                stored = self._questions.get(q.id)
                if stored is not None:
                    self._questions[q.id] = replace(
                        stored, performance=replace(stored.performance, score=q.score)
                    )

    # ========================================
    # Decks
    # ========================================

    def create(self, deck: Deck) -> Deck:
        with self._lock:
            if any(d.access_code == deck.access_code for d in self._decks.values()):
                raise AccessCodeCollisionError(deck.access_code)
            self._decks[deck.id] = deck
        return deck

    def find_by_access_code(self, access_code: str) -> Deck | None:
        with self._lock:
            for deck in self._decks.values():
                if deck.access_code == access_code:
                    return deck
        return None

    def delete(self, deck_id: str) -> None:
        with self._lock:
            self._decks.pop(deck_id, None)

    # ========================================
    # Feedback
    # ========================================

    def add(self, feedback: Feedback) -> Feedback:
        with self._lock:
            self._feedback.append(feedback)
        return feedback

    def list_for_event(self, event_id: str) -> list[Feedback]:
        with self._lock:
            return [f for f in self._feedback if f.event_id == event_id]

    # ========================================
    # Events and locations
    # ========================================

    def get_event(self, event_id: str) -> Event | None:
        with self._lock:
            return self._events.get(event_id)

    def get_location(self, location_id: str) -> Location | None:
        with self._lock:
            return self._locations.get(location_id)

    def add_event(self, event: Event) -> Event:
        with self._lock:
            self._events[event.id] = event
        return event

    def add_location(self, location: Location) -> Location:
        with self._lock:
            self._locations[location.id] = location
        return location
