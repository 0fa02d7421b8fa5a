"""
Store interfaces consumed by the deck service.

Implementations:
- InMemoryStore (entalk.stores.memory): process-local, used by tests and demos
- Sql*Store (entalk.stores.sql): SQLAlchemy-backed persistence
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from entalk.decks.models import (
    Deck,
    Event,
    Feedback,
    Location,
    NewQuestion,
    Question,
)


class QuestionStore(Protocol):
    def get(self, question_id: str) -> Question | None: ...

    def find_by_event(self, event_id: str) -> list[Question]: ...

    def find_available(self, event_id: str, location_id: str, cutoff: datetime) -> list[Question]:
        """Questions of the event not used at the location since cutoff."""
        ...

    def insert_many(self, questions: Sequence[NewQuestion]) -> list[Question]:
        """Persist new questions; ids and creation dates are assigned here."""
        ...

    def record_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        """
        Append a usage entry and count the inclusion as a view.

        Idempotent for an identical (question, location, used_at) triple.
        """
        ...

    def remove_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        """Undo a record_usage call (entry and view). No-op if absent."""
        ...

    def update_performance(
        self,
        question_id: str,
        *,
        likes: int = 0,
        dislikes: int = 0,
        views: int = 0,
    ) -> None: ...

    def save_scores(self, questions: Sequence[Question]) -> None:
        """Write back the scores computed by the last selection pass."""
        ...


class DeckStore(Protocol):
    def create(self, deck: Deck) -> Deck:
        """Persist a deck. Raises AccessCodeCollisionError on a duplicate code."""
        ...

    def find_by_access_code(self, access_code: str) -> Deck | None: ...

    def delete(self, deck_id: str) -> None: ...


class FeedbackStore(Protocol):
    def add(self, feedback: Feedback) -> Feedback: ...

    def list_for_event(self, event_id: str) -> list[Feedback]: ...


class EventDirectory(Protocol):
    def get_event(self, event_id: str) -> Event | None: ...

    def get_location(self, location_id: str) -> Location | None: ...

    def add_event(self, event: Event) -> Event: ...

    def add_location(self, location: Location) -> Location: ...
