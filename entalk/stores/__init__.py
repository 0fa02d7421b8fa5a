"""Persistence for questions, decks, feedback and events."""

from .base import DeckStore, EventDirectory, FeedbackStore, QuestionStore
from .memory import InMemoryStore

__all__ = [
    "QuestionStore",
    "DeckStore",
    "FeedbackStore",
    "EventDirectory",
    "InMemoryStore",
]
