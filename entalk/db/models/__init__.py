# SQLAlchemy models
from .base import Base
from .decks import (
    DeckQuestionRecord,
    DeckRecord,
    EventRecord,
    FeedbackRecord,
    LocationRecord,
    QuestionRecord,
    QuestionUsageRecord,
)

__all__ = [
    # Base
    "Base",
    # Referenced entities
    "EventRecord",
    "LocationRecord",
    # Questions
    "QuestionRecord",
    "QuestionUsageRecord",
    # Decks
    "DeckRecord",
    "DeckQuestionRecord",
    # Feedback
    "FeedbackRecord",
]
