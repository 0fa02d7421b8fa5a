"""
Value objects for questions, decks and feedback.

Records are immutable; scoring, usage tracking and feedback produce updated
copies through the services that own those concerns.

Categories (coverage order):
- Icebreaker, Personal, Opinion, Hypothetical, Reflective, Cultural

Deck phases (coverage order):
- Warm-Up, Personal, Reflective, Challenge
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Category(str, Enum):
    """Thematic tag for a question."""

    ICEBREAKER = "Icebreaker"
    PERSONAL = "Personal"
    OPINION = "Opinion"
    HYPOTHETICAL = "Hypothetical"
    REFLECTIVE = "Reflective"
    CULTURAL = "Cultural"

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTIONS[self]


class DeckPhase(str, Enum):
    """Conversational stage a question belongs to."""

    WARM_UP = "Warm-Up"
    PERSONAL = "Personal"
    REFLECTIVE = "Reflective"
    CHALLENGE = "Challenge"

    @property
    def description(self) -> str:
        return PHASE_DESCRIPTIONS[self]


class FeedbackKind(str, Enum):
    """Participant reaction to a question."""

    LIKE = "like"
    DISLIKE = "dislike"

    @classmethod
    def _missing_(cls, value):
        # Older clients sent positive/negative
        aliases = {"positive": cls.LIKE, "negative": cls.DISLIKE}
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


CATEGORY_DESCRIPTIONS: dict[Category, str] = {
    Category.ICEBREAKER: "Simple questions to start conversations and make people comfortable",
    Category.PERSONAL: "Questions about personal experiences, preferences, and life",
    Category.OPINION: "Questions asking for thoughts on various topics or issues",
    Category.HYPOTHETICAL: "What-if scenarios that encourage creative thinking",
    Category.REFLECTIVE: "Questions that encourage deeper thinking about oneself",
    Category.CULTURAL: "Questions about traditions, customs, and cultural experiences",
}

PHASE_DESCRIPTIONS: dict[DeckPhase, str] = {
    DeckPhase.WARM_UP: "Easy questions to start the conversation",
    DeckPhase.PERSONAL: "Questions about personal experiences and preferences",
    DeckPhase.REFLECTIVE: "Questions that encourage deeper thinking",
    DeckPhase.CHALLENGE: "More complex or thought-provoking questions",
}

ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)
ALL_PHASES: tuple[DeckPhase, ...] = tuple(DeckPhase)


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_text(text: str) -> str:
    """Comparison key for question texts: collapsed whitespace, casefolded."""
    return " ".join(text.split()).casefold()


def parse_tag(enum: type[Enum], value: str):
    """Match a category/phase value case-insensitively ("warm-up" -> WARM_UP)."""
    wanted = value.strip().lower()
    for member in enum:
        if member.value.lower() == wanted:
            return member
    raise ValueError(f"Unknown {enum.__name__}: {value!r}")


# =============================================================================
# Questions
# =============================================================================


@dataclass(frozen=True)
class UsageEntry:
    """One deck that included a question at a location."""

    location_id: str
    used_at: datetime


@dataclass(frozen=True)
class Performance:
    """Aggregated participant counters for a question."""

    views: int = 0
    likes: int = 0
    dislikes: int = 0
    score: float = 0.0

    @property
    def like_rate(self) -> float:
        return self.likes / self.views if self.views > 0 else 0.0


@dataclass(frozen=True)
class Question:
    """A stored conversation question."""

    id: str
    text: str
    event_id: str
    category: Category
    deck_phase: DeckPhase
    created_at: datetime
    is_novelty: bool = False
    usage_history: tuple[UsageEntry, ...] = ()
    performance: Performance = field(default_factory=Performance)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Question text must not be empty")

    @property
    def score(self) -> float:
        return self.performance.score

    def last_used_at(self, location_id: str) -> datetime | None:
        """Most recent usage timestamp at a location, or None."""
        dates = [u.used_at for u in self.usage_history if u.location_id == location_id]
        return max(dates) if dates else None

    def was_used_recently(self, location_id: str, cutoff: datetime) -> bool:
        """True when the latest usage at the location is at or after cutoff."""
        last = self.last_used_at(location_id)
        return last is not None and last >= cutoff


@dataclass(frozen=True)
class NewQuestion:
    """A question that has not been persisted yet."""

    text: str
    event_id: str
    category: Category
    deck_phase: DeckPhase
    is_novelty: bool = False

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Question text must not be empty")


@dataclass(frozen=True)
class GeneratedQuestion:
    """Output of a question generator."""

    text: str
    category: Category
    deck_phase: DeckPhase


# =============================================================================
# Decks, feedback and referenced entities
# =============================================================================


@dataclass(frozen=True)
class Deck:
    """An access-coded bundle of questions for one event at one location."""

    id: str
    access_code: str
    event_id: str
    location_id: str
    question_ids: tuple[str, ...]
    created_at: datetime

    @property
    def size(self) -> int:
        return len(self.question_ids)


@dataclass(frozen=True)
class Feedback:
    """A single like/dislike event. Append-only."""

    id: str
    question_id: str
    event_id: str
    location_id: str
    kind: FeedbackKind
    created_at: datetime
    participant_id: str | None = None


@dataclass(frozen=True)
class Location:
    id: str
    name: str


@dataclass(frozen=True)
class Event:
    id: str
    name: str
    user_id: str
    location_id: str | None = None
    description: str | None = None
    capacity: int | None = None
    date: datetime | None = None


@dataclass(frozen=True)
class QuestionFeedbackStats:
    """Per-question feedback summary for an event."""

    question_id: str
    text: str
    likes: int
    dislikes: int
    total: int

    @property
    def like_rate(self) -> float:
        return self.likes / self.total if self.total else 0.0
