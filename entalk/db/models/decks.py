"""
Deck models for question storage, usage history and participant feedback.

Implements:
- EventRecord / LocationRecord: referenced entities owned by the event layer
- QuestionRecord: question text, tags and aggregated performance counters
- QuestionUsageRecord: one row per deck inclusion at a location
- DeckRecord / DeckQuestionRecord: access-coded deck and its ordered questions
- FeedbackRecord: append-only like/dislike log

Ids are UUID strings so the schema runs unchanged on SQLite and PostgreSQL.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entalk.decks.models import utcnow

from .base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class LocationRecord(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<LocationRecord({self.id}, {self.name!r})>"


class EventRecord(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[str | None] = mapped_column(ForeignKey("locations.id", ondelete="SET NULL"))
    description: Mapped[str | None] = mapped_column(Text)
    capacity: Mapped[int | None] = mapped_column(Integer)
    date: Mapped[datetime | None] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<EventRecord({self.id}, {self.name!r})>"


class QuestionRecord(Base):
    """
    Conversation question with performance counters.

    `score` holds the value written by the most recent selection pass; it is
    informational only and recomputed before every ranking.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    deck_phase: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    is_novelty: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Performance
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dislikes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    usage: Mapped[list[QuestionUsageRecord]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionUsageRecord.used_at",
    )

    def __repr__(self) -> str:
        return f"<QuestionRecord({self.id}, {self.category}/{self.deck_phase})>"


class QuestionUsageRecord(Base):
    __tablename__ = "question_usage"
    __table_args__ = (
        UniqueConstraint("question_id", "location_id", "used_at", name="uq_question_usage"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    used_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    question: Mapped[QuestionRecord] = relationship(back_populates="usage")


class DeckRecord(Base):
    __tablename__ = "decks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    access_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    entries: Mapped[list[DeckQuestionRecord]] = relationship(
        back_populates="deck",
        cascade="all, delete-orphan",
        order_by="DeckQuestionRecord.position",
    )

    def __repr__(self) -> str:
        return f"<DeckRecord({self.access_code}, {len(self.entries)} questions)>"


class DeckQuestionRecord(Base):
    __tablename__ = "deck_questions"

    deck_id: Mapped[str] = mapped_column(
        ForeignKey("decks.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_id: Mapped[str] = mapped_column(ForeignKey("questions.id"), nullable=False)

    deck: Mapped[DeckRecord] = relationship(back_populates="entries")


class FeedbackRecord(Base):
    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    location_id: Mapped[str] = mapped_column(String(36), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # 'like' or 'dislike'
    participant_id: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
