"""
SQLAlchemy-backed stores.

Every operation runs in its own session_scope() transaction. Write failures
are surfaced as StoreWriteError; a duplicate deck access code is surfaced as
AccessCodeCollisionError so the deck service can retry with a new code.
"""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from loguru import logger
from sqlalchemy import and_, case, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from entalk.db.database import session_scope
from entalk.db.models import (
    DeckQuestionRecord,
    DeckRecord,
    EventRecord,
    FeedbackRecord,
    LocationRecord,
    QuestionRecord,
    QuestionUsageRecord,
)
from entalk.decks.errors import AccessCodeCollisionError, NotFoundError, StoreWriteError
from entalk.decks.models import (
    Category,
    Deck,
    DeckPhase,
    Event,
    Feedback,
    FeedbackKind,
    Location,
    NewQuestion,
    Performance,
    Question,
    UsageEntry,
    utcnow,
)

# =============================================================================
# Record -> value conversion
# =============================================================================


def _to_question(record: QuestionRecord) -> Question:
    return Question(
        id=record.id,
        text=record.text,
        event_id=record.event_id,
        category=Category(record.category),
        deck_phase=DeckPhase(record.deck_phase),
        created_at=record.created_at,
        is_novelty=record.is_novelty,
        usage_history=tuple(
            UsageEntry(location_id=u.location_id, used_at=u.used_at) for u in record.usage
        ),
        performance=Performance(
            views=record.views,
            likes=record.likes,
            dislikes=record.dislikes,
            score=record.score,
        ),
    )


def _to_deck(record: DeckRecord) -> Deck:
    return Deck(
        id=record.id,
        access_code=record.access_code,
        event_id=record.event_id,
        location_id=record.location_id,
        question_ids=tuple(e.question_id for e in record.entries),
        created_at=record.created_at,
    )


def _to_feedback(record: FeedbackRecord) -> Feedback:
    return Feedback(
        id=record.id,
        question_id=record.question_id,
        event_id=record.event_id,
        location_id=record.location_id,
        kind=FeedbackKind(record.kind),
        participant_id=record.participant_id,
        created_at=record.created_at,
    )


class _SqlStore:
    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory

    def _scope(self):
        return session_scope(self._session_factory)


# =============================================================================
# Questions
# =============================================================================


class SqlQuestionStore(_SqlStore):
    def _query(self):
        return select(QuestionRecord).options(selectinload(QuestionRecord.usage))

    def get(self, question_id: str) -> Question | None:
        with self._scope() as session:
            record = session.scalars(
                self._query().where(QuestionRecord.id == question_id)
            ).one_or_none()
            return _to_question(record) if record else None

    def find_by_event(self, event_id: str) -> list[Question]:
        with self._scope() as session:
            records = session.scalars(
                self._query()
                .where(QuestionRecord.event_id == event_id)
                .order_by(QuestionRecord.created_at, QuestionRecord.id)
            ).all()
            return [_to_question(r) for r in records]

    def find_available(self, event_id: str, location_id: str, cutoff: datetime) -> list[Question]:
        used_recently = exists().where(
            and_(
                QuestionUsageRecord.question_id == QuestionRecord.id,
                QuestionUsageRecord.location_id == location_id,
                QuestionUsageRecord.used_at >= cutoff,
            )
        )
        with self._scope() as session:
            records = session.scalars(
                self._query()
                .where(QuestionRecord.event_id == event_id, ~used_recently)
                .order_by(QuestionRecord.created_at, QuestionRecord.id)
            ).all()
            return [_to_question(r) for r in records]

    def insert_many(self, questions: Sequence[NewQuestion]) -> list[Question]:
        now = utcnow()
        records = [
            QuestionRecord(
                id=str(uuid.uuid4()),
                text=q.text.strip(),
                event_id=q.event_id,
                category=q.category.value,
                deck_phase=q.deck_phase.value,
                created_at=now,
                is_novelty=q.is_novelty,
                views=0,
                likes=0,
                dislikes=0,
                score=0.0,
            )
            for q in questions
        ]
        try:
            with self._scope() as session:
                session.add_all(records)
                session.flush()
                # usage is empty for new rows; avoid a lazy load on a closed session
                for record in records:
                    record.usage = []
                created = [_to_question(r) for r in records]
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to insert {len(records)} questions: {e}") from e
        logger.debug(f"Inserted {len(created)} questions")
        return created

    def _require(self, session: Session, question_id: str) -> QuestionRecord:
        record = session.get(QuestionRecord, question_id)
        if record is None:
            raise NotFoundError("question", question_id)
        return record

    def _bump(self, session: Session, question_id: str, **values) -> None:
        """Counter update evaluated by the database, so concurrent writers add up."""
        result = session.execute(
            update(QuestionRecord)
            .where(QuestionRecord.id == question_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("question", question_id)

    def record_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        try:
            with self._scope() as session:
                self._require(session, question_id)
                already = session.scalar(
                    select(QuestionUsageRecord.id).where(
                        QuestionUsageRecord.question_id == question_id,
                        QuestionUsageRecord.location_id == location_id,
                        QuestionUsageRecord.used_at == used_at,
                    )
                )
                if already is not None:
                    return
                session.add(
                    QuestionUsageRecord(
                        question_id=question_id, location_id=location_id, used_at=used_at
                    )
                )
                self._bump(session, question_id, views=QuestionRecord.views + 1)
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to record usage of {question_id}: {e}") from e

    def remove_usage(self, question_id: str, location_id: str, used_at: datetime) -> None:
        try:
            with self._scope() as session:
                usage = session.scalars(
                    select(QuestionUsageRecord).where(
                        QuestionUsageRecord.question_id == question_id,
                        QuestionUsageRecord.location_id == location_id,
                        QuestionUsageRecord.used_at == used_at,
                    )
                ).one_or_none()
                if usage is None:
                    return
                session.delete(usage)
                self._bump(
                    session,
                    question_id,
                    views=case((QuestionRecord.views > 0, QuestionRecord.views - 1), else_=0),
                )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to remove usage of {question_id}: {e}") from e

    def update_performance(
        self,
        question_id: str,
        *,
        likes: int = 0,
        dislikes: int = 0,
        views: int = 0,
    ) -> None:
        try:
            with self._scope() as session:
                self._bump(
                    session,
                    question_id,
                    likes=QuestionRecord.likes + likes,
                    dislikes=QuestionRecord.dislikes + dislikes,
                    views=QuestionRecord.views + views,
                )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to update performance of {question_id}: {e}") from e

    def save_scores(self, questions: Sequence[Question]) -> None:
        """Write back the scores computed by the last selection pass."""
        try:
            with self._scope() as session:
                for q in questions:
                    record = session.get(QuestionRecord, q.id)
                    if record is not None:
                        record.score = q.score
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to save scores: {e}") from e


# =============================================================================
# Decks
# =============================================================================


class SqlDeckStore(_SqlStore):
    def _query(self):
        return select(DeckRecord).options(selectinload(DeckRecord.entries))

    def create(self, deck: Deck) -> Deck:
        try:
            with self._scope() as session:
                taken = session.scalar(
                    select(DeckRecord.id).where(DeckRecord.access_code == deck.access_code)
                )
                if taken is not None:
                    raise AccessCodeCollisionError(deck.access_code)
                session.add(
                    DeckRecord(
                        id=deck.id,
                        access_code=deck.access_code,
                        event_id=deck.event_id,
                        location_id=deck.location_id,
                        created_at=deck.created_at,
                        entries=[
                            DeckQuestionRecord(position=i, question_id=qid)
                            for i, qid in enumerate(deck.question_ids)
                        ],
                    )
                )
                session.flush()
        except IntegrityError as e:
            # Lost a race on the unique access_code constraint
            if self.find_by_access_code(deck.access_code) is not None:
                raise AccessCodeCollisionError(deck.access_code) from e
            raise StoreWriteError(f"Failed to create deck {deck.access_code}: {e}") from e
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to create deck {deck.access_code}: {e}") from e
        return deck

    def find_by_access_code(self, access_code: str) -> Deck | None:
        with self._scope() as session:
            record = session.scalars(
                self._query().where(DeckRecord.access_code == access_code)
            ).one_or_none()
            return _to_deck(record) if record else None

    def delete(self, deck_id: str) -> None:
        try:
            with self._scope() as session:
                record = session.get(DeckRecord, deck_id)
                if record is not None:
                    session.delete(record)
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to delete deck {deck_id}: {e}") from e


# =============================================================================
# Feedback
# =============================================================================


class SqlFeedbackStore(_SqlStore):
    def add(self, feedback: Feedback) -> Feedback:
        try:
            with self._scope() as session:
                session.add(
                    FeedbackRecord(
                        id=feedback.id,
                        question_id=feedback.question_id,
                        event_id=feedback.event_id,
                        location_id=feedback.location_id,
                        kind=feedback.kind.value,
                        participant_id=feedback.participant_id,
                        created_at=feedback.created_at,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to record feedback: {e}") from e
        return feedback

    def list_for_event(self, event_id: str) -> list[Feedback]:
        with self._scope() as session:
            records = session.scalars(
                select(FeedbackRecord)
                .where(FeedbackRecord.event_id == event_id)
                .order_by(FeedbackRecord.created_at)
            ).all()
            return [_to_feedback(r) for r in records]


# =============================================================================
# Events and locations
# =============================================================================


class SqlEventDirectory(_SqlStore):
    def get_event(self, event_id: str) -> Event | None:
        with self._scope() as session:
            record = session.get(EventRecord, event_id)
            if record is None:
                return None
            return Event(
                id=record.id,
                name=record.name,
                user_id=record.user_id,
                location_id=record.location_id,
                description=record.description,
                capacity=record.capacity,
                date=record.date,
            )

    def get_location(self, location_id: str) -> Location | None:
        with self._scope() as session:
            record = session.get(LocationRecord, location_id)
            return Location(id=record.id, name=record.name) if record else None

    def list_locations(self) -> list[Location]:
        with self._scope() as session:
            records = session.scalars(select(LocationRecord).order_by(LocationRecord.name)).all()
            return [Location(id=r.id, name=r.name) for r in records]

    def add_event(self, event: Event) -> Event:
        try:
            with self._scope() as session:
                session.add(
                    EventRecord(
                        id=event.id,
                        name=event.name,
                        user_id=event.user_id,
                        location_id=event.location_id,
                        description=event.description,
                        capacity=event.capacity,
                        date=event.date,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to create event {event.name!r}: {e}") from e
        return event

    def add_location(self, location: Location) -> Location:
        try:
            with self._scope() as session:
                session.add(LocationRecord(id=location.id, name=location.name))
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to create location {location.name!r}: {e}") from e
        return location
