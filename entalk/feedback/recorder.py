"""
Feedback Recorder.

Turns participant swipes into append-only Feedback rows and performance
counter updates, which the scoring engine reads on the next deck generation.
"""
from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from entalk.decks.errors import NotFoundError
from entalk.decks.models import Feedback, FeedbackKind, QuestionFeedbackStats, utcnow


class FeedbackRecorder:
    def __init__(
        self,
        question_store,
        feedback_store,
        clock: Callable[[], datetime] | None = None,
    ):
        self.question_store = question_store
        self.feedback_store = feedback_store
        self._clock = clock or utcnow

    def record(
        self,
        question_id: str,
        event_id: str,
        location_id: str,
        kind: FeedbackKind | str,
        participant_id: str | None = None,
    ) -> Feedback:
        """
        Record a like/dislike for a question.

        Raises:
            NotFoundError: Question missing or not part of the event
            ValueError: Unknown feedback kind
        """
        kind = FeedbackKind(kind)
        question = self.question_store.get(question_id)
        if question is None or question.event_id != event_id:
            raise NotFoundError("question", question_id)

        feedback = self.feedback_store.add(
            Feedback(
                id=str(uuid.uuid4()),
                question_id=question_id,
                event_id=event_id,
                location_id=location_id,
                kind=kind,
                participant_id=participant_id,
                created_at=self._clock(),
            )
        )
        if kind is FeedbackKind.LIKE:
            self.question_store.update_performance(question_id, likes=1)
        else:
            self.question_store.update_performance(question_id, dislikes=1)

        logger.debug(f"Recorded {kind.value} for question {question_id} at {location_id}")
        return feedback

    def record_view(self, question_id: str) -> None:
        """Count one participant seeing the question card."""
        if self.question_store.get(question_id) is None:
            raise NotFoundError("question", question_id)
        self.question_store.update_performance(question_id, views=1)

    def event_summary(self, event_id: str) -> list[QuestionFeedbackStats]:
        """Per-question like/dislike totals for an event, most discussed first."""
        counts: dict[str, dict[FeedbackKind, int]] = {}
        for feedback in self.feedback_store.list_for_event(event_id):
            per_kind = counts.setdefault(feedback.question_id, {k: 0 for k in FeedbackKind})
            per_kind[feedback.kind] += 1

        stats = []
        for question in self.question_store.find_by_event(event_id):
            per_kind = counts.get(question.id, {})
            likes = per_kind.get(FeedbackKind.LIKE, 0)
            dislikes = per_kind.get(FeedbackKind.DISLIKE, 0)
            stats.append(
                QuestionFeedbackStats(
                    question_id=question.id,
                    text=question.text,
                    likes=likes,
                    dislikes=dislikes,
                    total=likes + dislikes,
                )
            )

        # sorted() is stable, so ties keep question creation order
        return sorted(stats, key=lambda s: s.total, reverse=True)
