"""
Deck Assembler.

Builds a participant deck for one event at one location:

1. Fetch event questions not used at the location within the lookback window
2. Score every candidate (like rate + freshness + jitter)
3. Coverage-balanced main slice (one per category, one per phase, then by score)
4. Novelty slice from the remainder
5. Backfill up to the deck floor with generated questions
6. Shuffle
7. Persist the deck under a unique access code
8. Record usage so the questions rest at this location for the lookback window

Write ordering: the deck is created before usage is recorded. If a usage
write fails, already-recorded entries are removed and the deck is deleted
before StoreWriteError is raised. Usage writes are idempotent, so
reconcile_deck_usage() can always re-apply a deck's entries.

Concurrency: generation is serialised per location with an in-process lock.
Processes that share a database but not memory get a loose freshness
guarantee: two decks generated at the same instant may share questions.
"""
from __future__ import annotations

import random
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from .access_codes import generate_access_code, normalize_access_code
from .coverage import select_with_coverage
from .errors import (
    AccessCodeCollisionError,
    AccessCodeExhaustedError,
    DeckError,
    DeckGenerationError,
    NotFoundError,
    StoreWriteError,
)
from .gap_filler import GapFiller
from .models import Deck, Event, Question, normalize_text, utcnow
from .novelty import exclude, select_novelty
from .scoring import ScoreWeights, score_pool


@dataclass
class DeckConfig:
    """Configuration for deck generation."""

    lookback_days: int = 28
    main_size: int = 12
    novelty_size: int = 3
    floor: int = 15
    access_code_length: int = 6
    access_code_attempts: int = 10
    score_weights: ScoreWeights = field(default_factory=ScoreWeights)

    @classmethod
    def from_settings(cls, settings) -> DeckConfig:
        return cls(
            **settings.get_deck_config(),
            score_weights=ScoreWeights.from_settings(settings),
        )


def unique_by_text(questions: list[Question]) -> list[Question]:
    """Keep the highest-scored question per normalized text, order preserved."""
    best: dict[str, Question] = {}
    for question in questions:
        key = normalize_text(question.text)
        if key not in best or question.score > best[key].score:
            best[key] = question
    keep = {q.id for q in best.values()}
    return [q for q in questions if q.id in keep]


class LocationLocks:
    """
    One lock per location id, created on first use.

    Locks live for the lifetime of the object. Locations are registered
    venues, so the map stays as small as the location table.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_location(self, location_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(location_id)
            if lock is None:
                lock = self._locks[location_id] = threading.Lock()
            return lock


class DeckAssembler:
    """Generates, persists and resolves question decks."""

    def __init__(
        self,
        question_store,
        deck_store,
        event_directory,
        generator,
        config: DeckConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
        code_factory: Callable[[int], str] | None = None,
        locks: LocationLocks | None = None,
    ):
        """
        Initialize the assembler with its collaborators.

        Args:
            question_store: QuestionStore implementation
            deck_store: DeckStore implementation
            event_directory: EventDirectory used to validate ids and read topics
            generator: QuestionGenerator used for backfill
            config: DeckConfig or None for defaults
            clock: Returns "now" as naive UTC (injectable for tests)
            rng: Random source for scoring jitter and shuffling
            code_factory: Access code generator taking the code length
            locks: Shared per-location locks (share between assemblers in one process)
        """
        self.question_store = question_store
        self.deck_store = deck_store
        self.event_directory = event_directory
        self.config = config or DeckConfig()
        self.gap_filler = GapFiller(question_store, generator, self.config.floor)
        self._clock = clock or utcnow
        self._rng = rng or random.Random()
        self._code_factory = code_factory or generate_access_code
        self._locks = locks or LocationLocks()

    # ========================================
    # Generation
    # ========================================

    def generate_deck(self, location_id: str, event_id: str) -> Deck:
        """
        Generate and persist a deck for an event at a location.

        Raises:
            NotFoundError: Unknown event or location
            DeckGenerationError: Nothing could be selected or generated
            AccessCodeExhaustedError: No unique access code within the attempt cap
            StoreWriteError: Persistence failed; no partial deck is left behind
        """
        event = self.event_directory.get_event(event_id)
        if event is None:
            raise NotFoundError("event", event_id)
        if self.event_directory.get_location(location_id) is None:
            raise NotFoundError("location", location_id)

        with self._locks.for_location(location_id):
            return self._generate(event, location_id)

    def _generate(self, event: Event, location_id: str) -> Deck:
        now = self._clock()
        cutoff = now - timedelta(days=self.config.lookback_days)

        candidates = [
            q
            for q in self.question_store.find_available(event.id, location_id, cutoff)
            if q.event_id == event.id
        ]
        scored = score_pool(candidates, now, weights=self.config.score_weights, rng=self._rng)
        self.question_store.save_scores(scored)
        scored = unique_by_text(scored)

        main = select_with_coverage(list(scored), self.config.main_size)
        novelty = select_novelty(exclude(scored, main), self.config.novelty_size)
        selected: list[Question] = main + novelty

        logger.info(
            f"Event {event.id} @ {location_id}: {len(candidates)} available, "
            f"{len(main)} main + {len(novelty)} novelty selected"
        )

        if len(selected) < self.config.floor:
            selected.extend(self.gap_filler.fill_gaps(selected, event.id, topic=event.name))

        if not selected:
            raise DeckGenerationError(
                f"No questions available or generated for event {event.id} at {location_id}"
            )

        self._rng.shuffle(selected)

        deck = self._create_deck(event.id, location_id, [q.id for q in selected], now)
        self._record_usage(deck)

        logger.info(f"Deck {deck.access_code} created with {deck.size} questions")
        return deck

    def _create_deck(
        self,
        event_id: str,
        location_id: str,
        question_ids: list[str],
        created_at: datetime,
    ) -> Deck:
        for attempt in range(1, self.config.access_code_attempts + 1):
            deck = Deck(
                id=str(uuid.uuid4()),
                access_code=self._code_factory(self.config.access_code_length),
                event_id=event_id,
                location_id=location_id,
                question_ids=tuple(question_ids),
                created_at=created_at,
            )
            try:
                return self.deck_store.create(deck)
            except AccessCodeCollisionError:
                logger.warning(
                    f"Access code collision on attempt {attempt}/"
                    f"{self.config.access_code_attempts}; retrying"
                )

        raise AccessCodeExhaustedError(
            f"No unique access code after {self.config.access_code_attempts} attempts"
        )

    def _record_usage(self, deck: Deck) -> None:
        recorded: list[str] = []
        try:
            for question_id in deck.question_ids:
                self.question_store.record_usage(question_id, deck.location_id, deck.created_at)
                recorded.append(question_id)
        except (StoreWriteError, NotFoundError) as e:
            logger.error(f"Usage write failed for deck {deck.access_code}: {e}; rolling back")
            self._rollback(deck, recorded)
            raise StoreWriteError(f"Failed to record usage for deck {deck.access_code}") from e

    def _rollback(self, deck: Deck, recorded: list[str]) -> None:
        # The deck is deleted even when a usage removal fails
        try:
            for question_id in recorded:
                try:
                    self.question_store.remove_usage(
                        question_id, deck.location_id, deck.created_at
                    )
                except DeckError as e:
                    logger.error(
                        f"Could not remove usage of {question_id} for deck "
                        f"{deck.access_code}: {e}; run deck reconcile after repair"
                    )
        finally:
            self.deck_store.delete(deck.id)

    def reconcile_deck_usage(self, access_code: str) -> Deck:
        """Re-apply every usage entry of an existing deck (idempotent)."""
        deck = self.get_deck(access_code)
        for question_id in deck.question_ids:
            self.question_store.record_usage(question_id, deck.location_id, deck.created_at)
        return deck

    # ========================================
    # Lookup
    # ========================================

    def get_deck(self, access_code: str) -> Deck:
        code = normalize_access_code(access_code)
        deck = self.deck_store.find_by_access_code(code)
        if deck is None:
            raise NotFoundError("deck", code)
        return deck

    def get_deck_questions(self, access_code: str) -> list[Question]:
        """Questions of a deck in persisted order."""
        deck = self.get_deck(access_code)
        questions = []
        for question_id in deck.question_ids:
            question = self.question_store.get(question_id)
            if question is None:
                raise NotFoundError("question", question_id)
            questions.append(question)
        return questions
