"""
Deck generation: question scoring, coverage/novelty selection, gap filling
and deck assembly.

Usage:
    from entalk.decks import DeckAssembler, DeckConfig

    assembler = DeckAssembler(store, store, store, generator, DeckConfig())
    deck = assembler.generate_deck(location_id, event_id)
"""

from .assembler import DeckAssembler, DeckConfig, LocationLocks
from .coverage import select_with_coverage
from .errors import (
    AccessCodeCollisionError,
    AccessCodeExhaustedError,
    DeckError,
    DeckGenerationError,
    NotFoundError,
    StoreWriteError,
)
from .gap_filler import GapFiller, missing_categories, missing_phases
from .novelty import exclude, select_novelty
from .scoring import ScoreWeights, score, score_pool, score_question

__all__ = [
    "DeckAssembler",
    "DeckConfig",
    "LocationLocks",
    "GapFiller",
    "ScoreWeights",
    "score",
    "score_question",
    "score_pool",
    "select_with_coverage",
    "select_novelty",
    "exclude",
    "missing_categories",
    "missing_phases",
    "DeckError",
    "NotFoundError",
    "AccessCodeCollisionError",
    "AccessCodeExhaustedError",
    "StoreWriteError",
    "DeckGenerationError",
]
