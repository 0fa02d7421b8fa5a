"""
Deck generation error types.

Generation and parse failures of the AI question source never surface here;
they are recovered inside the generator. Everything below reaches the caller.
"""
from __future__ import annotations


class DeckError(Exception):
    """Base class for deck service errors."""


class NotFoundError(DeckError):
    """A referenced event, location, deck or question does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class AccessCodeCollisionError(DeckError):
    """The store already holds a deck with this access code."""

    def __init__(self, access_code: str):
        self.access_code = access_code
        super().__init__(f"Access code already in use: {access_code}")


class AccessCodeExhaustedError(DeckError):
    """No unique access code could be found within the attempt cap."""


class StoreWriteError(DeckError):
    """A persistence write failed; the in-flight operation was abandoned."""


class DeckGenerationError(DeckError):
    """No questions could be selected or generated for a deck."""
