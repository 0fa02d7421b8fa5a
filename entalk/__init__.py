"""entalk: conversation question decks for events and venues."""

__version__ = "1.0.0"
