"""
LLM prompts for conversation question generation.

Questions are for adult English learners chatting at a venue. Every prompt
asks for a bare JSON array of strings so the reply can be parsed without
guessing at structure.
"""
from __future__ import annotations

from collections.abc import Sequence

from entalk.decks.models import Category, DeckPhase

# =============================================================================
# System Prompts
# =============================================================================

SYSTEM_PROMPT = "You are a helpful assistant that generates engaging conversation questions."

NOVELTY_SYSTEM_PROMPT = (
    "You are a creative assistant that generates unusual and thought-provoking "
    "conversation questions."
)


# =============================================================================
# Prompt Builders
# =============================================================================


def _format_tags(tags: Sequence[Category] | Sequence[DeckPhase]) -> str:
    return "\n".join(f"- {tag.value}: {tag.description}" for tag in tags)


def build_gap_prompt(
    categories: Sequence[Category],
    phases: Sequence[DeckPhase],
    count: int,
    topic: str,
) -> str:
    """Prompt for backfilling a deck that is missing categories/phases."""
    return f"""Generate {count} engaging conversation questions about {topic} for English language practice.

Spread the questions across these categories:
{_format_tags(categories)}

And across these deck phases:
{_format_tags(phases)}

Make the questions creative, thought-provoking, and suitable for adult English learners.
Each question must be a single sentence ending with a question mark.
Return only the questions as a JSON array of strings."""


def build_novelty_prompt(count: int) -> str:
    """Prompt for free-standing unusual questions."""
    return f"""Generate {count} unusual, creative, and thought-provoking conversation questions for English language practice.
These should be unique, unexpected questions that make people think differently.
Return only the questions as a JSON array of strings."""


def get_system_prompt(novelty: bool = False) -> str:
    return NOVELTY_SYSTEM_PROMPT if novelty else SYSTEM_PROMPT
