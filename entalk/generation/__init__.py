"""Question generation for backfilling short decks.

Pipeline:
1. Gemini generates questions for the missing categories/phases
2. Replies are parsed as a JSON array, or salvaged line by line
3. Any failure falls back to deterministic templates

Usage:
    from entalk.generation import build_question_generator

    generator = build_question_generator()
    for q in generator.generate([Category.CULTURAL], [DeckPhase.WARM_UP], 3, topic="food"):
        print(q.text)
"""

from .parsing import ParseFallback, ParseOk, ParseResult, parse_question_list
from .question_generator import (
    GeminiQuestionGenerator,
    QuestionGenerator,
    TemplateQuestionGenerator,
    build_question_generator,
)

__all__ = [
    "QuestionGenerator",
    "TemplateQuestionGenerator",
    "GeminiQuestionGenerator",
    "build_question_generator",
    "ParseOk",
    "ParseFallback",
    "ParseResult",
    "parse_question_list",
]
