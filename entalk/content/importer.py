"""
Question importer - bulk-loads authored questions for an event.

Input is a JSON file holding a list of objects:

    [
        {"text": "What's your favourite hobby?", "category": "Personal", "deck_phase": "Warm-Up"},
        {"text": "...", "category": "Opinion", "deckPhase": "Challenge", "is_novelty": true}
    ]

Rows failing validation are reported and skipped; the rest are inserted.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from entalk.decks.models import Category, DeckPhase, NewQuestion, parse_tag


class QuestionImportRow(BaseModel):
    """One authored question."""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(..., min_length=1, description="Question text")
    category: Category = Field(..., description="Question category")
    deck_phase: DeckPhase = Field(
        ...,
        validation_alias=AliasChoices("deck_phase", "deckPhase"),
        description="Conversational phase",
    )
    is_novelty: bool = Field(
        False,
        validation_alias=AliasChoices("is_novelty", "isNovelty"),
        description="Flag unusual/creative questions",
    )

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value

    @field_validator("category", "deck_phase", mode="before")
    @classmethod
    def _match_tag_case(cls, value: Any, info) -> Any:
        # Authors write "Warm-up" as often as "Warm-Up"
        if not isinstance(value, str):
            return value
        enum = Category if info.field_name == "category" else DeckPhase
        try:
            return parse_tag(enum, value)
        except ValueError:
            # Let the enum validator report the allowed values
            return value


@dataclass
class ImportResult:
    """Result of an import operation."""

    total_parsed: int = 0
    total_imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    question_ids: list[str] = field(default_factory=list)


class QuestionImporter:
    """Import authored questions into a question store."""

    def __init__(self, question_store, dry_run: bool = False):
        """
        Initialize importer.

        Args:
            question_store: Store receiving the new questions
            dry_run: If True, parse and validate but don't insert
        """
        self.question_store = question_store
        self.dry_run = dry_run

    def import_file(self, path: Path | str, event_id: str) -> ImportResult:
        """Import questions from a JSON file."""
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of questions")
        return self.import_rows(data, event_id)

    def import_rows(self, rows: list[Any], event_id: str) -> ImportResult:
        """Validate and insert raw question rows."""
        result = ImportResult(total_parsed=len(rows))
        valid: list[NewQuestion] = []

        for index, row in enumerate(rows):
            try:
                parsed = QuestionImportRow.model_validate(row)
            except ValidationError as e:
                result.skipped += 1
                first = e.errors()[0]
                location = ".".join(str(p) for p in first["loc"])
                result.errors.append(f"row {index}: {location}: {first['msg']}")
                continue
            valid.append(
                NewQuestion(
                    text=parsed.text,
                    event_id=event_id,
                    category=parsed.category,
                    deck_phase=parsed.deck_phase,
                    is_novelty=parsed.is_novelty,
                )
            )

        if valid and not self.dry_run:
            created = self.question_store.insert_many(valid)
            result.total_imported = len(created)
            result.question_ids = [q.id for q in created]

        logger.info(
            f"Imported {result.total_imported}/{result.total_parsed} questions "
            f"for event {event_id} ({result.skipped} skipped)"
        )
        return result
