"""Bulk import and AI-assisted authoring of event questions."""

from .authoring import QuestionAuthor
from .importer import ImportResult, QuestionImporter, QuestionImportRow

__all__ = ["QuestionImporter", "QuestionImportRow", "ImportResult", "QuestionAuthor"]
