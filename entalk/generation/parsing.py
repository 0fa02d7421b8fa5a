"""
Parsing of AI replies into question texts.

Models are asked for a JSON array of strings but do not always comply. The
parser never raises: it returns ParseOk when a JSON array was found, or
ParseFallback carrying whatever the line heuristic could salvage.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_LEADING_NUMBER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")
_WRAPPING_QUOTES = re.compile(r"^[\"'“‘]+|[\"'”’,]+$")


@dataclass(frozen=True)
class ParseOk:
    questions: list[str]


@dataclass(frozen=True)
class ParseFallback:
    reason: str
    questions: list[str] = field(default_factory=list)


ParseResult = ParseOk | ParseFallback


def _clean(items: list) -> list[str]:
    texts = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("text") or item.get("question") or ""
        if not isinstance(item, str):
            continue
        item = item.strip()
        if item:
            texts.append(item)
    return texts


def _extract_json_array(content: str) -> str | None:
    fenced = _CODE_FENCE.search(content)
    if fenced:
        content = fenced.group(1)
    start = content.find("[")
    end = content.rfind("]")
    if start == -1 or end <= start:
        return None
    return content[start : end + 1]


def extract_question_lines(content: str) -> list[str]:
    """Line heuristic: keep lines with a '?' minus numbering and quotes."""
    questions = []
    for line in content.splitlines():
        line = line.strip()
        if not line or "?" not in line:
            continue
        line = _LEADING_NUMBER.sub("", line)
        line = _WRAPPING_QUOTES.sub("", line).strip()
        if line:
            questions.append(line)
    return questions


def parse_question_list(content: str | None) -> ParseResult:
    """Parse an AI reply into a list of question strings."""
    if not content or not content.strip():
        return ParseFallback(reason="empty response")

    json_str = _extract_json_array(content)
    if json_str is None:
        return ParseFallback(
            reason="response is not in JSON format",
            questions=extract_question_lines(content),
        )

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        return ParseFallback(
            reason=f"invalid JSON: {e.msg}",
            questions=extract_question_lines(content),
        )

    if not isinstance(data, list):
        return ParseFallback(reason="JSON is not an array", questions=extract_question_lines(content))

    return ParseOk(questions=_clean(data))
