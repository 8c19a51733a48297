"""
Detect an embedded JSON payload in free-form model output and classify it by shape.

The model is asked for fenced JSON, but nothing guarantees it: prose may surround the
block, the fence may be missing, or the JSON may be broken. Every failure here degrades
to "no structured content"; nothing raises.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from tutorchat.schemas import ContentKind, Flashcards, Quiz, Roadmap, StructuredContent

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)

# Field presence decides the kind; checked in this order.
_SHAPES: tuple[tuple[str, ContentKind, type], ...] = (
    ("questions", ContentKind.quiz, Quiz),
    ("cards", ContentKind.flashcards, Flashcards),
    ("steps", ContentKind.roadmap, Roadmap),
)


@dataclass(frozen=True)
class Extraction:
    content: StructuredContent
    start: int
    end: int

    def prose(self, raw: str) -> str:
        """The response text with the payload span cut out."""
        return _clean_text(raw[: self.start] + raw[self.end :])


def _clean_text(text: str) -> str:
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _find_candidate(raw: str) -> tuple[str, int, int] | None:
    """Return (candidate, span start, span end) or None."""
    untagged: re.Match[str] | None = None
    for m in _FENCE_RE.finditer(raw):
        tag = m.group(1).lower()
        if tag == "json":
            return m.group(2), m.start(), m.end()
        if tag == "" and untagged is None and m.group(2).lstrip().startswith("{"):
            untagged = m
    if untagged is not None:
        return untagged.group(2), untagged.start(), untagged.end()

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end < start:
        return None
    return raw[start : end + 1], start, end + 1


def _classify(obj: dict[str, Any]) -> StructuredContent | None:
    for key, kind, model in _SHAPES:
        if isinstance(obj.get(key), list):
            return StructuredContent(kind=kind, data=model.model_validate(obj))
    return None


def extract_span(raw: str | None) -> Extraction | None:
    if not raw:
        return None
    found = _find_candidate(raw)
    if found is None:
        return None
    candidate, start, end = found

    try:
        obj = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        logger.debug("Structured payload did not parse: %s", e)
        return None
    if not isinstance(obj, dict):
        return None

    try:
        content = _classify(obj)
    except ValidationError as e:
        logger.debug("Structured payload has an unusable shape: %s", e)
        return None
    if content is None:
        return None
    return Extraction(content=content, start=start, end=end)


def extract(raw: str | None) -> StructuredContent | None:
    """Return the embedded QUIZ / FLASHCARDS / ROADMAP payload, or None for plain text."""
    found = extract_span(raw)
    return found.content if found else None
