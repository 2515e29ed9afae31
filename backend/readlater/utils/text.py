"""Text processing helpers."""

from __future__ import annotations

import math
import re

WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_WPM = 200
SNIPPET_LENGTH = 300


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def word_count(text: str | None) -> int:
    if not text or not text.strip():
        return 0
    return len(WHITESPACE_RE.split(text.strip()))


def reading_time_minutes(words: int, wpm: int = DEFAULT_WPM) -> int:
    """Estimated reading time, rounded up to whole minutes."""
    if words <= 0:
        return 0
    return math.ceil(words / wpm)


def make_snippet(paragraphs: list[str], limit: int = SNIPPET_LENGTH) -> str:
    """Join the first three paragraphs and cut to ``limit`` characters."""
    joined = " ".join(normalize(p) for p in paragraphs[:3])
    return joined[:limit] + "..."
