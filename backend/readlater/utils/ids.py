"""ID helpers."""

from __future__ import annotations

import uuid

ARTICLE_PREFIX = "art"
HIGHLIGHT_PREFIX = "hl"
NOTE_PREFIX = "note"


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 hex string with optional entity prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base
