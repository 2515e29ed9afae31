"""Reading-status transitions driven by progress updates."""

from __future__ import annotations

from readlater.models.entities import ArticleStatus


def next_status(current: ArticleStatus, progress_percent: int) -> ArticleStatus:
    """Advance ``current`` for a new progress value.

    unread -> in-progress -> finished only moves forward. Archiving is an
    explicit user action, so an archived article stays archived.
    """
    if current is ArticleStatus.ARCHIVED:
        return current
    if 0 < progress_percent < 100 and current is ArticleStatus.UNREAD:
        return ArticleStatus.IN_PROGRESS
    if progress_percent >= 100 and current is not ArticleStatus.FINISHED:
        return ArticleStatus.FINISHED
    return current


__all__ = ["next_status"]
