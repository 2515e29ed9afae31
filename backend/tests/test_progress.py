"""Tests for reading-status transitions."""

import pytest

from readlater.models.entities import ArticleStatus
from readlater.store.progress import next_status


def test_progress_walks_status_forward() -> None:
    status = ArticleStatus.UNREAD
    status = next_status(status, 0)
    assert status is ArticleStatus.UNREAD
    status = next_status(status, 75)
    assert status is ArticleStatus.IN_PROGRESS
    status = next_status(status, 100)
    assert status is ArticleStatus.FINISHED


def test_finished_does_not_regress() -> None:
    assert next_status(ArticleStatus.FINISHED, 10) is ArticleStatus.FINISHED


def test_jump_straight_to_finished() -> None:
    assert next_status(ArticleStatus.UNREAD, 100) is ArticleStatus.FINISHED


@pytest.mark.parametrize("percent", [0, 50, 100])
def test_archived_is_sticky(percent: int) -> None:
    assert next_status(ArticleStatus.ARCHIVED, percent) is ArticleStatus.ARCHIVED
