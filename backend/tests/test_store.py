"""Tests for the article, highlight and note stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from readlater.core.errors import DuplicateIdentityError, NotFoundError, ValidationError
from readlater.models.entities import Article, ArticleStatus, PixelPosition, RangeSelector
from readlater.store.articles import ArticleQuery

USER = "user-1"
SELECTOR = RangeSelector(start_path=[0, 0], start_offset=0, end_path=[0, 0], end_offset=4)


def make_article(path: str, title: str = "Title", **extra) -> Article:
    return Article(url=f"https://example.com/{path}", title=title, **extra)


def test_create_derives_domain_and_reading_time(article_store) -> None:
    article = article_store.create(USER, make_article("a", word_count=450))

    assert article.id.startswith("art_")
    assert article.domain == "example.com"
    assert article.estimated_reading_time_minutes == 3
    assert article.status is ArticleStatus.UNREAD
    assert article.progress_percent == 0
    assert article.saved_at is not None
    assert article.updated_at.tzinfo is not None


def test_create_rejects_duplicate_url(article_store) -> None:
    article_store.create(USER, make_article("a"))
    with pytest.raises(DuplicateIdentityError):
        article_store.create(USER, make_article("a", title="Again"))


def test_same_url_is_allowed_for_other_users(article_store) -> None:
    article_store.create(USER, make_article("a"))
    other = article_store.create("user-2", make_article("a"))
    assert other.user_id == "user-2"


def test_save_upserts_by_url(article_store) -> None:
    first, created = article_store.save(USER, make_article("a", title="First"))
    second, created_again = article_store.save(USER, make_article("a", title="Second"))

    assert created and not created_again
    assert second.id == first.id
    assert second.title == "Second"
    assert len(article_store.find_all(USER)) == 1


def test_get_is_scoped_to_user(article_store) -> None:
    article = article_store.create(USER, make_article("a"))
    with pytest.raises(NotFoundError):
        article_store.get("someone-else", article.id)


def test_update_rejects_unknown_fields(article_store) -> None:
    article = article_store.create(USER, make_article("a"))
    with pytest.raises(ValidationError):
        article_store.update_by_id(USER, article.id, {"user_id": "intruder"})


def test_update_progress_tracks_status(article_store) -> None:
    article = article_store.create(USER, make_article("a"))

    reading = article_store.update_progress(USER, article.id, PixelPosition(value=420), 75)
    assert reading.status is ArticleStatus.IN_PROGRESS
    assert reading.scroll_position == PixelPosition(value=420)
    assert reading.last_accessed_at is not None

    done = article_store.update_progress(USER, article.id, None, 100)
    assert done.status is ArticleStatus.FINISHED
    assert done.progress_percent == 100


def test_update_progress_keeps_archived(article_store) -> None:
    article = article_store.create(USER, make_article("a", status=ArticleStatus.ARCHIVED))
    updated = article_store.update_progress(USER, article.id, None, 40)
    assert updated.status is ArticleStatus.ARCHIVED


def test_update_progress_validates_range(article_store) -> None:
    article = article_store.create(USER, make_article("a"))
    with pytest.raises(ValidationError):
        article_store.update_progress(USER, article.id, None, 101)


def test_list_filters_sorts_and_paginates(article_store) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for index in range(5):
        article_store.create(
            USER,
            make_article(
                f"p{index}",
                title=f"Post {index}",
                saved_at=base + timedelta(days=index),
                tags=["python"] if index % 2 == 0 else ["rust"],
            ),
        )

    page = article_store.list(USER, ArticleQuery(limit=2))
    assert page.total == 5
    assert page.pages == 3
    assert [a.title for a in page.articles] == ["Post 4", "Post 3"]

    tagged = article_store.list(USER, ArticleQuery(tag="python", sort="savedAt-asc"))
    assert [a.title for a in tagged.articles] == ["Post 0", "Post 2", "Post 4"]

    found = article_store.list(USER, ArticleQuery(search="post 3"))
    assert [a.title for a in found.articles] == ["Post 3"]

    with pytest.raises(ValidationError):
        article_store.list(USER, ArticleQuery(sort="color-asc"))


def test_search_treats_wildcards_literally(article_store) -> None:
    article_store.create(USER, make_article("a", title="100% done"))
    article_store.create(USER, make_article("b", title="1000 words"))

    found = article_store.list(USER, ArticleQuery(search="100%"))
    assert [a.title for a in found.articles] == ["100% done"]


def test_search_ignores_case_beyond_ascii(article_store) -> None:
    article_store.create(USER, make_article("a", title="CAFÉ notes"))
    article_store.create(USER, make_article("b", title="Straße guide", tags=["ÜBERSICHT"]))

    assert [a.title for a in article_store.list(USER, ArticleQuery(search="café")).articles] == ["CAFÉ notes"]
    assert [a.title for a in article_store.list(USER, ArticleQuery(search="STRASSE")).articles] == ["Straße guide"]
    assert [a.title for a in article_store.list(USER, ArticleQuery(search="übersicht")).articles] == ["Straße guide"]


def test_delete_article_cascades(article_store, highlight_store, note_store) -> None:
    article = article_store.create(USER, make_article("a"))
    first = highlight_store.create(USER, article.id, "Lore", SELECTOR)
    highlight_store.create(USER, article.id, "Ipsum", SELECTOR)
    note_store.create(USER, article.id, "Worth a reread", highlight_id=first.id)

    article_store.delete_by_id(USER, article.id)

    db = article_store.db
    assert db.scalar("SELECT COUNT(*) FROM highlights WHERE article_id = ?", [article.id]) == 0
    assert db.scalar("SELECT COUNT(*) FROM notes WHERE article_id = ?", [article.id]) == 0
    with pytest.raises(NotFoundError):
        article_store.get(USER, article.id)


def test_highlight_requires_owned_article(article_store, highlight_store) -> None:
    article = article_store.create(USER, make_article("a"))
    with pytest.raises(NotFoundError):
        highlight_store.create("user-2", article.id, "Lore", SELECTOR)


def test_highlight_update_and_selector_round_trip(article_store, highlight_store) -> None:
    article = article_store.create(USER, make_article("a"))
    highlight = highlight_store.create(USER, article.id, "Lore", SELECTOR)

    assert highlight.selector_info == SELECTOR
    updated = highlight_store.update(USER, highlight.id, {"color": "green"})
    assert updated.color.value == "green"
    assert updated.selected_text == "Lore"


def test_deleting_highlight_detaches_notes(article_store, highlight_store, note_store) -> None:
    article = article_store.create(USER, make_article("a"))
    highlight = highlight_store.create(USER, article.id, "Lore", SELECTOR)
    note = note_store.create(USER, article.id, "Keep me", highlight_id=highlight.id)

    highlight_store.delete(USER, highlight.id)

    kept = note_store.get(USER, note.id)
    assert kept.highlight_id is None
    assert kept.note_text == "Keep me"


def test_note_highlight_must_belong_to_article(article_store, highlight_store, note_store) -> None:
    first = article_store.create(USER, make_article("a"))
    second = article_store.create(USER, make_article("b"))
    highlight = highlight_store.create(USER, first.id, "Lore", SELECTOR)

    with pytest.raises(NotFoundError):
        note_store.create(USER, second.id, "Wrong article", highlight_id=highlight.id)


def test_notes_are_listed_in_creation_order(article_store, note_store) -> None:
    article = article_store.create(USER, make_article("a"))
    note_store.create(USER, article.id, "one")
    note_store.create(USER, article.id, "two")

    assert [note.note_text for note in note_store.list_for_article(USER, article.id)] == ["one", "two"]
