"""Note persistence; notes hang off an article and optionally a highlight."""

from __future__ import annotations

import sqlite3

from readlater.core.errors import NotFoundError
from readlater.core.logging import get_logger
from readlater.db.sqlite import SQLiteDatabase
from readlater.models.entities import Note
from readlater.store.articles import ArticleStore
from readlater.store.highlights import HighlightStore
from readlater.utils.ids import NOTE_PREFIX, new_id
from readlater.utils.time import from_iso, to_iso, utc_now

logger = get_logger(__name__)

NOTE_COLUMNS = "id, user_id, article_id, highlight_id, note_text, created_at, updated_at"


class NoteStore:
    def __init__(self, database: SQLiteDatabase, articles: ArticleStore, highlights: HighlightStore) -> None:
        self.db = database
        self.articles = articles
        self.highlights = highlights

    def list_for_article(self, user_id: str, article_id: str) -> list[Note]:
        self.articles.get(user_id, article_id)
        rows = self.db.query(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE article_id = ? AND user_id = ? "
            "ORDER BY created_at ASC, rowid ASC",
            [article_id, user_id],
        )
        return [_row_to_note(row) for row in rows]

    def get(self, user_id: str, note_id: str) -> Note:
        row = self.db.fetch_one(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = ? AND user_id = ?",
            [note_id, user_id],
        )
        if row is None:
            raise NotFoundError("Note", note_id)
        return _row_to_note(row)

    def create(
        self,
        user_id: str,
        article_id: str,
        note_text: str,
        highlight_id: str | None = None,
    ) -> Note:
        self.articles.get(user_id, article_id)
        if highlight_id:
            highlight = self.highlights.get(user_id, highlight_id)
            if highlight.article_id != article_id:
                raise NotFoundError("Highlight", highlight_id)
        note_id = new_id(NOTE_PREFIX)
        now = to_iso(utc_now())
        with self.db.transaction() as cursor:
            cursor.execute(
                f"INSERT INTO notes ({NOTE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [note_id, user_id, article_id, highlight_id or None, note_text, now, now],
            )
        logger.info("Created note %s", note_id, extra={"ctx_user": user_id, "ctx_article": article_id})
        return self.get(user_id, note_id)

    def update(self, user_id: str, note_id: str, note_text: str) -> Note:
        self.get(user_id, note_id)
        with self.db.transaction() as cursor:
            cursor.execute(
                "UPDATE notes SET note_text = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                [note_text, to_iso(utc_now()), note_id, user_id],
            )
        return self.get(user_id, note_id)

    def delete(self, user_id: str, note_id: str) -> None:
        self.get(user_id, note_id)
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM notes WHERE id = ?", [note_id])
        logger.info("Deleted note %s", note_id, extra={"ctx_user": user_id})


def _row_to_note(row: sqlite3.Row) -> Note:
    return Note.model_validate(
        {
            "id": row["id"],
            "user_id": row["user_id"],
            "article_id": row["article_id"],
            "highlight_id": row["highlight_id"],
            "note_text": row["note_text"],
            "created_at": from_iso(row["created_at"]),
            "updated_at": from_iso(row["updated_at"]),
        }
    )


__all__ = ["NoteStore"]
