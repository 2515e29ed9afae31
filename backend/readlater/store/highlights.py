"""Highlight persistence; every highlight belongs to exactly one article."""

from __future__ import annotations

import sqlite3
from typing import Any, Mapping

import orjson

from readlater.core.errors import NotFoundError, ValidationError
from readlater.core.logging import get_logger
from readlater.db.sqlite import SQLiteDatabase
from readlater.models.entities import Highlight, HighlightColor, RangeSelector
from readlater.store.articles import ArticleStore
from readlater.utils.ids import HIGHLIGHT_PREFIX, new_id
from readlater.utils.time import from_iso, to_iso, utc_now

logger = get_logger(__name__)

HIGHLIGHT_COLUMNS = "id, user_id, article_id, selected_text, selector_json, color, created_at, updated_at"
EDITABLE_FIELDS = frozenset({"selected_text", "selector_info", "color"})


class HighlightStore:
    def __init__(self, database: SQLiteDatabase, articles: ArticleStore) -> None:
        self.db = database
        self.articles = articles

    def list_for_article(self, user_id: str, article_id: str) -> list[Highlight]:
        self.articles.get(user_id, article_id)
        rows = self.db.query(
            f"SELECT {HIGHLIGHT_COLUMNS} FROM highlights WHERE article_id = ? AND user_id = ? "
            "ORDER BY created_at ASC, rowid ASC",
            [article_id, user_id],
        )
        return [_row_to_highlight(row) for row in rows]

    def get(self, user_id: str, highlight_id: str) -> Highlight:
        row = self.db.fetch_one(
            f"SELECT {HIGHLIGHT_COLUMNS} FROM highlights WHERE id = ? AND user_id = ?",
            [highlight_id, user_id],
        )
        if row is None:
            raise NotFoundError("Highlight", highlight_id)
        return _row_to_highlight(row)

    def create(
        self,
        user_id: str,
        article_id: str,
        selected_text: str,
        selector_info: RangeSelector,
        color: HighlightColor = HighlightColor.YELLOW,
    ) -> Highlight:
        self.articles.get(user_id, article_id)
        highlight_id = new_id(HIGHLIGHT_PREFIX)
        now = to_iso(utc_now())
        with self.db.transaction() as cursor:
            cursor.execute(
                f"INSERT INTO highlights ({HIGHLIGHT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    highlight_id,
                    user_id,
                    article_id,
                    selected_text,
                    _dump_selector(selector_info),
                    HighlightColor(color).value,
                    now,
                    now,
                ],
            )
        logger.info(
            "Created highlight %s",
            highlight_id,
            extra={"ctx_user": user_id, "ctx_article": article_id},
        )
        return self.get(user_id, highlight_id)

    def update(self, user_id: str, highlight_id: str, fields: Mapping[str, Any]) -> Highlight:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown highlight fields: {', '.join(sorted(unknown))}")
        self.get(user_id, highlight_id)
        columns: dict[str, Any] = {}
        if fields.get("selected_text"):
            columns["selected_text"] = fields["selected_text"]
        if fields.get("selector_info") is not None:
            columns["selector_json"] = _dump_selector(fields["selector_info"])
        if fields.get("color") is not None:
            columns["color"] = HighlightColor(fields["color"]).value
        columns["updated_at"] = to_iso(utc_now())
        assignments = ", ".join(f"{name} = ?" for name in columns)
        with self.db.transaction() as cursor:
            cursor.execute(
                f"UPDATE highlights SET {assignments} WHERE id = ? AND user_id = ?",
                [*columns.values(), highlight_id, user_id],
            )
        return self.get(user_id, highlight_id)

    def delete(self, user_id: str, highlight_id: str) -> None:
        self.get(user_id, highlight_id)
        with self.db.transaction() as cursor:
            # Notes outlive their highlight and fall back to article-level notes.
            cursor.execute(
                "UPDATE notes SET highlight_id = NULL WHERE highlight_id = ?",
                [highlight_id],
            )
            cursor.execute("DELETE FROM highlights WHERE id = ?", [highlight_id])
        logger.info("Deleted highlight %s", highlight_id, extra={"ctx_user": user_id})


def _dump_selector(selector: RangeSelector | Mapping[str, Any]) -> str:
    if not isinstance(selector, RangeSelector):
        selector = RangeSelector.model_validate(selector)
    return orjson.dumps(selector.to_wire()).decode("utf-8")


def _row_to_highlight(row: sqlite3.Row) -> Highlight:
    return Highlight.model_validate(
        {
            "id": row["id"],
            "user_id": row["user_id"],
            "article_id": row["article_id"],
            "selected_text": row["selected_text"],
            "selector_info": orjson.loads(row["selector_json"]),
            "color": row["color"],
            "created_at": from_iso(row["created_at"]),
            "updated_at": from_iso(row["updated_at"]),
        }
    )


__all__ = ["HighlightStore"]
