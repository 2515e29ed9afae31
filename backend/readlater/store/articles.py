"""Authoritative article store on SQLite."""

from __future__ import annotations

import math
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence
from urllib.parse import urlparse

import orjson
from pydantic import TypeAdapter

from readlater.core.config import Settings
from readlater.core.errors import DuplicateIdentityError, NotFoundError, ValidationError
from readlater.core.logging import get_logger
from readlater.db.sqlite import SQLiteDatabase, is_unique_violation
from readlater.models.entities import Article, ArticleStatus, ScrollPosition
from readlater.store.progress import next_status
from readlater.utils.ids import ARTICLE_PREFIX, new_id
from readlater.utils.text import reading_time_minutes
from readlater.utils.time import from_iso, to_iso, utc_now

logger = get_logger(__name__)

ARTICLE_COLUMNS = (
    "id, user_id, url, title, domain, content_snippet, word_count, "
    "estimated_reading_time_minutes, saved_at, last_accessed_at, scroll_position_json, "
    "progress_percent, tags_json, status, created_at, updated_at"
)

SORT_FIELDS: Mapping[str, str] = {
    "savedAt": "saved_at",
    "updatedAt": "updated_at",
    "createdAt": "created_at",
    "lastAccessedAt": "last_accessed_at",
    "title": "title",
    "progressPercent": "progress_percent",
    "estimatedReadingTimeMinutes": "estimated_reading_time_minutes",
}
DEFAULT_SORT = "savedAt-desc"

# Fields a caller may write; identity and store-managed timestamps are excluded.
WRITABLE_FIELDS = frozenset(
    {
        "url",
        "title",
        "domain",
        "content_snippet",
        "word_count",
        "estimated_reading_time_minutes",
        "saved_at",
        "last_accessed_at",
        "scroll_position",
        "progress_percent",
        "tags",
        "status",
    }
)

_SCROLL_ADAPTER = TypeAdapter(ScrollPosition)


@dataclass(slots=True)
class ArticleQuery:
    tag: str | None = None
    status: ArticleStatus | None = None
    search: str | None = None
    sort: str | None = None
    page: int = 1
    limit: int = 50


@dataclass(slots=True)
class ArticlePage:
    articles: list[Article]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class ArticleStore:
    """CRUD and query surface over the ``articles`` table, scoped per user."""

    def __init__(self, database: SQLiteDatabase, settings: Settings) -> None:
        self.db = database
        self.settings = settings

    # Queries -----------------------------------------------------------

    def list(self, user_id: str, query: ArticleQuery) -> ArticlePage:
        if query.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= query.limit <= self.settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self.settings.max_page_size}")
        where, params = self._filters(user_id, query)
        order_by = _order_clause(query.sort or DEFAULT_SORT)
        total = int(self.db.scalar(f"SELECT COUNT(*) FROM articles WHERE {where}", params) or 0)
        rows = self.db.query(
            f"SELECT {ARTICLE_COLUMNS} FROM articles WHERE {where} ORDER BY {order_by} LIMIT ? OFFSET ?",
            [*params, query.limit, (query.page - 1) * query.limit],
        )
        return ArticlePage(
            articles=[_row_to_article(row) for row in rows],
            total=total,
            page=query.page,
            limit=query.limit,
        )

    def find_all(self, user_id: str) -> list[Article]:
        rows = self.db.query(
            f"SELECT {ARTICLE_COLUMNS} FROM articles WHERE user_id = ? ORDER BY saved_at DESC, id",
            [user_id],
        )
        return [_row_to_article(row) for row in rows]

    def get(self, user_id: str, article_id: str, touch: bool = False) -> Article:
        if touch:
            with self.db.transaction() as cursor:
                cursor.execute(
                    "UPDATE articles SET last_accessed_at = ? WHERE id = ? AND user_id = ?",
                    [to_iso(utc_now()), article_id, user_id],
                )
        row = self.db.fetch_one(
            f"SELECT {ARTICLE_COLUMNS} FROM articles WHERE id = ? AND user_id = ?",
            [article_id, user_id],
        )
        if row is None:
            raise NotFoundError("Article", article_id)
        return _row_to_article(row)

    def find_by_url(self, user_id: str, url: str) -> Article | None:
        row = self.db.fetch_one(
            f"SELECT {ARTICLE_COLUMNS} FROM articles WHERE user_id = ? AND url = ?",
            [user_id, url],
        )
        return _row_to_article(row) if row else None

    # Writes ------------------------------------------------------------

    def create(self, user_id: str, article: Article, article_id: str | None = None) -> Article:
        """Insert a new article; ``article_id`` lets the caller pre-assign the id."""
        now = utc_now()
        values = self._derive(article.model_dump(include=WRITABLE_FIELDS))
        values.update(
            id=article_id or new_id(ARTICLE_PREFIX),
            user_id=user_id,
            saved_at=article.saved_at or now,
            created_at=now,
            updated_at=now,
        )
        columns = _to_columns(values)
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        try:
            with self.db.transaction() as cursor:
                cursor.execute(f"INSERT INTO articles ({names}) VALUES ({placeholders})", list(columns.values()))
        except sqlite3.IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateIdentityError(f"Article already saved: {article.url}") from exc
            raise
        logger.info("Created article %s", values["id"], extra={"ctx_user": user_id, "ctx_url": article.url})
        return self.get(user_id, values["id"])

    def save(self, user_id: str, article: Article) -> tuple[Article, bool]:
        """Create, or update the existing article with the same URL.

        Returns the stored article and whether it was newly created.
        """
        existing = self.find_by_url(user_id, article.url)
        if existing is not None:
            fields = article.model_dump(include=WRITABLE_FIELDS, exclude_unset=True)
            return self.update_by_id(user_id, existing.id, fields), False
        return self.create(user_id, article), True

    def update_by_id(self, user_id: str, article_id: str, fields: Mapping[str, Any]) -> Article:
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown article fields: {', '.join(sorted(unknown))}")
        values = self._derive(dict(fields))
        # saved_at is NOT NULL; None in a partial update means "keep".
        if "saved_at" in values and values["saved_at"] is None:
            del values["saved_at"]
        values["updated_at"] = utc_now()
        columns = _to_columns(values)
        assignments = ", ".join(f"{name} = ?" for name in columns)
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    f"UPDATE articles SET {assignments} WHERE id = ? AND user_id = ?",
                    [*columns.values(), article_id, user_id],
                )
                updated = cursor.rowcount
        except sqlite3.IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateIdentityError(f"Another article already uses url {fields.get('url')}") from exc
            raise
        if not updated:
            raise NotFoundError("Article", article_id)
        return self.get(user_id, article_id)

    def update_progress(
        self,
        user_id: str,
        article_id: str,
        scroll_position: Any,
        progress_percent: int,
    ) -> Article:
        if not 0 <= progress_percent <= 100:
            raise ValidationError("progressPercent must be between 0 and 100")
        article = self.get(user_id, article_id)
        status = next_status(article.status, progress_percent)
        if status is not article.status:
            logger.info(
                "Article %s moved from %s to %s",
                article_id,
                article.status.value,
                status.value,
                extra={"ctx_user": user_id},
            )
        fields: dict[str, Any] = {
            "progress_percent": progress_percent,
            "last_accessed_at": utc_now(),
            "status": status,
        }
        if scroll_position is not None:
            fields["scroll_position"] = scroll_position
        return self.update_by_id(user_id, article_id, fields)

    def update_tags(self, user_id: str, article_id: str, tags: Sequence[str]) -> Article:
        if isinstance(tags, str) or not all(isinstance(tag, str) for tag in tags):
            raise ValidationError("Tags must be an array of strings")
        return self.update_by_id(user_id, article_id, {"tags": list(tags)})

    def delete_by_id(self, user_id: str, article_id: str) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("SELECT id FROM articles WHERE id = ? AND user_id = ?", [article_id, user_id])
            if cursor.fetchone() is None:
                raise NotFoundError("Article", article_id)
            cursor.execute("DELETE FROM notes WHERE article_id = ?", [article_id])
            cursor.execute("DELETE FROM highlights WHERE article_id = ?", [article_id])
            cursor.execute("DELETE FROM articles WHERE id = ?", [article_id])
        logger.info("Deleted article %s", article_id, extra={"ctx_user": user_id})

    # Internal helpers -------------------------------------------------

    def _derive(self, values: dict[str, Any]) -> dict[str, Any]:
        for required in ("url", "title", "domain", "progress_percent", "status"):
            if required in values and values[required] is None:
                del values[required]
        if values.get("word_count") and not values.get("estimated_reading_time_minutes"):
            values["estimated_reading_time_minutes"] = reading_time_minutes(
                values["word_count"], self.settings.reading_wpm
            )
        if "url" in values and not values.get("domain"):
            host = urlparse(values["url"]).hostname
            if host:
                values["domain"] = host
        if "tags" in values and values["tags"] is None:
            values["tags"] = []
        return values

    def _filters(self, user_id: str, query: ArticleQuery) -> tuple[str, list[Any]]:
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        if query.tag:
            clauses.append("EXISTS (SELECT 1 FROM json_each(articles.tags_json) WHERE json_each.value = ?)")
            params.append(query.tag)
        if query.status:
            clauses.append("status = ?")
            params.append(ArticleStatus(query.status).value)
        if query.search:
            needle = query.search.casefold()
            clauses.append(
                "(instr(casefold(title), ?) > 0 OR instr(casefold(IFNULL(content_snippet, '')), ?) > 0 "
                "OR instr(casefold(tags_json), ?) > 0)"
            )
            params.extend([needle, needle, needle])
        return " AND ".join(clauses), params


def _order_clause(sort: str) -> str:
    field, _, direction = sort.partition("-")
    column = SORT_FIELDS.get(field)
    if column is None:
        raise ValidationError(f"Cannot sort by {field!r}; expected one of {', '.join(SORT_FIELDS)}")
    return f"{column} {'ASC' if direction == 'asc' else 'DESC'}, id ASC"


def _to_columns(values: Mapping[str, Any]) -> dict[str, Any]:
    columns: dict[str, Any] = {}
    for key, value in values.items():
        if key == "scroll_position":
            columns["scroll_position_json"] = _dump_scroll(value)
        elif key == "tags":
            columns["tags_json"] = orjson.dumps(list(value)).decode("utf-8")
        elif key == "status":
            columns["status"] = ArticleStatus(value).value
        elif isinstance(value, datetime):
            columns[key] = to_iso(value)
        else:
            columns[key] = value
    return columns


def _dump_scroll(value: Any) -> str | None:
    if value is None:
        return None
    position = _SCROLL_ADAPTER.validate_python(value)
    return orjson.dumps(_SCROLL_ADAPTER.dump_python(position, mode="json")).decode("utf-8")


def _row_to_article(row: sqlite3.Row) -> Article:
    scroll = row["scroll_position_json"]
    return Article.model_validate(
        {
            "id": row["id"],
            "user_id": row["user_id"],
            "url": row["url"],
            "title": row["title"],
            "domain": row["domain"],
            "content_snippet": row["content_snippet"],
            "word_count": row["word_count"],
            "estimated_reading_time_minutes": row["estimated_reading_time_minutes"],
            "saved_at": from_iso(row["saved_at"]),
            "last_accessed_at": from_iso(row["last_accessed_at"]),
            "scroll_position": orjson.loads(scroll) if scroll else None,
            "progress_percent": row["progress_percent"],
            "tags": orjson.loads(row["tags_json"] or "[]"),
            "status": row["status"],
            "created_at": from_iso(row["created_at"]),
            "updated_at": from_iso(row["updated_at"]),
        }
    )


__all__ = ["ArticleQuery", "ArticlePage", "ArticleStore", "SORT_FIELDS", "WRITABLE_FIELDS"]
