"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from readlater.core.config import Settings, get_settings
from readlater.db.sqlite import SQLiteDatabase
from readlater.store.articles import ArticleStore
from readlater.store.highlights import HighlightStore
from readlater.store.notes import NoteStore
from readlater.sync.reconciler import Reconciler

_DB: SQLiteDatabase | None = None
_ARTICLES: ArticleStore | None = None
_HIGHLIGHTS: HighlightStore | None = None
_NOTES: NoteStore | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_article_store() -> ArticleStore:
    global _ARTICLES
    if _ARTICLES is None:
        _ARTICLES = ArticleStore(get_database(), get_app_settings())
    return _ARTICLES


def get_highlight_store() -> HighlightStore:
    global _HIGHLIGHTS
    if _HIGHLIGHTS is None:
        _HIGHLIGHTS = HighlightStore(get_database(), get_article_store())
    return _HIGHLIGHTS


def get_note_store() -> NoteStore:
    global _NOTES
    if _NOTES is None:
        _NOTES = NoteStore(get_database(), get_article_store(), get_highlight_store())
    return _NOTES


def get_reconciler(store: ArticleStore = Depends(get_article_store)) -> Reconciler:
    return Reconciler(store, max_workers=get_app_settings().sync_max_workers)


def get_user_id(request: Request) -> str:
    """Identity placed on the request by the upstream auth gateway.

    The value is trusted as-is; a ``Bearer`` prefix is stripped so the
    ``Authorization`` header can be used directly behind a verifying proxy.
    """
    header = get_app_settings().user_header
    value = (request.headers.get(header) or "").strip()
    if value.lower().startswith("bearer "):
        value = value[len("bearer ") :].strip()
    if not value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return value


def reset_state() -> None:
    """Drop cached singletons so the next request rebuilds them."""
    global _DB, _ARTICLES, _HIGHLIGHTS, _NOTES
    if _DB is not None:
        _DB.close()
    _DB = None
    _ARTICLES = None
    _HIGHLIGHTS = None
    _NOTES = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_article_store",
    "get_highlight_store",
    "get_note_store",
    "get_reconciler",
    "get_user_id",
    "reset_state",
]
