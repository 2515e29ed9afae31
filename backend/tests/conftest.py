"""Test fixtures for ReadLater."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("RLP_DB_PATH", str(tmp_path / "readlater.db"))
    monkeypatch.delenv("RLP_CONFIG", raising=False)
    monkeypatch.delenv("RLP_USER_HEADER", raising=False)

    from readlater.api import dependencies as deps

    deps.reset_state()
    yield
    deps.reset_state()


@pytest.fixture
def database(tmp_path: Path):
    from readlater.db.sqlite import SQLiteDatabase

    db = SQLiteDatabase(tmp_path / "store.db")
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def article_store(database):
    from readlater.core.config import Settings
    from readlater.store.articles import ArticleStore

    return ArticleStore(database, Settings(db_path=database.db_path))


@pytest.fixture
def highlight_store(database, article_store):
    from readlater.store.highlights import HighlightStore

    return HighlightStore(database, article_store)


@pytest.fixture
def note_store(database, article_store, highlight_store):
    from readlater.store.notes import NoteStore

    return NoteStore(database, article_store, highlight_store)


@pytest.fixture(scope="session")
def sample_html() -> str:
    return (
        "<html><head><title>Sample</title></head><body>"
        "<h1>Heading</h1>"
        "<p>First paragraph with <b>bold</b> text.</p>"
        "<p>Second paragraph.</p>"
        "</body></html>"
    )
