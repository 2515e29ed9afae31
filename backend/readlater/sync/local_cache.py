"""Durable client-side key-value cache.

Holds what the browser extension keeps in local storage: the article list
(with scroll state and progress) and the pending auth token. Values are kept
in wire form (camelCase JSON) so the file can be exchanged with the API as-is.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping

import orjson
from pydantic import ValidationError as PydanticValidationError

from readlater.core.logging import get_logger
from readlater.models.entities import Article

logger = get_logger(__name__)

ARTICLES_KEY = "articles"
TOKEN_KEY = "token"
DEFAULT_CACHE_PATH = Path("~/.readlater/cache.json")


class LocalCache:
    """JSON file backed store with ``get``/``set``/``remove`` semantics."""

    def __init__(self, path: Path = DEFAULT_CACHE_PATH) -> None:
        self.path = path.expanduser()
        self._lock = threading.Lock()

    # Raw key-value contract -------------------------------------------

    def get(self, keys: str | Iterable[str] | None = None) -> dict[str, Any]:
        with self._lock:
            data = self._read()
        if keys is None:
            return data
        if isinstance(keys, str):
            keys = [keys]
        return {key: data[key] for key in keys if key in data}

    def set(self, items: Mapping[str, Any]) -> None:
        with self._lock:
            data = self._read()
            data.update(items)
            self._write(data)

    def remove(self, keys: str | Iterable[str]) -> None:
        if isinstance(keys, str):
            keys = [keys]
        with self._lock:
            data = self._read()
            for key in keys:
                data.pop(key, None)
            self._write(data)

    # Typed helpers ----------------------------------------------------

    @property
    def token(self) -> str | None:
        return self.get(TOKEN_KEY).get(TOKEN_KEY)

    def articles(self) -> list[Article]:
        articles: list[Article] = []
        for raw in self.get(ARTICLES_KEY).get(ARTICLES_KEY, []):
            try:
                articles.append(Article.model_validate(raw))
            except PydanticValidationError as exc:
                logger.warning("Skipping unreadable cached article %s: %s", raw.get("url"), exc)
        return articles

    def replace_articles(self, articles: Iterable[Article]) -> None:
        self.set({ARTICLES_KEY: [article.to_wire() for article in articles]})

    def upsert_article(self, article: Article) -> Article:
        """Insert or shallow-merge an article into the cached list by URL."""
        with self._lock:
            data = self._read()
            cached = data.get(ARTICLES_KEY, [])
            incoming = article.to_wire(exclude_none=True)
            for index, raw in enumerate(cached):
                if raw.get("url") == article.url:
                    cached[index] = {**raw, **incoming}
                    merged = cached[index]
                    break
            else:
                cached.append(incoming)
                merged = incoming
            data[ARTICLES_KEY] = cached
            self._write(data)
        return Article.model_validate(merged)

    def find_article(self, url: str) -> Article | None:
        for article in self.articles():
            if article.url == url:
                return article
        return None

    # Internal helpers -------------------------------------------------

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = self.path.read_bytes()
        return orjson.loads(raw) if raw.strip() else {}

    def _write(self, data: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        os.replace(tmp_path, self.path)


__all__ = ["LocalCache", "ARTICLES_KEY", "TOKEN_KEY", "DEFAULT_CACHE_PATH"]
