"""Thin HTTP client for the ReadLater API."""

from __future__ import annotations

import os
from typing import Any, Iterable, Optional

import requests

from readlater.core.errors import ClientError
from readlater.models.entities import Article, RangeSelector, ScrollPosition

DEFAULT_HOST = "http://127.0.0.1:5000"
DEFAULT_TIMEOUT = 30


def resolve_host(override: Optional[str] = None) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("RLP_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


class ApiClient:
    """Calls the API with the cached bearer token; failures raise ``ClientError``."""

    def __init__(
        self,
        host: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = resolve_host(host)
        self.token = token
        self.timeout = timeout
        self.http = session or requests.Session()

    def request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise ClientError(f"{method} {path} failed: {exc}") from exc
        if not resp.ok:
            try:
                detail = resp.json()
            except ValueError:
                detail = resp.text
            raise ClientError(
                f"Request failed ({resp.status_code})",
                status_code=resp.status_code,
                details=detail,
            )
        if not resp.content:
            return {}
        return resp.json()

    # Articles ---------------------------------------------------------

    def save_article(self, article: Article) -> Article:
        payload = article.to_wire(exclude_none=True)
        data = self.request("POST", "/articles", json=payload)
        return Article.model_validate(data["article"])

    def list_articles(self, **params: Any) -> dict[str, Any]:
        query = {key: value for key, value in params.items() if value is not None}
        return self.request("GET", "/articles", params=query)

    def sync(self, articles: Iterable[Article]) -> dict[str, Any]:
        payload = {"articles": [article.to_wire(exclude_none=True) for article in articles]}
        return self.request("POST", "/articles/sync", json=payload)

    def update_progress(
        self,
        article_id: str,
        progress_percent: int,
        scroll_position: ScrollPosition | None = None,
    ) -> Article:
        payload: dict[str, Any] = {"progressPercent": progress_percent}
        if scroll_position is not None:
            payload["scrollPosition"] = scroll_position.to_wire()
        data = self.request("PUT", f"/articles/{article_id}/progress", json=payload)
        return Article.model_validate(data["article"])

    # Highlights and notes ---------------------------------------------

    def create_highlight(
        self,
        article_id: str,
        selected_text: str,
        selector: RangeSelector,
        color: str = "yellow",
    ) -> dict[str, Any]:
        payload = {"selectedText": selected_text, "selectorInfo": selector.to_wire(), "color": color}
        return self.request("POST", f"/highlights/article/{article_id}", json=payload)["highlight"]

    def resolve_anchors(self, article_id: str, html: str) -> dict[str, Any]:
        return self.request("POST", f"/highlights/article/{article_id}/resolve", json={"html": html})

    def create_note(self, article_id: str, note_text: str, highlight_id: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"noteText": note_text}
        if highlight_id:
            payload["highlightId"] = highlight_id
        return self.request("POST", f"/notes/article/{article_id}", json=payload)["note"]


__all__ = ["ApiClient", "DEFAULT_HOST", "resolve_host"]
