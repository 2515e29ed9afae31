"""Action dispatch for messages sent by the popup and content scripts.

Every handler takes the session and the message dict and returns a response
dict. Remote failures never escape: the handler falls back to the local cache
and reports ``success: False`` with the error message.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from readlater.client.extract import extract_article_info
from readlater.client.session import ClientSession
from readlater.core.errors import ClientError
from readlater.core.logging import get_logger
from readlater.models.entities import Article, ScrollPosition
from readlater.store.progress import next_status
from readlater.sync.local_cache import ARTICLES_KEY
from readlater.utils.time import utc_now

logger = get_logger(__name__)

Message = Mapping[str, Any]
Response = dict[str, Any]
Handler = Callable[[ClientSession, Message], Response]

_SCROLL_ADAPTER = TypeAdapter(ScrollPosition)


class MessageDispatcher:
    """Routes messages to handlers registered by action name."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, action: str) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            self._handlers[action] = func
            return func

        return decorator

    def dispatch(self, session: ClientSession, message: Message) -> Response:
        action = message.get("action")
        handler = self._handlers.get(action)
        if handler is None:
            return {"success": False, "error": f"Unknown action: {action}"}
        return handler(session, message)


dispatcher = MessageDispatcher()


@dispatcher.register("saveArticle")
def save_article(session: ClientSession, message: Message) -> Response:
    try:
        article = extract_article_info(message["url"], message.get("html", ""), message.get("title"))
    except (KeyError, PydanticValidationError) as exc:
        return {"success": False, "error": f"Cannot save page: {exc}"}

    if not session.authenticated:
        cached = session.cache.upsert_article(article)
        return {"success": True, "article": cached.to_wire(), "localOnly": True}

    try:
        saved = session.api.save_article(article)
    except ClientError as exc:
        logger.error("Error saving article %s: %s", article.url, exc)
        return {"success": False, "error": "Failed to save article to server"}
    cached = session.cache.upsert_article(saved)
    return {"success": True, "article": cached.to_wire()}


@dispatcher.register("getArticles")
def get_articles(session: ClientSession, message: Message) -> Response:
    return {"articles": session.cache.get(ARTICLES_KEY).get(ARTICLES_KEY, [])}


@dispatcher.register("setAuthToken")
def set_auth_token(session: ClientSession, message: Message) -> Response:
    token = message.get("token")
    if not token:
        return {"success": False, "error": "Missing token"}
    session.login(token)
    return {"success": True}


@dispatcher.register("clearAuthToken")
def clear_auth_token(session: ClientSession, message: Message) -> Response:
    session.logout()
    return {"success": True}


@dispatcher.register("syncArticles")
def sync_articles(session: ClientSession, message: Message) -> Response:
    if not session.authenticated:
        return {"success": False, "error": "Not authenticated"}
    local = session.cache.articles()
    try:
        result = session.api.sync(local)
    except ClientError as exc:
        logger.warning("Sync failed, keeping local articles: %s", exc)
        return {"success": False, "error": str(exc)}
    synced = result.get("syncedArticles", [])
    session.cache.replace_articles(Article.model_validate(raw) for raw in synced)
    response: Response = {"success": True, "articles": synced}
    if result.get("failures"):
        response["failures"] = result["failures"]
    return response


@dispatcher.register("updateProgress")
def update_progress(session: ClientSession, message: Message) -> Response:
    url = message.get("url")
    article = session.cache.find_article(url) if url else None
    if article is None:
        return {"success": False, "error": "Article not found"}
    try:
        percent = int(message["progressPercent"])
        scroll = message.get("scrollPosition")
        scroll_position = _SCROLL_ADAPTER.validate_python(scroll) if scroll is not None else None
    except (KeyError, TypeError, ValueError) as exc:
        return {"success": False, "error": f"Invalid progress update: {exc}"}
    if not 0 <= percent <= 100:
        return {"success": False, "error": "progressPercent must be between 0 and 100"}

    now = utc_now()
    updated = article.model_copy(
        update={
            "progress_percent": percent,
            "scroll_position": scroll_position or article.scroll_position,
            "status": next_status(article.status, percent),
            "last_accessed_at": now,
            "updated_at": now,
        }
    )
    cached = session.cache.upsert_article(updated)

    if cached.id and session.authenticated:
        try:
            remote = session.api.update_progress(cached.id, percent, scroll_position)
        except ClientError as exc:
            logger.warning("Progress for %s kept locally: %s", url, exc)
            return {"success": True, "article": cached.to_wire(), "localOnly": True}
        cached = session.cache.upsert_article(remote)
    return {"success": True, "article": cached.to_wire()}


__all__ = ["MessageDispatcher", "dispatcher"]
