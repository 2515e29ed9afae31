"""Merge a client's local article list with the authoritative store.

Articles are matched by URL. When both sides hold an article the newer
``updatedAt`` wins; a local copy without a timestamp never wins and equal
timestamps keep the server copy. Local-only articles are created, server-only
articles are passed through untouched.

Local items are validated one at a time. An item that fails validation is only
reported when it would have been written; a copy that loses to the server is
dropped like any other stale copy.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from readlater.core.errors import DuplicateIdentityError, NotFoundError
from readlater.core.logging import get_logger, log_context
from readlater.core.metrics import SYNC_DURATION, SYNC_WRITES
from readlater.models.entities import Article
from readlater.store.articles import WRITABLE_FIELDS
from readlater.utils.ids import ARTICLE_PREFIX, new_id
from readlater.utils.time import EPOCH, ensure_utc

logger = get_logger(__name__)

LocalItem = Union[Article, Mapping[str, Any]]

_TIMESTAMP = TypeAdapter(datetime)


class ArticleWriter(Protocol):
    def find_all(self, user_id: str) -> list[Article]: ...

    def create(self, user_id: str, article: Article, article_id: str | None = None) -> Article: ...

    def update_by_id(self, user_id: str, article_id: str, fields: Mapping[str, Any]) -> Article: ...


@dataclass(slots=True)
class PlannedCreate:
    article: Article


@dataclass(slots=True)
class PlannedUpdate:
    article_id: str
    url: str
    fields: dict[str, Any]


@dataclass(slots=True)
class RejectedItem:
    """A local item that did not validate as an article."""

    url: str
    updated_at: datetime
    detail: str


@dataclass(slots=True)
class SyncFailure:
    url: str
    operation: str
    kind: str
    detail: str


@dataclass(slots=True)
class SyncPlan:
    synced: list[Article] = field(default_factory=list)
    creates: list[PlannedCreate] = field(default_factory=list)
    updates: list[PlannedUpdate] = field(default_factory=list)
    rejected: list[SyncFailure] = field(default_factory=list)

    @property
    def write_count(self) -> int:
        return len(self.creates) + len(self.updates)


@dataclass(slots=True)
class SyncReport:
    synced: list[Article]
    created: int = 0
    updated: int = 0
    failures: list[SyncFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def article_timestamp(article: Article) -> datetime:
    """``updatedAt`` as an aware UTC datetime; missing means the epoch."""
    if article.updated_at is None:
        return EPOCH
    return ensure_utc(article.updated_at)


def _raw_timestamp(item: Mapping[str, Any]) -> datetime:
    value = item.get("updatedAt", item.get("updated_at"))
    if value is None:
        return EPOCH
    try:
        return ensure_utc(_TIMESTAMP.validate_python(value))
    except PydanticValidationError:
        return EPOCH


def _describe(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'article'}: {error['msg']}" for error in exc.errors()
    )


def parse_local(items: Iterable[LocalItem]) -> tuple[list[Article], list[RejectedItem]]:
    """Split raw local items into valid articles and rejected items."""
    articles: list[Article] = []
    rejected: list[RejectedItem] = []
    for item in items:
        if isinstance(item, Article):
            articles.append(item)
            continue
        try:
            articles.append(Article.model_validate(item))
        except PydanticValidationError as exc:
            url = item.get("url")
            rejected.append(
                RejectedItem(
                    url=url if isinstance(url, str) else "",
                    updated_at=_raw_timestamp(item),
                    detail=_describe(exc),
                )
            )
    return articles, rejected


def fold_duplicates(local: Iterable[Article]) -> list[Article]:
    """Keep one local article per URL, preferring the most recently updated.

    Order follows the first occurrence of each URL; ties keep the first seen.
    """
    chosen: dict[str, Article] = {}
    for article in local:
        current = chosen.get(article.url)
        if current is None:
            chosen[article.url] = article
            continue
        logger.warning("Local list holds duplicate url %s", article.url, extra={"ctx_url": article.url})
        if article_timestamp(article) > article_timestamp(current):
            chosen[article.url] = article
    return list(chosen.values())


def plan_sync(
    local: Sequence[Article],
    remote: Sequence[Article],
    user_id: str,
    rejected: Sequence[RejectedItem] = (),
) -> SyncPlan:
    """Compute the merged list and the writes needed to bring the store in line."""
    plan = SyncPlan()
    remote_by_url = {article.url: article for article in remote}
    local_articles = fold_duplicates(local)

    for local_article in local_articles:
        remote_article = remote_by_url.get(local_article.url)
        if remote_article is None:
            pending = local_article.model_copy(update={"id": new_id(ARTICLE_PREFIX), "user_id": user_id})
            plan.creates.append(PlannedCreate(article=pending))
            plan.synced.append(pending)
            continue
        if article_timestamp(local_article) > article_timestamp(remote_article):
            merged = local_article.model_copy(update={"id": remote_article.id, "user_id": user_id})
            plan.updates.append(
                PlannedUpdate(
                    article_id=remote_article.id,
                    url=remote_article.url,
                    fields=local_article.model_dump(include=WRITABLE_FIELDS, exclude_unset=True),
                )
            )
            plan.synced.append(merged)
        else:
            plan.synced.append(remote_article)

    local_urls = {article.url for article in local_articles}
    for item in rejected:
        if item.url in local_urls:
            continue
        remote_article = remote_by_url.get(item.url)
        if remote_article is not None and item.updated_at <= article_timestamp(remote_article):
            continue
        operation = "create" if remote_article is None else "update"
        plan.rejected.append(SyncFailure(url=item.url, operation=operation, kind="error", detail=item.detail))

    plan.synced.extend(article for article in remote if article.url not in local_urls)
    return plan


class Reconciler:
    """Run a sync: read the store, plan, and fan the writes out concurrently."""

    def __init__(self, store: ArticleWriter, max_workers: int = 8) -> None:
        self.store = store
        self.max_workers = max_workers

    def sync(self, user_id: str, local: Sequence[LocalItem]) -> SyncReport:
        with log_context(user=user_id, sync_items=len(local)):
            return self._sync(user_id, local)

    def _sync(self, user_id: str, local: Sequence[LocalItem]) -> SyncReport:
        started = time.perf_counter()
        articles, rejected = parse_local(local)
        remote = self.store.find_all(user_id)
        plan = plan_sync(articles, remote, user_id, rejected)
        stored, write_failures = self.execute(user_id, plan)
        SYNC_DURATION.observe(time.perf_counter() - started)
        failed_creates = sum(1 for failure in write_failures if failure.operation == "create")
        failed_updates = len(write_failures) - failed_creates
        failures = sorted(plan.rejected + write_failures, key=lambda failure: (failure.operation, failure.url))
        if plan.rejected:
            logger.warning(
                "Rejected %s invalid local articles",
                len(plan.rejected),
                extra={"ctx_rejected_urls": [failure.url for failure in plan.rejected]},
            )
        report = SyncReport(
            synced=[stored.get(article.url, article) for article in plan.synced],
            created=len(plan.creates) - failed_creates,
            updated=len(plan.updates) - failed_updates,
            failures=failures,
        )
        logger.info(
            "Synced %s local against %s remote articles: %s created, %s updated, %s failed",
            len(local),
            len(remote),
            report.created,
            report.updated,
            len(failures),
        )
        return report

    def execute(self, user_id: str, plan: SyncPlan) -> tuple[dict[str, Article], list[SyncFailure]]:
        """Dispatch every planned write and wait for all of them.

        Returns the stored articles keyed by URL and the failed writes. One
        write failing never cancels the others.
        """
        jobs: list[tuple[str, str, Callable[[], Article]]] = []
        for create in plan.creates:
            article = create.article
            jobs.append(("create", article.url, partial(self.store.create, user_id, article, article.id)))
        for update in plan.updates:
            job = partial(self.store.update_by_id, user_id, update.article_id, update.fields)
            jobs.append(("update", update.url, job))
        if not jobs:
            return {}, []

        stored: dict[str, Article] = {}
        failures: list[SyncFailure] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs)), thread_name_prefix="sync") as pool:
            futures = {pool.submit(job): (operation, url) for operation, url, job in jobs}
            for future in as_completed(futures):
                operation, url = futures[future]
                try:
                    result = future.result()
                except DuplicateIdentityError as exc:
                    failures.append(SyncFailure(url=url, operation=operation, kind="conflict", detail=str(exc)))
                except NotFoundError as exc:
                    failures.append(SyncFailure(url=url, operation=operation, kind="not_found", detail=str(exc)))
                except Exception as exc:
                    logger.exception("Sync %s failed for %s", operation, url, extra={"ctx_user": user_id})
                    failures.append(SyncFailure(url=url, operation=operation, kind="error", detail=str(exc)))
                else:
                    stored[url] = result
                    SYNC_WRITES.labels(operation=operation, outcome="ok").inc()
                    continue
                SYNC_WRITES.labels(operation=operation, outcome="failed").inc()

        if failures:
            logger.warning(
                "Partial sync failure: %s of %s writes failed",
                len(failures),
                len(jobs),
                extra={"ctx_user": user_id, "ctx_failed_urls": [failure.url for failure in failures]},
            )
        failures.sort(key=lambda failure: (failure.operation, failure.url))
        return stored, failures


__all__ = [
    "ArticleWriter",
    "PlannedCreate",
    "PlannedUpdate",
    "RejectedItem",
    "SyncPlan",
    "SyncFailure",
    "SyncReport",
    "Reconciler",
    "article_timestamp",
    "fold_duplicates",
    "parse_local",
    "plan_sync",
]
