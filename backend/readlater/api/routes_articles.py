"""Article routes, including progress tracking and sync."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from readlater.api.dependencies import get_app_settings, get_article_store, get_reconciler, get_user_id
from readlater.core.config import Settings
from readlater.models.dto import (
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdateRequest,
    MessageResponse,
    Pagination,
    ProgressUpdateRequest,
    SyncFailureResponse,
    SyncRequest,
    SyncResponse,
    TagsUpdateRequest,
)
from readlater.models.entities import Article, ArticleStatus
from readlater.store.articles import ArticleQuery, ArticleStore
from readlater.sync.reconciler import Reconciler

router = APIRouter()


@router.get("", response_model=ArticleListResponse, summary="List saved articles")
async def list_articles(
    sort: str | None = Query(default=None, description="field-asc or field-desc, e.g. savedAt-desc"),
    tag: str | None = None,
    search: str | None = None,
    status_filter: ArticleStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
    settings: Settings = Depends(get_app_settings),
) -> ArticleListResponse:
    result = store.list(
        user_id,
        ArticleQuery(
            tag=tag,
            status=status_filter,
            search=search,
            sort=sort,
            page=page,
            limit=limit or settings.default_page_size,
        ),
    )
    return ArticleListResponse(
        articles=result.articles,
        pagination=Pagination(total=result.total, page=result.page, limit=result.limit, pages=result.pages),
    )


@router.post("/sync", response_model=SyncResponse, summary="Reconcile a local article list")
def sync_articles(
    request: SyncRequest,
    user_id: str = Depends(get_user_id),
    reconciler: Reconciler = Depends(get_reconciler),
) -> SyncResponse:
    report = reconciler.sync(user_id, request.articles)
    return SyncResponse(
        synced_articles=report.synced,
        failures=[
            SyncFailureResponse(url=f.url, operation=f.operation, kind=f.kind, detail=f.detail)
            for f in report.failures
        ],
        message="Articles synced successfully" if report.ok else "Articles synced with errors",
    )


@router.get("/{article_id}", response_model=ArticleResponse, summary="Fetch one article")
async def get_article(
    article_id: str,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    return ArticleResponse(article=store.get(user_id, article_id, touch=True))


@router.post("", response_model=ArticleResponse, summary="Save an article")
async def create_article(
    article: Article,
    response: Response,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    saved, created = store.save(user_id, article)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return ArticleResponse(article=saved, message="Article saved successfully")
    return ArticleResponse(article=saved, message="Article updated successfully")


@router.put("/{article_id}", response_model=ArticleResponse, summary="Update an article")
async def update_article(
    article_id: str,
    request: ArticleUpdateRequest,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    fields = {name: getattr(request, name) for name in request.model_fields_set}
    updated = store.update_by_id(user_id, article_id, fields)
    return ArticleResponse(article=updated, message="Article updated successfully")


@router.put("/{article_id}/progress", response_model=ArticleResponse, summary="Record reading progress")
async def update_progress(
    article_id: str,
    request: ProgressUpdateRequest,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    updated = store.update_progress(user_id, article_id, request.scroll_position, request.progress_percent)
    return ArticleResponse(article=updated, message="Progress updated successfully")


@router.put("/{article_id}/tags", response_model=ArticleResponse, summary="Replace an article's tags")
async def update_tags(
    article_id: str,
    request: TagsUpdateRequest,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    updated = store.update_tags(user_id, article_id, request.tags)
    return ArticleResponse(article=updated, message="Tags updated successfully")


@router.delete("/{article_id}", response_model=MessageResponse, summary="Delete an article and its annotations")
async def delete_article(
    article_id: str,
    user_id: str = Depends(get_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> MessageResponse:
    store.delete_by_id(user_id, article_id)
    return MessageResponse(message="Article deleted successfully")


__all__ = ["router"]
