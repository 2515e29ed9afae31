"""Highlight routes and server-side anchor resolution."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from readlater.anchors import parse_document, resolve_highlights
from readlater.api.dependencies import get_highlight_store, get_user_id
from readlater.models.dto import (
    AnchorFailureResponse,
    AnchorResolveRequest,
    AnchorResolveResponse,
    HighlightCreateRequest,
    HighlightListResponse,
    HighlightResponse,
    HighlightUpdateRequest,
    MessageResponse,
    ResolvedAnchor,
)
from readlater.store.highlights import HighlightStore

router = APIRouter()


@router.get("/article/{article_id}", response_model=HighlightListResponse, summary="List an article's highlights")
async def list_highlights(
    article_id: str,
    user_id: str = Depends(get_user_id),
    store: HighlightStore = Depends(get_highlight_store),
) -> HighlightListResponse:
    return HighlightListResponse(highlights=store.list_for_article(user_id, article_id))


@router.post(
    "/article/{article_id}",
    response_model=HighlightResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a highlight",
)
async def create_highlight(
    article_id: str,
    request: HighlightCreateRequest,
    user_id: str = Depends(get_user_id),
    store: HighlightStore = Depends(get_highlight_store),
) -> HighlightResponse:
    highlight = store.create(
        user_id,
        article_id,
        selected_text=request.selected_text,
        selector_info=request.selector_info,
        color=request.color,
    )
    return HighlightResponse(highlight=highlight, message="Highlight created successfully")


@router.post(
    "/article/{article_id}/resolve",
    response_model=AnchorResolveResponse,
    summary="Re-anchor stored highlights against a copy of the page",
)
async def resolve_article_highlights(
    article_id: str,
    request: AnchorResolveRequest,
    user_id: str = Depends(get_user_id),
    store: HighlightStore = Depends(get_highlight_store),
) -> AnchorResolveResponse:
    highlights = store.list_for_article(user_id, article_id)
    report = resolve_highlights(highlights, parse_document(request.html))
    return AnchorResolveResponse(
        resolved=[
            ResolvedAnchor(highlight_id=item.highlight.id, text=item.text, text_matches=item.text_matches)
            for item in report.resolved
        ],
        failures=[
            AnchorFailureResponse(highlight_id=item.highlight.id, reason=item.reason)
            for item in report.failures
        ],
    )


@router.put("/{highlight_id}", response_model=HighlightResponse, summary="Update a highlight")
async def update_highlight(
    highlight_id: str,
    request: HighlightUpdateRequest,
    user_id: str = Depends(get_user_id),
    store: HighlightStore = Depends(get_highlight_store),
) -> HighlightResponse:
    fields = {name: getattr(request, name) for name in request.model_fields_set}
    highlight = store.update(user_id, highlight_id, fields)
    return HighlightResponse(highlight=highlight, message="Highlight updated successfully")


@router.delete("/{highlight_id}", response_model=MessageResponse, summary="Delete a highlight")
async def delete_highlight(
    highlight_id: str,
    user_id: str = Depends(get_user_id),
    store: HighlightStore = Depends(get_highlight_store),
) -> MessageResponse:
    store.delete(user_id, highlight_id)
    return MessageResponse(message="Highlight deleted successfully")


__all__ = ["router"]
