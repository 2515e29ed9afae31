"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from readlater.models.entities import (
    ApiModel,
    Article,
    ArticleStatus,
    Highlight,
    HighlightColor,
    Note,
    RangeSelector,
    ScrollPosition,
)


class ArticleUpdateRequest(ApiModel):
    url: str | None = Field(default=None, min_length=1)
    title: str | None = Field(default=None, min_length=1)
    domain: str | None = Field(default=None, min_length=1)
    content_snippet: str | None = None
    word_count: int | None = Field(default=None, ge=0)
    estimated_reading_time_minutes: int | None = Field(default=None, ge=0)
    saved_at: datetime | None = None
    last_accessed_at: datetime | None = None
    scroll_position: ScrollPosition | None = None
    progress_percent: int | None = Field(default=None, ge=0, le=100)
    tags: list[str] | None = None
    status: ArticleStatus | None = None


class ProgressUpdateRequest(ApiModel):
    scroll_position: ScrollPosition | None = None
    progress_percent: int = Field(ge=0, le=100)


class TagsUpdateRequest(ApiModel):
    tags: list[str]


class ArticleResponse(ApiModel):
    article: Article
    message: str | None = None


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    pages: int


class ArticleListResponse(ApiModel):
    articles: list[Article]
    pagination: Pagination


class MessageResponse(ApiModel):
    message: str


class SyncRequest(ApiModel):
    """Raw local articles; each one is validated on its own during sync."""

    articles: list[dict[str, Any]]


class SyncFailureResponse(ApiModel):
    url: str
    operation: Literal["create", "update"]
    kind: Literal["conflict", "not_found", "error"]
    detail: str


class SyncResponse(ApiModel):
    synced_articles: list[Article]
    failures: list[SyncFailureResponse] = Field(default_factory=list)
    message: str


class HighlightCreateRequest(ApiModel):
    selected_text: str = Field(min_length=1)
    selector_info: RangeSelector
    color: HighlightColor = HighlightColor.YELLOW


class HighlightUpdateRequest(ApiModel):
    selected_text: str | None = Field(default=None, min_length=1)
    selector_info: RangeSelector | None = None
    color: HighlightColor | None = None


class HighlightResponse(ApiModel):
    highlight: Highlight
    message: str | None = None


class HighlightListResponse(ApiModel):
    highlights: list[Highlight]


class AnchorResolveRequest(ApiModel):
    html: str


class ResolvedAnchor(ApiModel):
    highlight_id: str
    text: str
    text_matches: bool


class AnchorFailureResponse(ApiModel):
    highlight_id: str
    reason: str


class AnchorResolveResponse(ApiModel):
    resolved: list[ResolvedAnchor]
    failures: list[AnchorFailureResponse]


class NoteCreateRequest(ApiModel):
    note_text: str = Field(min_length=1)
    highlight_id: str | None = None


class NoteUpdateRequest(ApiModel):
    note_text: str = Field(min_length=1)


class NoteResponse(ApiModel):
    note: Note
    message: str | None = None


class NoteListResponse(ApiModel):
    notes: list[Note]


__all__ = [
    "ArticleUpdateRequest",
    "ProgressUpdateRequest",
    "TagsUpdateRequest",
    "ArticleResponse",
    "Pagination",
    "ArticleListResponse",
    "MessageResponse",
    "SyncRequest",
    "SyncFailureResponse",
    "SyncResponse",
    "HighlightCreateRequest",
    "HighlightUpdateRequest",
    "HighlightResponse",
    "HighlightListResponse",
    "AnchorResolveRequest",
    "ResolvedAnchor",
    "AnchorFailureResponse",
    "AnchorResolveResponse",
    "NoteCreateRequest",
    "NoteUpdateRequest",
    "NoteResponse",
    "NoteListResponse",
]
