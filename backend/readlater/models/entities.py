"""Domain records shared by the stores, the reconciler and the client."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from readlater.utils.time import ensure_utc


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; either accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self, **kwargs) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class ArticleStatus(str, Enum):
    UNREAD = "unread"
    IN_PROGRESS = "in-progress"
    FINISHED = "finished"
    ARCHIVED = "archived"


class HighlightColor(str, Enum):
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PINK = "pink"


class PixelPosition(ApiModel):
    type: Literal["pixel"] = "pixel"
    value: float = Field(ge=0)


class PercentPosition(ApiModel):
    type: Literal["percent"] = "percent"
    value: float = Field(ge=0, le=100)


class SelectorPosition(ApiModel):
    type: Literal["selector"] = "selector"
    value: str = Field(min_length=1)


ScrollPosition = Annotated[
    Union[PixelPosition, PercentPosition, SelectorPosition],
    Field(discriminator="type"),
]


class RangeSelector(ApiModel):
    """Structural anchor for a text range: child-index paths from the root."""

    type: Literal["range"] = "range"
    start_path: list[int]
    start_offset: int = Field(ge=0)
    end_path: list[int]
    end_offset: int = Field(ge=0)

    @field_validator("start_path", "end_path")
    @classmethod
    def _non_negative(cls, value: list[int]) -> list[int]:
        if any(index < 0 for index in value):
            raise ValueError("path indices must be non-negative")
        return value


class _Timestamped(ApiModel):
    @field_validator("*", mode="after")
    @classmethod
    def _utc(cls, value):
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class Article(_Timestamped):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    user_id: str | None = None
    url: str = Field(min_length=1)
    title: str = Field(min_length=1)
    domain: str | None = None
    content_snippet: str | None = None
    word_count: int | None = Field(default=None, ge=0)
    estimated_reading_time_minutes: int | None = Field(default=None, ge=0)
    saved_at: datetime | None = None
    last_accessed_at: datetime | None = None
    scroll_position: ScrollPosition | None = None
    progress_percent: int = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    status: ArticleStatus = ArticleStatus.UNREAD
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _default_domain(self) -> "Article":
        if not self.domain:
            host = urlparse(self.url).hostname
            if not host:
                raise ValueError("domain is required when the url has no host")
            self.domain = host
        return self


class Highlight(_Timestamped):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    article_id: str | None = None
    user_id: str | None = None
    selected_text: str = Field(min_length=1)
    selector_info: RangeSelector
    color: HighlightColor = HighlightColor.YELLOW
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Note(_Timestamped):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    article_id: str | None = None
    user_id: str | None = None
    highlight_id: str | None = None
    note_text: str = Field(min_length=1)
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = [
    "ApiModel",
    "Article",
    "ArticleStatus",
    "Highlight",
    "HighlightColor",
    "Note",
    "PercentPosition",
    "PixelPosition",
    "RangeSelector",
    "ScrollPosition",
    "SelectorPosition",
]
