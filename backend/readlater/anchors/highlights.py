"""Best-effort re-anchoring of stored highlights against a live document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from readlater.anchors.codec import DEFAULT_CODEC, AnchorCodec, TextRange
from readlater.core.errors import AnchorError
from readlater.core.logging import get_logger
from readlater.core.metrics import ANCHOR_RESOLUTIONS
from readlater.models.entities import Highlight
from readlater.utils.text import normalize

logger = get_logger(__name__)


@dataclass(slots=True)
class ResolvedHighlight:
    highlight: Highlight
    range: TextRange
    text: str

    @property
    def text_matches(self) -> bool:
        return normalize(self.text) == normalize(self.highlight.selected_text)


@dataclass(slots=True)
class AnchorFailure:
    highlight: Highlight
    reason: str


@dataclass(slots=True)
class AnchorReport:
    resolved: list[ResolvedHighlight] = field(default_factory=list)
    failures: list[AnchorFailure] = field(default_factory=list)


def resolve_highlights(
    highlights: Iterable[Highlight],
    root: Any,
    codec: AnchorCodec | None = None,
) -> AnchorReport:
    """Resolve every highlight independently.

    A highlight whose path no longer exists is reported in ``failures`` and
    skipped; the stored record is left untouched.
    """
    codec = codec or DEFAULT_CODEC
    report = AnchorReport()
    for highlight in highlights:
        try:
            text_range = codec.resolve(highlight.selector_info, root)
            text = codec.range_text(text_range, root)
        except AnchorError as exc:
            logger.warning(
                "Could not resolve highlight %s: %s",
                highlight.id,
                exc,
                extra={"ctx_highlight": highlight.id, "ctx_article": highlight.article_id},
            )
            ANCHOR_RESOLUTIONS.labels(outcome="failed").inc()
            report.failures.append(AnchorFailure(highlight=highlight, reason=str(exc)))
            continue
        ANCHOR_RESOLUTIONS.labels(outcome="resolved").inc()
        report.resolved.append(ResolvedHighlight(highlight=highlight, range=text_range, text=text))
    return report


__all__ = ["ResolvedHighlight", "AnchorFailure", "AnchorReport", "resolve_highlights"]
