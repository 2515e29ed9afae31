"""Highlight anchoring: structural range encoding and resolution."""

from .codec import AnchorCodec, BoundaryPoint, TextRange
from .highlights import AnchorFailure, AnchorReport, ResolvedHighlight, resolve_highlights
from .tree import SoupTree, parse_document

__all__ = [
    "AnchorCodec",
    "BoundaryPoint",
    "TextRange",
    "AnchorFailure",
    "AnchorReport",
    "ResolvedHighlight",
    "resolve_highlights",
    "SoupTree",
    "parse_document",
]
