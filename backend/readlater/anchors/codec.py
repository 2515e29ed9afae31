"""Encode text ranges as structural paths and resolve them back.

A boundary point is stored as the chain of child indices leading from the
document root to the boundary node, plus the offset inside that node. Paths
depend only on sibling order, so unrelated text edits elsewhere in the page do
not move them, while structural edits on the path make resolution fail
cleanly instead of landing on the wrong text.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import Any

from readlater.anchors.tree import SOUP_TREE, TreeAdapter, child_index, iter_nodes
from readlater.core.errors import AnchorError, EmptySelectionError, ResolutionFailure
from readlater.models.entities import RangeSelector


@dataclass(frozen=True, eq=False)
class BoundaryPoint:
    node: Any
    offset: int

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundaryPoint):
            return NotImplemented
        return self.node is other.node and self.offset == other.offset

    def __hash__(self) -> int:
        return hash((id(self.node), self.offset))


@dataclass(frozen=True)
class TextRange:
    start: BoundaryPoint
    end: BoundaryPoint

    @property
    def collapsed(self) -> bool:
        return self.start == self.end


class AnchorCodec:
    """Stateless encoder/resolver bound to a tree adapter."""

    def __init__(self, tree: TreeAdapter = SOUP_TREE) -> None:
        self.tree = tree

    # Paths -------------------------------------------------------------

    def node_path(self, node: Any, root: Any) -> list[int]:
        path: list[int] = []
        current = node
        while current is not root:
            parent = self.tree.parent(current)
            if parent is None:
                raise AnchorError("Boundary node is not inside the document root")
            path.append(child_index(self.tree, parent, current))
            current = parent
        path.reverse()
        return path

    def node_at(self, root: Any, path: list[int]) -> Any:
        current = root
        for depth, index in enumerate(path):
            children = self.tree.children(current)
            if not children or index >= len(children):
                raise ResolutionFailure(
                    f"No child {index} at depth {depth}",
                    path=list(path),
                    depth=depth,
                )
            current = children[index]
        return current

    # Encode / resolve --------------------------------------------------

    def encode(self, text_range: TextRange, root: Any) -> RangeSelector:
        if text_range.collapsed:
            raise EmptySelectionError("Cannot anchor an empty selection")
        return RangeSelector(
            start_path=self.node_path(text_range.start.node, root),
            start_offset=text_range.start.offset,
            end_path=self.node_path(text_range.end.node, root),
            end_offset=text_range.end.offset,
        )

    def resolve(self, selector: RangeSelector, root: Any) -> TextRange:
        if not isinstance(selector, RangeSelector):
            raise AnchorError(f"Unsupported selector type: {getattr(selector, 'type', selector)!r}")
        start = self._boundary(root, selector.start_path, selector.start_offset)
        end = self._boundary(root, selector.end_path, selector.end_offset)
        return TextRange(start=start, end=end)

    def _boundary(self, root: Any, path: list[int], offset: int) -> BoundaryPoint:
        node = self.node_at(root, path)
        if offset > self._max_offset(node):
            raise ResolutionFailure(
                f"Offset {offset} is past the end of the node",
                path=list(path),
                depth=len(path),
            )
        return BoundaryPoint(node=node, offset=offset)

    def _max_offset(self, node: Any) -> int:
        if self.tree.is_text(node):
            return len(self.tree.text(node))
        return len(self.tree.children(node) or ())

    # Text --------------------------------------------------------------

    def range_text(self, text_range: TextRange, root: Any) -> str:
        """Text covered by the range, like DOM ``Range.toString()``."""
        texts = [node for node in iter_nodes(self.tree, root) if self.tree.is_text(node)]
        start_index, start_offset = self._text_position(text_range.start, root, texts)
        end_index, end_offset = self._text_position(text_range.end, root, texts)
        if (start_index, start_offset) >= (end_index, end_offset):
            return ""
        if start_index == end_index:
            return self.tree.text(texts[start_index])[start_offset:end_offset]
        parts = [self.tree.text(texts[start_index])[start_offset:]]
        parts.extend(self.tree.text(node) for node in texts[start_index + 1 : end_index])
        if end_index < len(texts):
            parts.append(self.tree.text(texts[end_index])[:end_offset])
        return "".join(parts)

    def select_text(self, root: Any, needle: str, occurrence: int = 0) -> TextRange:
        """Build the range a reader would get by selecting ``needle`` on the page."""
        if not needle:
            raise EmptySelectionError("Cannot select empty text")
        texts = [node for node in iter_nodes(self.tree, root) if self.tree.is_text(node)]
        full = "".join(self.tree.text(node) for node in texts)
        position = -1
        for _ in range(occurrence + 1):
            position = full.find(needle, position + 1)
            if position < 0:
                raise AnchorError(f"Text not found in document: {needle!r}")
        start = self._point_at(texts, position, prefer_next=True)
        end = self._point_at(texts, position + len(needle), prefer_next=False)
        return TextRange(start=start, end=end)

    def _point_at(self, texts: list[Any], char_index: int, prefer_next: bool) -> BoundaryPoint:
        consumed = 0
        for node in texts:
            length = len(self.tree.text(node))
            if prefer_next:
                inside = consumed <= char_index < consumed + length
            else:
                inside = consumed < char_index <= consumed + length
            if inside:
                return BoundaryPoint(node=node, offset=char_index - consumed)
            consumed += length
        raise AnchorError("Character index is outside the document text")

    def _text_position(self, point: BoundaryPoint, root: Any, texts: list[Any]) -> tuple[int, int]:
        """Map a boundary point to (index into ``texts``, character offset)."""
        if self.tree.is_text(point.node):
            for index, node in enumerate(texts):
                if node is point.node:
                    return index, point.offset
            return len(texts), 0
        children = self.tree.children(point.node) or ()
        if point.offset < len(children):
            anchor = children[point.offset]
            following = chain(iter_nodes(self.tree, anchor), _nodes_after(self.tree, anchor, root))
        else:
            following = _nodes_after(self.tree, point.node, root)
        ids = {id(node): index for index, node in enumerate(texts)}
        for node in following:
            if id(node) in ids:
                return ids[id(node)], 0
        return len(texts), 0


def _nodes_after(tree: TreeAdapter, node: Any, root: Any):
    """Nodes following ``node``'s subtree in document order, within ``root``."""
    current = node
    while current is not root:
        parent = tree.parent(current)
        if parent is None:
            return
        siblings = tree.children(parent) or ()
        for sibling in siblings[child_index(tree, parent, current) + 1 :]:
            yield from iter_nodes(tree, sibling)
        current = parent


DEFAULT_CODEC = AnchorCodec()


__all__ = [
    "AnchorCodec",
    "BoundaryPoint",
    "TextRange",
    "DEFAULT_CODEC",
]
