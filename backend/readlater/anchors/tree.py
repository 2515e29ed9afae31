"""Document tree adapters used by the anchor codec."""

from __future__ import annotations

from typing import Any, Iterator, Protocol, Sequence

from bs4 import BeautifulSoup, NavigableString, Tag


class TreeAdapter(Protocol):
    """Minimal DOM-like view of a document tree.

    ``children`` mirrors DOM ``childNodes``: text nodes are included, and
    leaves return ``None``.
    """

    def parent(self, node: Any) -> Any | None: ...

    def children(self, node: Any) -> Sequence[Any] | None: ...

    def is_text(self, node: Any) -> bool: ...

    def text(self, node: Any) -> str: ...


class SoupTree:
    """Adapter for BeautifulSoup documents."""

    def parent(self, node: Any) -> Any | None:
        return node.parent

    def children(self, node: Any) -> Sequence[Any] | None:
        if isinstance(node, Tag):
            return node.contents
        return None

    def is_text(self, node: Any) -> bool:
        # Comments, CDATA and doctypes are NavigableString subclasses but are
        # not part of the rendered text.
        return type(node) is NavigableString

    def text(self, node: Any) -> str:
        return str(node) if self.is_text(node) else ""


SOUP_TREE = SoupTree()


def parse_document(html: str) -> Tag:
    """Parse HTML and return the node highlights are anchored to."""
    soup = BeautifulSoup(html, "html.parser")
    return soup.body or soup


def iter_nodes(tree: TreeAdapter, root: Any) -> Iterator[Any]:
    """Depth-first, document-order walk including ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        children = tree.children(node)
        if children:
            stack.extend(reversed(list(children)))


def child_index(tree: TreeAdapter, parent: Any, node: Any) -> int:
    """Index of ``node`` among ``parent``'s children, by identity."""
    for index, child in enumerate(tree.children(parent) or ()):
        if child is node:
            return index
    raise ValueError("node is not a child of parent")


__all__ = ["TreeAdapter", "SoupTree", "SOUP_TREE", "parse_document", "iter_nodes", "child_index"]
