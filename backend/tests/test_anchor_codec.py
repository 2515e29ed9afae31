"""Tests for the highlight anchor codec."""

from __future__ import annotations

import pytest

from readlater.anchors import AnchorCodec, BoundaryPoint, TextRange, parse_document, resolve_highlights
from readlater.core.errors import AnchorError, EmptySelectionError, ResolutionFailure
from readlater.models.entities import Highlight, RangeSelector

HTML = (
    "<html><body>"
    "<article>"
    "<h1>Title</h1>"
    "<p>Alpha beta <em>gamma</em> delta.</p>"
    "<p>Second paragraph here.</p>"
    "</article>"
    "</body></html>"
)


@pytest.fixture
def codec() -> AnchorCodec:
    return AnchorCodec()


def test_select_and_round_trip_within_one_node(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selection = codec.select_text(root, "beta")

    selector = codec.encode(selection, root)
    resolved = codec.resolve(selector, root)

    assert selector.type == "range"
    assert selector.start_path == selector.end_path
    assert (selector.start_offset, selector.end_offset) == (6, 10)
    assert resolved == selection
    assert codec.range_text(resolved, root) == "beta"


def test_round_trip_across_elements(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selection = codec.select_text(root, "beta gamma delta")

    selector = codec.encode(selection, root)
    assert selector.start_path != selector.end_path

    fresh_root = parse_document(HTML)
    resolved = codec.resolve(selector, fresh_root)
    assert codec.range_text(resolved, fresh_root) == "beta gamma delta"


def test_paths_are_child_indices_from_root(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selection = codec.select_text(root, "Second")

    selector = codec.encode(selection, root)

    # body > article(0) > second p(2) > text(0)
    assert selector.start_path == [0, 2, 0]
    assert selector.start_offset == 0
    assert selector.end_offset == len("Second")


def test_element_boundaries_resolve(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    article = root.contents[0]
    paragraph = article.contents[1]
    text_range = TextRange(start=BoundaryPoint(paragraph, 0), end=BoundaryPoint(paragraph, len(paragraph.contents)))

    selector = codec.encode(text_range, root)
    resolved = codec.resolve(selector, root)

    assert selector.start_path == [0, 1]
    assert codec.range_text(resolved, root) == "Alpha beta gamma delta."


def test_element_boundary_before_empty_child(codec: AnchorCodec) -> None:
    root = parse_document("<body><p><img src='a.png'/>Hello</p><p>World</p></body>")
    paragraph = root.contents[0]
    text_range = TextRange(start=BoundaryPoint(paragraph, 0), end=BoundaryPoint(paragraph, 2))

    resolved = codec.resolve(codec.encode(text_range, root), root)

    assert codec.range_text(resolved, root) == "Hello"

    across = TextRange(start=BoundaryPoint(paragraph, 0), end=BoundaryPoint(root.contents[1], 1))
    assert codec.range_text(across, root) == "HelloWorld"


def test_collapsed_range_is_rejected(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    text = codec.select_text(root, "Title").start.node
    point = BoundaryPoint(text, 2)

    with pytest.raises(EmptySelectionError):
        codec.encode(TextRange(start=point, end=point), root)


def test_missing_text_is_an_anchor_error(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    with pytest.raises(AnchorError):
        codec.select_text(root, "not on the page")


def test_stale_path_fails_cleanly(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selector = RangeSelector(start_path=[0, 9, 0], start_offset=0, end_path=[0, 9, 0], end_offset=3)

    with pytest.raises(ResolutionFailure) as excinfo:
        codec.resolve(selector, root)
    assert excinfo.value.depth == 1


def test_offset_past_node_end_fails(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selector = RangeSelector(start_path=[0, 0, 0], start_offset=0, end_path=[0, 0, 0], end_offset=99)

    with pytest.raises(ResolutionFailure):
        codec.resolve(selector, root)


def test_descending_into_text_node_fails(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selector = RangeSelector(start_path=[0, 0, 0, 0], start_offset=0, end_path=[0, 0, 0, 0], end_offset=1)

    with pytest.raises(ResolutionFailure):
        codec.resolve(selector, root)


def test_negative_path_index_is_invalid() -> None:
    with pytest.raises(ValueError):
        RangeSelector(start_path=[-1], start_offset=0, end_path=[0], end_offset=0)


def test_unrelated_text_edits_keep_anchor(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selector = codec.encode(codec.select_text(root, "Second"), root)

    edited = parse_document(HTML.replace("Title", "A much longer title"))
    resolved = codec.resolve(selector, edited)

    assert codec.range_text(resolved, edited) == "Second"


def test_resolve_highlights_isolates_failures(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    good_one = codec.encode(codec.select_text(root, "Alpha"), root)
    good_two = codec.encode(codec.select_text(root, "paragraph"), root)
    broken = RangeSelector(start_path=[5], start_offset=0, end_path=[5], end_offset=1)
    highlights = [
        Highlight(id="hl_1", selected_text="Alpha", selector_info=good_one),
        Highlight(id="hl_2", selected_text="gone", selector_info=broken),
        Highlight(id="hl_3", selected_text="paragraph", selector_info=good_two),
    ]

    report = resolve_highlights(highlights, parse_document(HTML))

    assert [item.highlight.id for item in report.resolved] == ["hl_1", "hl_3"]
    assert [item.text for item in report.resolved] == ["Alpha", "paragraph"]
    assert all(item.text_matches for item in report.resolved)
    assert len(report.failures) == 1
    assert report.failures[0].highlight.id == "hl_2"


def test_changed_text_is_flagged(codec: AnchorCodec) -> None:
    root = parse_document(HTML)
    selector = codec.encode(codec.select_text(root, "Alpha"), root)
    highlight = Highlight(id="hl_1", selected_text="Alpha", selector_info=selector)

    report = resolve_highlights([highlight], parse_document(HTML.replace("Alpha", "Omega")))

    assert report.resolved[0].text == "Omega"
    assert not report.resolved[0].text_matches
