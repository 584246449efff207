"""Tests for banner_studio.models."""
from banner_studio.models import (
    ColorRange,
    Gradient,
    Segment,
    color_range_from_dict,
    text_block_from_dict,
    text_block_to_dict,
)


def test_text_block_from_editor_payload():
    block = text_block_from_dict(
        {
            "id": "main-title",
            "text": "Summer\nSale",
            "x": 40,
            "y": "60",
            "width": 600,
            "height": 160,
            "fontSize": 48,
            "fontFamily": "Noto Sans KR",
            "fontWeight": 700,
            "letterSpacing": -0.96,
            "textAlign": "Center",
            "color": "#ffffff",
            "committedRanges": [{"start": 0, "end": 6, "color": "#ff0000"}],
            "draftRange": {"start": 7, "end": 11, "color": "#00ff00"},
            "gradient": {"from": "#000", "to": "#fff"},
            "maxLines": 2,
        }
    )
    assert block.geometry.y == 60.0
    assert block.typography.font_family == "Noto Sans KR"
    assert block.typography.text_align == "center"
    assert block.typography.line_height is None
    assert block.committed_ranges == (ColorRange(0, 6, "#ff0000"),)
    assert block.draft_range == ColorRange(7, 11, "#00ff00")
    assert block.gradient == Gradient("#000", "#fff")
    assert block.max_lines == 2


def test_legacy_color_segments_alias():
    block = text_block_from_dict({"text": "abc", "colorSegments": [{"start": 0, "end": 1, "color": "red"}]})
    assert block.committed_ranges == (ColorRange(0, 1, "red"),)


def test_malformed_range_entries_skipped():
    block = text_block_from_dict(
        {
            "text": "abc",
            "committedRanges": [
                {"start": "x", "end": 2, "color": "red"},
                {"start": 0, "end": 2},
                "nope",
                {"start": 1, "end": 2, "color": "blue"},
            ],
            "draftRange": None,
        }
    )
    assert block.committed_ranges == (ColorRange(1, 2, "blue"),)
    assert block.draft_range is None


def test_nested_geometry_and_unknown_align():
    block = text_block_from_dict(
        {"text": "a", "geometry": {"x": 1, "y": 2, "w": 3, "h": 4}, "typography": {"textAlign": "justify"}}
    )
    assert (block.geometry.x, block.geometry.y, block.geometry.width, block.geometry.height) == (1, 2, 3, 4)
    assert block.typography.text_align == "left"


def test_to_dict_matches_editor_keys():
    block = text_block_from_dict({"id": "b", "text": "hi", "committedRanges": [{"start": 0, "end": 1, "color": "red"}]})
    data = text_block_to_dict(block)
    assert data["committedRanges"] == [{"start": 0, "end": 1, "color": "red"}]
    assert text_block_from_dict(data) == block


def test_color_range_from_dict_rejects_non_string_color():
    assert color_range_from_dict({"start": 0, "end": 1, "color": 5}) is None


def test_segment_keys():
    seg = Segment(2, 1, 10, 14, "text", None)
    assert seg.key == (2, 1, 10, 14)
    assert seg.key_str == "2:1:10-14"
    assert seg.inherits


def test_unusable_font_size_falls_back():
    for raw in (0, -12, "nan", "inf", "big"):
        block = text_block_from_dict({"text": "a", "fontSize": raw})
        assert block.typography.font_size == 16.0
    assert text_block_from_dict({"text": "a", "fontSize": "24"}).typography.font_size == 24.0
