"""Tests for banner_studio.text.segments."""
from dataclasses import replace

from banner_studio.models import ColorRange, Segment
from banner_studio.text.ranges import resolve
from banner_studio.text.segments import (
    build_runs,
    normalize_text,
    segment,
    segment_block,
    segments_by_line,
    split_lines,
    visible_lines,
)


def test_no_ranges_one_segment_per_line():
    segs = segment("ab\ncd", [])
    assert segs == [
        Segment(0, 0, 0, 2, "ab", None),
        Segment(1, 0, 3, 5, "cd", None),
    ]


def test_draft_example_renders_cd_blue():
    resolved = resolve([ColorRange(1, 5, "red")], ColorRange(2, 4, "blue"))
    segs = segment("abcdef", resolved)
    assert [(s.text, s.color) for s in segs] == [
        ("a", None),
        ("b", "red"),
        ("cd", "blue"),
        ("e", "red"),
        ("f", None),
    ]
    assert [s.seg_idx for s in segs] == [0, 1, 2, 3, 4]


def test_range_crossing_line_break():
    segs = segment("abc\ndef", [ColorRange(1, 6, "red")])
    assert [(s.line_idx, s.start, s.end, s.text, s.color) for s in segs] == [
        (0, 0, 1, "a", None),
        (0, 1, 3, "bc", "red"),
        (1, 4, 6, "de", "red"),
        (1, 6, 7, "f", None),
    ]
    # seg_idx restarts per line
    assert [s.seg_idx for s in segs] == [0, 1, 0, 1]


def test_crlf_counts_as_one_character():
    assert normalize_text("ab\r\ncd") == "ab\ncd"
    segs = segment("ab\r\ncd", [ColorRange(3, 5, "red")])
    assert segs[-1] == Segment(1, 0, 3, 5, "cd", "red")


def test_line_coverage_is_total():
    text = "Hello there\nsecond line\n\nlast"
    resolved = resolve([ColorRange(3, 14, "red"), ColorRange(20, 30, "blue")], ColorRange(9, 11, "green"))
    segs = segment(text, resolved)
    lines = split_lines(text)
    for idx, line in enumerate(lines):
        line_segs = [s for s in segs if s.line_idx == idx]
        assert sum(s.end - s.start for s in line_segs) == len(line)
        assert "".join(s.text for s in line_segs) == line
        for prev, nxt in zip(line_segs, line_segs[1:]):
            assert prev.end == nxt.start


def test_no_zero_length_segments():
    segs = segment("a\n\nb", [ColorRange(0, 1, "red")])
    assert all(s.end > s.start for s in segs)
    assert [s.line_idx for s in segs] == [0, 2]


def test_segments_by_line_keeps_empty_lines():
    segs = segment("a\n\nb", [])
    grouped = segments_by_line(segs, 3)
    assert [len(line) for line in grouped] == [1, 0, 1]


def test_ranges_beyond_text_ignored():
    segs = segment("abc", [ColorRange(10, 12, "red")])
    assert segs == [Segment(0, 0, 0, 3, "abc", None)]


def test_keys_unique():
    resolved = resolve([ColorRange(0, 2, "red"), ColorRange(4, 7, "blue")], ColorRange(5, 9, "green"))
    segs = segment("ab\ncdefgh\nij", resolved)
    keys = [s.key for s in segs]
    assert len(keys) == len(set(keys))
    assert segs[0].key_str == "0:0:0-2"


def test_sorted_by_line_then_start():
    segs = segment("ab\ncd\nef", [ColorRange(1, 7, "red")])
    order = [(s.line_idx, s.start) for s in segs]
    assert order == sorted(order)


def test_segment_block_applies_draft_and_clamps(block_factory):
    block = block_factory("abcdef", committed=(ColorRange(1, 50, "red"),), draft=ColorRange(0, 2, "blue"))
    segs = segment_block(block)
    assert [(s.text, s.color) for s in segs] == [("ab", "blue"), ("cdef", "red")]


def test_visible_lines_respects_max_lines(block_factory):
    block = replace(block_factory("one\ntwo\nthree"), max_lines=2)
    lines = visible_lines(block, segment_block(block))
    assert [[s.text for s in line] for line in lines] == [["one"], ["two"]]


def test_build_runs_resolves_inherit():
    segs = segment("abc", [ColorRange(1, 2, "red")])
    assert build_runs(segs, "#000") == [("a", "#000"), ("b", "red"), ("c", "#000")]
