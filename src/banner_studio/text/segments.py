from __future__ import annotations

from collections.abc import Iterable, Sequence

from banner_studio.models import ColorRange, Segment, TextBlock
from banner_studio.text.ranges import resolve


def normalize_text(text: str) -> str:
    """CRLF -> LF. Every offset in the engine refers to this form."""
    return text.replace("\r\n", "\n")


def split_lines(text: str) -> list[str]:
    return normalize_text(text).split("\n")


def segment(text: str, resolved: Iterable[ColorRange]) -> list[Segment]:
    """
    Split text into per-line segments, each with one resolved color.

    Every line is fully covered: gaps between colored ranges become inherit
    segments (color=None). Line breaks occupy one offset but never appear in
    a segment. Zero-length segments are never emitted, so empty lines yield
    nothing.
    """
    normalized = normalize_text(text)
    ranges = sorted((r for r in resolved if r.end > r.start), key=lambda r: (r.start, r.end))

    segments: list[Segment] = []
    offset = 0
    for line_idx, line in enumerate(normalized.split("\n")):
        line_start = offset
        line_end = line_start + len(line)
        cursor = line_start
        seg_idx = 0
        for r in ranges:
            if r.end <= line_start or r.start >= line_end:
                continue
            a = max(cursor, r.start)
            b = min(line_end, r.end)
            if a >= b:
                continue
            if cursor < a:
                segments.append(Segment(line_idx, seg_idx, cursor, a, normalized[cursor:a]))
                seg_idx += 1
            segments.append(Segment(line_idx, seg_idx, a, b, normalized[a:b], r.color))
            seg_idx += 1
            cursor = b
        if cursor < line_end:
            segments.append(Segment(line_idx, seg_idx, cursor, line_end, normalized[cursor:line_end]))
        # +1 for the consumed '\n'
        offset = line_end + 1
    return segments


def segment_block(block: TextBlock) -> list[Segment]:
    """Resolve a block's committed + draft ranges and segment its text. Both render backends go through here."""
    normalized = normalize_text(block.text)
    resolved = resolve(block.committed_ranges, block.draft_range, text_length=len(normalized))
    return segment(normalized, resolved)


def segments_by_line(segments: Sequence[Segment], line_count: int) -> list[list[Segment]]:
    """Group segments per line, keeping empty lines as empty lists."""
    lines: list[list[Segment]] = [[] for _ in range(line_count)]
    for seg in segments:
        if 0 <= seg.line_idx < line_count:
            lines[seg.line_idx].append(seg)
    return lines


def visible_lines(block: TextBlock, segments: Sequence[Segment]) -> list[list[Segment]]:
    """Per-line segments limited to the block's max_lines; both backends paint exactly these."""
    lines = segments_by_line(segments, len(split_lines(block.text)))
    if block.max_lines is not None:
        lines = lines[: max(0, block.max_lines)]
    return lines


def build_runs(segments: Sequence[Segment], base_color: str) -> list[tuple[str, str]]:
    """Ordered (text, color) pairs with inherit resolved to `base_color`."""
    return [(seg.text, seg.color if seg.color is not None else base_color) for seg in segments]
