"""
Character-by-character text placement for the raster backend.

Pillow's native string drawing knows nothing about manual letter spacing, so
runs are drawn one glyph at a time and alignment is computed from the same
width formula used to advance the cursor:

    width = sum(glyph advances) + letter_spacing * (len(text) - 1)
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from banner_studio.models import Segment


class GlyphMeasure(Protocol):
    def getlength(self, text: str) -> float: ...

    def getmetrics(self) -> tuple[int, int]: ...


class GlyphTarget(Protocol):
    def text(self, xy: tuple[float, float], text: str, fill: Any = None, font: Any = None) -> None: ...


@dataclass(frozen=True)
class PlacedSegment:
    key: str
    text: str
    color: str | None
    x: float
    y: float
    advance: float


# Picks the draw target and fill for one segment (inherit segments may go to a gradient mask).
Painter = Callable[[Segment], tuple[GlyphTarget, Any]]


def glyph_advances(font: GlyphMeasure, text: str) -> list[float]:
    return [float(font.getlength(ch)) for ch in text]


def run_width(font: GlyphMeasure, text: str, letter_spacing: float) -> float:
    if not text:
        return 0.0
    return sum(glyph_advances(font, text)) + letter_spacing * (len(text) - 1)


def align_start(align: str, box_x: float, box_w: float, width: float) -> float:
    if align == "center":
        return box_x + (box_w - width) / 2
    if align == "right":
        return box_x + box_w - width
    return box_x


def glyph_top(font: GlyphMeasure, line_top: float, line_height: float) -> float:
    """Top of the glyph box inside a line box, with CSS-style half-leading above it."""
    ascent, descent = font.getmetrics()
    return line_top + (line_height - (ascent + descent)) / 2


def draw_run(
    draw: GlyphTarget,
    text: str,
    x: float,
    y: float,
    letter_spacing: float,
    *,
    font: GlyphMeasure,
    fill: Any,
) -> None:
    cursor = x
    last = len(text) - 1
    for i, ch in enumerate(text):
        draw.text((cursor, y), ch, fill=fill, font=font)
        # No trailing spacing after the final glyph.
        if i < last:
            cursor += float(font.getlength(ch)) + letter_spacing


def draw_line(
    segments: Sequence[Segment],
    x: float,
    y: float,
    letter_spacing: float,
    *,
    font: GlyphMeasure,
    painter: Painter,
) -> list[PlacedSegment]:
    """
    Draw one line segment by segment, carrying the cursor across segment
    boundaries so spacing stays continuous. Returns where each segment landed.
    """
    placed: list[PlacedSegment] = []
    cursor = x
    for seg in segments:
        target, fill = painter(seg)
        draw_run(target, seg.text, cursor, y, letter_spacing, font=font, fill=fill)
        advance = run_width(font, seg.text, letter_spacing)
        placed.append(PlacedSegment(seg.key_str, seg.text, seg.color, cursor, y, advance))
        cursor += advance + letter_spacing
    return placed
