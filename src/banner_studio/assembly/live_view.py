"""
Live styled-text view backend.

Produces what the browser editor paints: an absolutely positioned container per
block and one span per segment, keyed by "line:seg:start-end" so the editor can
diff spans across keystrokes. Spacing and alignment are left to native CSS
layout; geometry comes from the shared scaler.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from banner_studio.assembly.letter_advance import GlyphMeasure, PlacedSegment, align_start, glyph_advances, glyph_top
from banner_studio.config import settings
from banner_studio.models import ScaledBox, Segment, TextBlock
from banner_studio.text.geometry import compare_geometry, scale_box
from banner_studio.text.segments import segment_block, visible_lines

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyledSpan:
    key: str
    text: str
    color: str | None

    @property
    def css_color(self) -> str:
        return self.color if self.color is not None else "inherit"


@dataclass(frozen=True)
class LiveView:
    block_id: str
    box: ScaledBox
    # Container: position, size, typography, plate.
    style: dict[str, str]
    # Inner fill: base color or gradient clipped to the glyphs.
    fill_style: dict[str, str]
    lines: list[list[StyledSpan]]

    @property
    def spans(self) -> list[StyledSpan]:
        return [span for line in self.lines for span in line]


def _px(value: float) -> str:
    return f"{round(value, 4)}px"


def style_attr(style: dict[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in style.items())


def _span(seg: Segment) -> StyledSpan:
    return StyledSpan(key=seg.key_str, text=seg.text, color=seg.color)


def build_live_view(block: TextBlock, scale: float) -> LiveView:
    box = scale_box(block, scale)
    typo = block.typography

    style = {
        "position": "absolute",
        "left": _px(box.x),
        "top": _px(box.y),
        "width": _px(box.w),
        "height": _px(box.h),
        "font-family": f"'{typo.font_family}'",
        "font-weight": str(typo.font_weight),
        "font-size": _px(box.font_size),
        "line-height": _px(box.line_height),
        "letter-spacing": _px(box.letter_spacing),
        "white-space": "pre-wrap",
        "overflow": "hidden",
        "text-align": typo.text_align,
        "transform": "none",
        "zoom": "1",
    }
    if block.background_color:
        style["background-color"] = block.background_color
        style["border-radius"] = _px(settings.button_corner_radius * scale)

    if block.gradient is not None:
        fill_style = {
            "background-image": f"linear-gradient(to right, {block.gradient.start_color}, {block.gradient.end_color})",
            "-webkit-background-clip": "text",
            "background-clip": "text",
            "color": "transparent",
        }
    else:
        fill_style = {"color": block.base_color}

    lines = [[_span(seg) for seg in line] for line in visible_lines(block, segment_block(block))]
    view = LiveView(block_id=block.id, box=box, style=style, fill_style=fill_style, lines=lines)

    if settings.debug_geometry_checks:
        check_live_view(view, block, scale)
    return view


_PX_RE = re.compile(r"^(-?\d+(?:\.\d+)?)px$")
_STYLE_FIELDS = {
    "left": "x",
    "top": "y",
    "width": "w",
    "height": "h",
    "font-size": "font_size",
    "line-height": "line_height",
    "letter-spacing": "letter_spacing",
}


def check_live_view(view: LiveView, block: TextBlock, scale: float) -> list[str]:
    """Read the emitted px values back and compare them with the scaler output."""
    actual: dict[str, float] = {}
    for prop, name in _STYLE_FIELDS.items():
        m = _PX_RE.match(view.style.get(prop, ""))
        if m:
            actual[name] = float(m.group(1))
    mismatched = compare_geometry(scale_box(block, scale), actual)
    if mismatched:
        logger.warning("live view for block %s diverges from scaled geometry: %s", block.id, ", ".join(mismatched))
    return mismatched


def live_layout(block: TextBlock, font: GlyphMeasure, scale: float) -> list[PlacedSegment]:
    """
    Where native layout puts each span: glyph advances are accumulated over the
    whole line with letter spacing after every glyph but the last, and
    alignment uses that line width. Used to check the raster backend against
    the view; the browser does not need it to paint.
    """
    box = scale_box(block, scale)
    placed: list[PlacedSegment] = []
    for line_idx, line in enumerate(visible_lines(block, segment_block(block))):
        if not line:
            continue
        advances = glyph_advances(font, "".join(seg.text for seg in line))
        width = sum(advances) + box.letter_spacing * (len(advances) - 1)
        x0 = align_start(block.typography.text_align, box.x, box.w, width)
        y = glyph_top(font, box.y + line_idx * box.line_height, box.line_height)
        offset = 0
        for seg in line:
            n = len(seg.text)
            x = x0 + sum(advances[:offset]) + box.letter_spacing * offset
            advance = sum(advances[offset : offset + n]) + box.letter_spacing * (n - 1)
            placed.append(PlacedSegment(seg.key_str, seg.text, seg.color, x, y, advance))
            offset += n
    return placed
