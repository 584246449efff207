from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from banner_studio.config import settings

DEFAULT_FONT_FAMILY = settings.default_font_family
TEXT_ALIGNS = ("left", "center", "right")


@dataclass(frozen=True)
class ColorRange:
    """Half-open interval [start, end) into the normalized text, painted with `color`."""

    start: int
    end: int
    color: str

    @property
    def length(self) -> int:
        return max(0, self.end - self.start)

    def is_empty(self) -> bool:
        return self.end <= self.start


@dataclass(frozen=True)
class Geometry:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Typography:
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = 16.0
    font_weight: int = 400
    letter_spacing: float | None = None
    line_height: float | None = None
    text_align: str = "left"


@dataclass(frozen=True)
class Gradient:
    start_color: str
    end_color: str


@dataclass(frozen=True)
class TextBlock:
    id: str
    text: str
    geometry: Geometry
    typography: Typography = field(default_factory=Typography)
    base_color: str = "#000000"
    gradient: Gradient | None = None
    committed_ranges: tuple[ColorRange, ...] = ()
    draft_range: ColorRange | None = None
    background_color: str | None = None
    max_lines: int | None = None


@dataclass(frozen=True)
class Segment:
    line_idx: int
    seg_idx: int
    start: int
    end: int
    text: str
    # None means "inherit the block's base color / gradient".
    color: str | None = None

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (self.line_idx, self.seg_idx, self.start, self.end)

    @property
    def key_str(self) -> str:
        return f"{self.line_idx}:{self.seg_idx}:{self.start}-{self.end}"

    @property
    def inherits(self) -> bool:
        return self.color is None


@dataclass(frozen=True)
class ScaledBox:
    x: float
    y: float
    w: float
    h: float
    font_size: float
    line_height: float
    letter_spacing: float


def _as_float(value: Any, default: float | None) -> float | None:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_font_size(value: Any, default: float = 16.0) -> float:
    size = _as_float(value, default)
    if size is None or not math.isfinite(size) or size <= 0:
        return default
    return size


def color_range_from_dict(raw: Any) -> ColorRange | None:
    """
    Parse one editor range. Returns None for anything unusable; empty and
    out-of-bounds ranges are kept here and filtered by the resolver.
    """
    if not isinstance(raw, dict):
        return None
    try:
        start = int(raw["start"])
        end = int(raw["end"])
    except (KeyError, TypeError, ValueError):
        return None
    color = raw.get("color")
    if not isinstance(color, str):
        return None
    return ColorRange(start=start, end=end, color=color)


def _ranges_from_list(raw: Any) -> tuple[ColorRange, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[ColorRange] = []
    for item in raw:
        parsed = color_range_from_dict(item)
        if parsed is not None:
            out.append(parsed)
    return tuple(out)


def text_block_from_dict(data: dict[str, Any]) -> TextBlock:
    """
    Build a TextBlock from the editor's camelCase payload.

    `colorSegments` is accepted as a legacy alias of `committedRanges`.
    Geometry may be given flat (x/y/width/height) or nested under `geometry`.
    """
    geo = data.get("geometry") if isinstance(data.get("geometry"), dict) else data
    geometry = Geometry(
        x=_as_float(geo.get("x"), 0.0),
        y=_as_float(geo.get("y"), 0.0),
        width=_as_float(geo.get("width", geo.get("w")), 0.0),
        height=_as_float(geo.get("height", geo.get("h")), 0.0),
    )

    typo = data.get("typography") if isinstance(data.get("typography"), dict) else data
    align = str(typo.get("textAlign") or "left").strip().lower()
    try:
        weight = int(typo.get("fontWeight") or 400)
    except (TypeError, ValueError):
        weight = 400
    typography = Typography(
        font_family=str(typo.get("fontFamily") or DEFAULT_FONT_FAMILY),
        font_size=_as_font_size(typo.get("fontSize")),
        font_weight=weight,
        letter_spacing=_as_float(typo.get("letterSpacing"), None),
        line_height=_as_float(typo.get("lineHeight"), None),
        text_align=align if align in TEXT_ALIGNS else "left",
    )

    gradient = None
    grad = data.get("gradient")
    if isinstance(grad, dict) and grad.get("from") and grad.get("to"):
        gradient = Gradient(start_color=str(grad["from"]), end_color=str(grad["to"]))

    committed_raw = data.get("committedRanges")
    if committed_raw is None:
        committed_raw = data.get("colorSegments")

    max_lines = data.get("maxLines")
    try:
        max_lines = int(max_lines) if max_lines is not None else None
    except (TypeError, ValueError):
        max_lines = None

    return TextBlock(
        id=str(data.get("id") or "text"),
        text=str(data.get("text") or ""),
        geometry=geometry,
        typography=typography,
        base_color=str(data.get("color") or data.get("baseColor") or "#000000"),
        gradient=gradient,
        committed_ranges=_ranges_from_list(committed_raw),
        draft_range=color_range_from_dict(data.get("draftRange")),
        background_color=data.get("backgroundColor") or None,
        max_lines=max_lines,
    )


def text_block_to_dict(block: TextBlock) -> dict[str, Any]:
    typo = block.typography
    out: dict[str, Any] = {
        "id": block.id,
        "text": block.text,
        "x": block.geometry.x,
        "y": block.geometry.y,
        "width": block.geometry.width,
        "height": block.geometry.height,
        "fontFamily": typo.font_family,
        "fontSize": typo.font_size,
        "fontWeight": typo.font_weight,
        "letterSpacing": typo.letter_spacing,
        "lineHeight": typo.line_height,
        "textAlign": typo.text_align,
        "color": block.base_color,
        "committedRanges": [{"start": r.start, "end": r.end, "color": r.color} for r in block.committed_ranges],
        "draftRange": None,
    }
    if block.draft_range is not None:
        d = block.draft_range
        out["draftRange"] = {"start": d.start, "end": d.end, "color": d.color}
    if block.gradient is not None:
        out["gradient"] = {"from": block.gradient.start_color, "to": block.gradient.end_color}
    if block.background_color:
        out["backgroundColor"] = block.background_color
    if block.max_lines is not None:
        out["maxLines"] = block.max_lines
    return out
