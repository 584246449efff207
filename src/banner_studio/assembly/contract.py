"""
Parity between the live styled-text view and the raster export.

Both backends take the same segments and scaled geometry; only the paint step
differs. The helpers here lay a block out through each backend and report any
segment whose boundaries, color or advance disagree.
"""
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from PIL import Image

from banner_studio.assembly.fonts import FontLike, FontReadiness, FontRegistry
from banner_studio.assembly.letter_advance import PlacedSegment
from banner_studio.assembly.live_view import live_layout
from banner_studio.assembly.render import render_text_block
from banner_studio.config import settings
from banner_studio.models import TextBlock
from banner_studio.text.geometry import scale_box

logger = logging.getLogger(__name__)

SUBPIXEL_TOLERANCE = 0.5


@dataclass(frozen=True)
class Divergence:
    key: str
    field: str
    live: Any
    raster: Any


def raster_layout(block: TextBlock, font: FontLike, scale: float = 1.0) -> list[PlacedSegment]:
    """Paint the block on a scratch canvas and return the raster placements."""
    box = scale_box(block, scale)
    size = (max(1, math.ceil(box.x + box.w)), max(1, math.ceil(box.y + box.h)))
    scratch = Image.new("RGBA", size, (0, 0, 0, 0))
    return render_text_block(scratch, block, font, scale=scale)


async def layout_traces(
    block: TextBlock,
    *,
    fonts: FontRegistry,
    fonts_ready: FontReadiness,
    scale: float = 1.0,
) -> tuple[list[PlacedSegment], list[PlacedSegment]]:
    """(live, raster) placements for one block, measured after the fonts-ready barrier."""
    await fonts_ready.wait(settings.font_ready_timeout)
    box = scale_box(block, scale)
    if box.font_size <= 0:
        logger.warning("no layout for block %s: font size %.2f is not positive", block.id, box.font_size)
        return [], []
    font = await asyncio.to_thread(
        fonts.load, block.typography.font_family, block.typography.font_weight, box.font_size
    )
    return live_layout(block, font, scale), raster_layout(block, font, scale)


def compare_traces(
    live: Sequence[PlacedSegment],
    raster: Sequence[PlacedSegment],
    tolerance: float = SUBPIXEL_TOLERANCE,
) -> list[Divergence]:
    if len(live) != len(raster):
        return [Divergence("*", "count", len(live), len(raster))]

    out: list[Divergence] = []
    for a, b in zip(live, raster):
        for name in ("key", "text", "color"):
            if getattr(a, name) != getattr(b, name):
                out.append(Divergence(a.key, name, getattr(a, name), getattr(b, name)))
        for name in ("x", "y", "advance"):
            if abs(getattr(a, name) - getattr(b, name)) > tolerance:
                out.append(Divergence(a.key, name, getattr(a, name), getattr(b, name)))
    if out:
        logger.warning("live/raster layouts diverge in %d places", len(out))
    return out


def run_sequence(trace: Sequence[PlacedSegment], base_color: str) -> list[tuple[str, str]]:
    """Ordered (text, color) pairs with inherit resolved to the base color."""
    return [(p.text, p.color if p.color is not None else base_color) for p in trace]
