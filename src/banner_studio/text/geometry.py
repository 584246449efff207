from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict

from banner_studio.models import ScaledBox, TextBlock

logger = logging.getLogger(__name__)

LINE_HEIGHT_RATIO = 1.2


def scale_box(block: TextBlock, scale: float) -> ScaledBox:
    """
    Logical -> rendering-space conversion for one text block.

    Export calls this with scale=1 (or the export pixel ratio), the live view
    with preview_scale(); nothing else may scale block geometry.
    """
    geo = block.geometry
    typo = block.typography
    line_height = typo.line_height if typo.line_height else typo.font_size * LINE_HEIGHT_RATIO
    letter_spacing = typo.letter_spacing or 0.0
    return ScaledBox(
        x=geo.x * scale,
        y=geo.y * scale,
        w=geo.width * scale,
        h=geo.height * scale,
        font_size=typo.font_size * scale,
        line_height=line_height * scale,
        letter_spacing=letter_spacing * scale,
    )


def preview_scale(surface_width: float, logical_width: float) -> float:
    if logical_width <= 0:
        raise ValueError(f"logical width must be positive, got {logical_width}")
    return surface_width / logical_width


def compare_geometry(expected: ScaledBox, actual: Mapping[str, float], tolerance: float = 0.01) -> list[str]:
    """
    Debug-only check: report fields of `actual` that differ from the scaler output.

    Fields missing from `actual` are not compared. Each mismatch is logged as a
    warning; nothing is raised.
    """
    mismatched: list[str] = []
    for name, want in asdict(expected).items():
        if name not in actual:
            continue
        got = actual[name]
        if abs(got - want) > tolerance:
            logger.warning("%s scale mismatch: expected %.3f, actual %.3f", name, want, got)
            mismatched.append(name)
    return mismatched
