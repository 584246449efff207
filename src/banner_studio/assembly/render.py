from __future__ import annotations

import asyncio
import io
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from PIL import Image, ImageChops, ImageColor, ImageDraw

from banner_studio.assembly.fonts import FontLike, FontReadiness, FontRegistry
from banner_studio.assembly.letter_advance import (
    GlyphTarget,
    PlacedSegment,
    align_start,
    draw_line,
    glyph_top,
    run_width,
)
from banner_studio.config import settings
from banner_studio.models import ScaledBox, Segment, TextBlock
from banner_studio.text.geometry import scale_box
from banner_studio.text.segments import segment_block, visible_lines

logger = logging.getLogger(__name__)

RGBA = tuple[int, int, int, int]
_TRANSPARENT: RGBA = (0, 0, 0, 0)
_BLACK: RGBA = (0, 0, 0, 255)


@dataclass(frozen=True)
class RenderedBanner:
    image: Image.Image
    # block id -> where each of its segments was drawn
    placements: dict[str, list[PlacedSegment]]


async def render_banner(
    size: tuple[int, int],
    blocks: Sequence[TextBlock],
    *,
    fonts: FontRegistry,
    fonts_ready: FontReadiness,
    background: Image.Image | None = None,
    background_fit: str = "contain",
    pixel_ratio: float = 1.0,
) -> RenderedBanner:
    """
    Flatten a banner: background, then every text block in order.

    Waits on the fonts-ready barrier before any font is measured; a failed
    barrier surfaces as FontLoadError.
    """
    await fonts_ready.wait(settings.font_ready_timeout)

    pixel_ratio = _clamp_pixel_ratio(pixel_ratio)
    w, h = size
    canvas_size = (max(1, round(w * pixel_ratio)), max(1, round(h * pixel_ratio)))

    if background is not None:
        base = _fit_background(background.convert("RGBA"), canvas_size, background_fit)
    else:
        base = Image.new("RGBA", canvas_size, (255, 255, 255, 255))

    placements: dict[str, list[PlacedSegment]] = {}
    for block in blocks:
        box = scale_box(block, pixel_ratio)
        if box.font_size <= 0:
            logger.warning("skipping block %s: font size %.2f is not positive", block.id, box.font_size)
            placements[block.id] = []
            continue
        font = await asyncio.to_thread(
            fonts.load, block.typography.font_family, block.typography.font_weight, box.font_size
        )
        placements[block.id] = render_text_block(base, block, font, scale=pixel_ratio)

    logger.info("rendered banner %dx%d (ratio %.2f) with %d text blocks", canvas_size[0], canvas_size[1], pixel_ratio, len(blocks))
    return RenderedBanner(image=base, placements=placements)


async def export_banner(
    size: tuple[int, int],
    blocks: Sequence[TextBlock],
    *,
    fonts: FontRegistry,
    fonts_ready: FontReadiness,
    background: Image.Image | None = None,
    background_fit: str = "contain",
    fmt: str | None = None,
    quality: int | None = None,
    pixel_ratio: float = 1.0,
) -> bytes:
    rendered = await render_banner(
        size,
        blocks,
        fonts=fonts,
        fonts_ready=fonts_ready,
        background=background,
        background_fit=background_fit,
        pixel_ratio=pixel_ratio,
    )
    return encode_image(rendered.image, fmt=fmt, quality=quality)


def render_text_block(image: Image.Image, block: TextBlock, font: FontLike, scale: float = 1.0) -> list[PlacedSegment]:
    """
    Paint one block onto an RGBA image in place.

    The block is drawn on its own layer, clipped to its box (overflow hidden),
    then composited. Callers must have awaited the fonts-ready barrier.
    """
    box = scale_box(block, scale)
    layer = Image.new("RGBA", image.size, _TRANSPARENT)
    draw = ImageDraw.Draw(layer)
    rect = _box_rect(box)

    if block.background_color:
        plate = _to_rgba(block.background_color, _TRANSPARENT)
        draw.rounded_rectangle(rect, radius=settings.button_corner_radius * scale, fill=plate)

    base_fill = _to_rgba(block.base_color, _BLACK)
    mask: Image.Image | None = None
    mask_draw: ImageDraw.ImageDraw | None = None
    if block.gradient is not None:
        mask = Image.new("L", image.size, 0)
        mask_draw = ImageDraw.Draw(mask)

    def painter(seg: Segment) -> tuple[GlyphTarget, object]:
        if seg.color is None:
            if mask_draw is not None:
                return mask_draw, 255
            return draw, base_fill
        return draw, _to_rgba(seg.color, base_fill)

    placed: list[PlacedSegment] = []
    for line_idx, line in enumerate(visible_lines(block, segment_block(block))):
        if not line:
            continue
        width = run_width(font, "".join(seg.text for seg in line), box.letter_spacing)
        x = align_start(block.typography.text_align, box.x, box.w, width)
        y = glyph_top(font, box.y + line_idx * box.line_height, box.line_height)
        placed.extend(draw_line(line, x, y, box.letter_spacing, font=font, painter=painter))

    if mask is not None and block.gradient is not None:
        start = _to_rgba(block.gradient.start_color, base_fill)
        end = _to_rgba(block.gradient.end_color, base_fill)
        fill = _horizontal_gradient(image.size, box.x, box.x + box.w, start, end)
        fill.putalpha(mask)
        layer = Image.alpha_composite(layer, fill)

    clip = Image.new("L", image.size, 0)
    ImageDraw.Draw(clip).rectangle(rect, fill=255)
    layer.putalpha(ImageChops.multiply(layer.getchannel("A"), clip))
    image.alpha_composite(layer)
    return placed


def encode_image(img: Image.Image, fmt: str | None = None, quality: int | None = None) -> bytes:
    fmt = normalize_format(fmt or settings.default_export_format)
    quality = settings.default_export_quality if quality is None else max(1, min(100, int(quality)))
    buf = io.BytesIO()
    if fmt == "JPEG":
        img.convert("RGB").save(buf, format="JPEG", quality=quality)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


def normalize_format(fmt: str) -> str:
    f = fmt.strip().lower()
    if f.startswith("image/"):
        f = f[len("image/") :]
    if f in ("jpg", "jpeg"):
        return "JPEG"
    if f == "webp":
        return "WEBP"
    return "PNG"


def _clamp_pixel_ratio(ratio: float) -> float:
    if not math.isfinite(ratio) or ratio <= 0:
        return 1.0
    return min(ratio, settings.max_pixel_ratio)


def _box_rect(box: ScaledBox) -> tuple[int, int, int, int]:
    # PIL rectangles include their last row/column.
    x1 = math.floor(box.x)
    y1 = math.floor(box.y)
    x2 = max(x1, math.ceil(box.x + box.w) - 1)
    y2 = max(y1, math.ceil(box.y + box.h) - 1)
    return (x1, y1, x2, y2)


def _to_rgba(color: str, fallback: RGBA) -> RGBA:
    """Parse any color Pillow understands; colors are opaque to the engine, so bad ones fall back."""
    try:
        parsed = ImageColor.getrgb(color)
    except ValueError:
        logger.warning("unparseable color %r, using %s", color, fallback)
        return fallback
    if len(parsed) == 3:
        return (parsed[0], parsed[1], parsed[2], 255)
    return (parsed[0], parsed[1], parsed[2], parsed[3])


def _horizontal_gradient(size: tuple[int, int], x_from: float, x_to: float, start: RGBA, end: RGBA) -> Image.Image:
    w, h = size
    span = max(1.0, x_to - x_from)
    row: list[RGBA] = []
    for x in range(w):
        t = min(1.0, max(0.0, (x + 0.5 - x_from) / span))
        row.append(tuple(int(round(a + (b - a) * t)) for a, b in zip(start, end)))  # type: ignore[misc]
    strip = Image.new("RGBA", (w, 1))
    strip.putdata(row)
    return strip.resize((w, h), Image.Resampling.NEAREST)


def _fit_background(img: Image.Image, size: tuple[int, int], mode: str) -> Image.Image:
    if mode == "cover":
        return _resize_cover(img, size)
    return _resize_contain(img, size)


def _resize_cover(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """
    Resize to cover the target canvas (no stretching), then center-crop.
    """
    tw, th = size
    iw, ih = img.size
    if iw <= 0 or ih <= 0:
        return img.resize(size, Image.Resampling.LANCZOS)

    scale = max(tw / iw, th / ih)
    nw, nh = max(1, int(iw * scale)), max(1, int(ih * scale))
    resized = img.resize((nw, nh), Image.Resampling.LANCZOS)

    left = max(0, (nw - tw) // 2)
    top = max(0, (nh - th) // 2)
    return resized.crop((left, top, left + tw, top + th))


def _resize_contain(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """
    Fit the whole image inside the canvas, centered, on a white ground.
    """
    tw, th = size
    canvas = Image.new("RGBA", (tw, th), (255, 255, 255, 255))
    iw, ih = img.size
    if iw <= 0 or ih <= 0:
        return canvas

    scale = min(tw / iw, th / ih)
    nw, nh = max(1, int(iw * scale)), max(1, int(ih * scale))
    resized = img.resize((nw, nh), Image.Resampling.LANCZOS)
    canvas.alpha_composite(resized, ((tw - nw) // 2, (th - nh) // 2))
    return canvas
