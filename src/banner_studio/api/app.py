from __future__ import annotations

import asyncio
import io
import json
import logging
import math
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates
from PIL import Image, UnidentifiedImageError

from banner_studio.assembly.contract import compare_traces, layout_traces
from banner_studio.assembly.fonts import FontLoadError, FontReadiness, FontRegistry
from banner_studio.assembly.live_view import build_live_view, style_attr
from banner_studio.assembly.render import export_banner, normalize_format
from banner_studio.config import settings
from banner_studio.logging_setup import setup_logging
from banner_studio.models import TextBlock, text_block_from_dict
from banner_studio.text.geometry import preview_scale, scale_box
from banner_studio.text.ranges import resolve
from banner_studio.text.segments import build_runs, normalize_text, segment

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    app.state.fonts = FontRegistry()
    app.state.fonts_ready = FontReadiness()
    preload = asyncio.create_task(app.state.fonts_ready.preload(app.state.fonts, settings.preload_fonts))
    yield
    if not preload.done():
        preload.cancel()


app = FastAPI(title="banner_studio", lifespan=lifespan)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["style_attr"] = style_attr


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if math.isfinite(parsed) else default


def _parse_block(raw: str) -> TextBlock:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"block must be JSON object: {exc}") from exc
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="block must be JSON object")
    return text_block_from_dict(parsed)


def _parse_blocks(raw: str) -> list[TextBlock]:
    if not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"blocks must be JSON list: {exc}") from exc
    if not isinstance(parsed, list):
        raise HTTPException(status_code=400, detail="blocks must be JSON list")
    return [text_block_from_dict(item) for item in parsed if isinstance(item, dict)]


async def _wait_for_fonts(request: Request) -> None:
    try:
        await request.app.state.fonts_ready.wait(settings.font_ready_timeout)
    except FontLoadError as exc:
        logger.error("render refused: %s", exc)
        raise HTTPException(status_code=503, detail="could not render: fonts unavailable") from exc


@app.get("/healthz")
def healthz(request: Request):
    return {"ok": True, "fonts_ready": request.app.state.fonts_ready.is_ready}


@app.post("/segments")
def block_segments(block: str = Form(...), scale: str = Form("1")):
    tb = _parse_block(block)
    normalized = normalize_text(tb.text)
    resolved = resolve(tb.committed_ranges, tb.draft_range, text_length=len(normalized))
    segments = segment(normalized, resolved)
    box = scale_box(tb, _parse_float(scale, 1.0))
    return {
        "block_id": tb.id,
        "resolved": [{"start": r.start, "end": r.end, "color": r.color} for r in resolved],
        "segments": [
            {
                "key": s.key_str,
                "lineIdx": s.line_idx,
                "segIdx": s.seg_idx,
                "start": s.start,
                "end": s.end,
                "text": s.text,
                "color": s.color,
            }
            for s in segments
        ],
        "runs": [{"text": t, "color": c} for t, c in build_runs(segments, tb.base_color)],
        "box": {
            "x": box.x,
            "y": box.y,
            "w": box.w,
            "h": box.h,
            "fontSize": box.font_size,
            "lineHeight": box.line_height,
            "letterSpacing": box.letter_spacing,
        },
    }


@app.post("/preview", response_class=HTMLResponse)
async def preview(
    request: Request,
    blocks: str = Form(...),
    surface_width: str = Form(...),
    logical_width: str = Form(...),
    logical_height: str = Form(...),
):
    parsed = _parse_blocks(blocks)
    logical_w = _parse_float(logical_width, 0.0)
    logical_h = _parse_float(logical_height, 0.0)
    try:
        scale = preview_scale(_parse_float(surface_width, 0.0), logical_w)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    await _wait_for_fonts(request)
    views = [build_live_view(b, scale) for b in parsed]
    return templates.TemplateResponse(
        request,
        "preview.html",
        {
            "views": views,
            "surface_width": logical_w * scale,
            "surface_height": logical_h * scale,
        },
    )


@app.post("/export")
async def export(
    request: Request,
    blocks: str = Form(...),
    width: int = Form(...),
    height: int = Form(...),
    format: str = Form(""),
    quality: str = Form(""),
    pixel_ratio: str = Form("1"),
    background_fit: str = Form("contain"),
    background: UploadFile | None = File(None),
):
    if width <= 0 or height <= 0:
        raise HTTPException(status_code=400, detail="width and height must be positive")
    parsed = _parse_blocks(blocks)

    bg_img: Image.Image | None = None
    if background is not None:
        content = await background.read()
        if content:
            try:
                bg_img = Image.open(io.BytesIO(content))
                bg_img.load()
            except (UnidentifiedImageError, OSError) as exc:
                raise HTTPException(status_code=400, detail="background is not a readable image") from exc

    fmt = (format or settings.default_export_format).strip()
    q = int(_parse_float(quality, settings.default_export_quality)) if quality.strip() else None
    try:
        out_bytes = await export_banner(
            (width, height),
            parsed,
            fonts=request.app.state.fonts,
            fonts_ready=request.app.state.fonts_ready,
            background=bg_img,
            background_fit=background_fit,
            fmt=fmt,
            quality=q,
            pixel_ratio=_parse_float(pixel_ratio, 1.0),
        )
    except FontLoadError as exc:
        logger.error("export failed: %s", exc)
        raise HTTPException(status_code=503, detail="could not render: fonts unavailable") from exc

    media = _MEDIA_TYPES[normalize_format(fmt)]
    return Response(content=out_bytes, media_type=media)


@app.post("/parity")
async def parity(request: Request, block: str = Form(...)):
    tb = _parse_block(block)
    try:
        live, raster = await layout_traces(
            tb,
            fonts=request.app.state.fonts,
            fonts_ready=request.app.state.fonts_ready,
        )
    except FontLoadError as exc:
        raise HTTPException(status_code=503, detail="could not render: fonts unavailable") from exc
    divergences = compare_traces(live, raster)
    payload: dict[str, Any] = {
        "block_id": tb.id,
        "ok": not divergences,
        "divergences": [
            {"key": d.key, "field": d.field, "live": d.live, "raster": d.raster} for d in divergences
        ],
    }
    return JSONResponse(payload)


def main() -> None:
    import uvicorn

    uvicorn.run("banner_studio.api.app:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
