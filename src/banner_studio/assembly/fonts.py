from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from PIL import ImageFont

from banner_studio.config import settings

logger = logging.getLogger(__name__)

FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont

_WEIGHT_NAMES = {
    100: "Thin",
    200: "ExtraLight",
    300: "Light",
    400: "Regular",
    500: "Medium",
    600: "SemiBold",
    700: "Bold",
    800: "ExtraBold",
    900: "Black",
}
_FONT_SUFFIXES = (".ttf", ".otf", ".ttc")

# Probed when no configured font directory has the requested family.
_FALLBACK_CANDIDATES: list[str] = [
    "assets/fonts/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/Library/Fonts/Arial.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
]


class FontLoadError(RuntimeError):
    """Fonts could not be loaded, or the fonts-ready barrier failed."""


def parse_face(face: str) -> tuple[str, int]:
    """'Pretendard:700' -> ('Pretendard', 700). Weight defaults to 400."""
    family, _, weight = face.partition(":")
    try:
        return family.strip(), int(weight) if weight.strip() else 400
    except ValueError:
        return family.strip(), 400


def _weight_name(weight: int) -> str:
    nearest = min(_WEIGHT_NAMES, key=lambda w: abs(w - weight))
    return _WEIGHT_NAMES[nearest]


class FontRegistry:
    """Maps (family, weight, size) to Pillow fonts found in the configured font directories."""

    def __init__(self, font_dirs: Iterable[str | Path] | None = None, fallbacks: Iterable[str] | None = None) -> None:
        dirs = settings.font_dirs if font_dirs is None else font_dirs
        self.font_dirs = [Path(d) for d in dirs]
        self.fallbacks = list(_FALLBACK_CANDIDATES if fallbacks is None else fallbacks)
        self._fonts: dict[tuple[str, int, float], FontLike] = {}

    def find_path(self, family: str, weight: int = 400) -> Path | None:
        compact = family.replace(" ", "").lower()
        weight_name = _weight_name(weight).lower()
        wanted = {f"{compact}-{weight_name}", f"{compact}{weight_name}", f"{compact}_{weight_name}"}
        if weight_name == "regular":
            wanted.add(compact)
        for d in self.font_dirs:
            if not d.is_dir():
                continue
            for p in sorted(d.iterdir()):
                if p.suffix.lower() in _FONT_SUFFIXES and p.stem.replace(" ", "").lower() in wanted:
                    return p
        return None

    def _fallback_path(self) -> Path | None:
        for c in self.fallbacks:
            p = Path(c)
            if p.exists():
                return p
        return None

    def load(self, family: str, weight: int, size: float) -> FontLike:
        key = (family, weight, round(size, 3))
        cached = self._fonts.get(key)
        if cached is not None:
            return cached

        path = self.find_path(family, weight)
        if path is None:
            path = self._fallback_path()
            logger.warning("font %s:%d not found, substituting %s", family, weight, path or "Pillow default")
        if path is not None:
            try:
                font: FontLike = ImageFont.truetype(str(path), size=size)
            except OSError as exc:
                raise FontLoadError(f"failed to load {path}: {exc}") from exc
        else:
            font = ImageFont.load_default(size=size)
        self._fonts[key] = font
        return font


class FontReadiness:
    """
    The fonts-ready barrier.

    Every measurement or draw on the raster path, and every measured live
    layout, awaits wait() first. A failed barrier raises FontLoadError from
    wait(); nothing here retries.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._error: BaseException | None = None

    @property
    def is_ready(self) -> bool:
        return self._event.is_set() and self._error is None

    def mark_ready(self) -> None:
        self._event.set()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._event.set()

    async def wait(self, timeout: float | None = None) -> None:
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError as exc:
            raise FontLoadError(f"fonts not ready after {timeout}s") from exc
        if self._error is not None:
            raise FontLoadError(f"fonts failed to load: {self._error}") from self._error

    async def preload(self, registry: FontRegistry, faces: Iterable[str], size: float = 16.0) -> None:
        """Load `faces` off the event loop, then resolve (or fail) the barrier."""
        parsed = [parse_face(f) for f in faces]

        def _load_all() -> None:
            for family, weight in parsed:
                registry.load(family, weight, size)

        try:
            await asyncio.to_thread(_load_all)
        except Exception as exc:
            logger.error("font preload failed: %s", exc)
            self.fail(exc)
            return
        logger.info("fonts ready: %s", ", ".join(f"{f}:{w}" for f, w in parsed) or "(none)")
        self.mark_ready()
