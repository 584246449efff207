"""Shared fixtures for banner_studio tests."""
from __future__ import annotations

import pytest
from PIL import ImageFont

from banner_studio.assembly.fonts import FontReadiness, FontRegistry
from banner_studio.models import ColorRange, Geometry, TextBlock, Typography


class FakeFont:
    """Fixed-width glyphs, with a few wide characters to catch ordering mistakes."""

    def __init__(self, widths: dict[str, float] | None = None, default: float = 10.0) -> None:
        self.widths = widths or {"W": 14.0, "i": 4.0}
        self.default = default

    def getlength(self, text: str) -> float:
        return sum(self.widths.get(ch, self.default) for ch in text)

    def getmetrics(self) -> tuple[int, int]:
        return (8, 2)


class RecordingDraw:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple[float, float], str, object]] = []

    def text(self, xy, text, fill=None, font=None) -> None:
        self.calls.append((xy, text, fill))


def make_block(
    text: str = "abcdef",
    committed: tuple[ColorRange, ...] = (),
    draft: ColorRange | None = None,
    **typo,
) -> TextBlock:
    return TextBlock(
        id="main-title",
        text=text,
        geometry=Geometry(x=20, y=30, width=400, height=120),
        typography=Typography(**{"font_size": 32.0, **typo}),
        base_color="#112233",
        committed_ranges=committed,
        draft_range=draft,
    )


@pytest.fixture
def fake_font() -> FakeFont:
    return FakeFont()


@pytest.fixture
def recording_draw() -> RecordingDraw:
    return RecordingDraw()


@pytest.fixture
def block_factory():
    return make_block


@pytest.fixture
def pil_font():
    # Pillow's bundled font; needs no system font files.
    return ImageFont.load_default(size=32)


@pytest.fixture
def default_registry(tmp_path) -> FontRegistry:
    return FontRegistry(font_dirs=[tmp_path], fallbacks=[])


@pytest.fixture
def ready() -> FontReadiness:
    barrier = FontReadiness()
    barrier.mark_ready()
    return barrier
