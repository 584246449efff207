"""Tests for banner_studio.assembly.fonts."""
import asyncio

import pytest

from banner_studio.assembly.fonts import FontLoadError, FontReadiness, FontRegistry, parse_face


def test_parse_face():
    assert parse_face("Pretendard:700") == ("Pretendard", 700)
    assert parse_face("Noto Sans KR") == ("Noto Sans KR", 400)
    assert parse_face("Arial:bold") == ("Arial", 400)


def test_find_path_matches_family_and_weight(tmp_path):
    (tmp_path / "Pretendard-Bold.otf").write_bytes(b"")
    (tmp_path / "Pretendard-Regular.otf").write_bytes(b"")
    (tmp_path / "NotoSansKR.ttf").write_bytes(b"")
    registry = FontRegistry(font_dirs=[tmp_path], fallbacks=[])
    assert registry.find_path("Pretendard", 700).name == "Pretendard-Bold.otf"
    assert registry.find_path("Pretendard", 680).name == "Pretendard-Bold.otf"
    assert registry.find_path("Pretendard", 400).name == "Pretendard-Regular.otf"
    assert registry.find_path("Noto Sans KR", 400).name == "NotoSansKR.ttf"
    assert registry.find_path("Arial", 400) is None


def test_load_falls_back_to_pillow_default(default_registry):
    font = default_registry.load("Missing", 400, 24)
    assert font.getlength("abc") > 0
    assert default_registry.load("Missing", 400, 24) is font


def test_corrupt_font_file_raises(tmp_path):
    (tmp_path / "Broken-Regular.ttf").write_bytes(b"not a font")
    registry = FontRegistry(font_dirs=[tmp_path], fallbacks=[])
    with pytest.raises(FontLoadError):
        registry.load("Broken", 400, 16)


def test_wait_returns_once_ready():
    async def scenario():
        barrier = FontReadiness()
        waiter = asyncio.create_task(barrier.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        barrier.mark_ready()
        await waiter
        return barrier.is_ready

    assert asyncio.run(scenario()) is True


def test_failed_barrier_rejects_wait():
    barrier = FontReadiness()
    barrier.fail(OSError("font server down"))
    assert not barrier.is_ready
    with pytest.raises(FontLoadError):
        asyncio.run(barrier.wait())


def test_wait_timeout():
    with pytest.raises(FontLoadError):
        asyncio.run(FontReadiness().wait(timeout=0.01))


def test_preload_resolves_barrier(default_registry):
    barrier = FontReadiness()
    asyncio.run(barrier.preload(default_registry, ["Pretendard:400", "Pretendard:700"]))
    assert barrier.is_ready


def test_preload_failure_fails_barrier(tmp_path):
    (tmp_path / "Broken-Regular.ttf").write_bytes(b"not a font")
    registry = FontRegistry(font_dirs=[tmp_path], fallbacks=[])
    barrier = FontReadiness()
    asyncio.run(barrier.preload(registry, ["Broken"]))
    with pytest.raises(FontLoadError):
        asyncio.run(barrier.wait())


class _ExplodingRegistry(FontRegistry):
    def load(self, family, weight, size):
        raise ValueError("font size must be greater than 0")


def test_preload_unexpected_error_fails_barrier(tmp_path):
    barrier = FontReadiness()
    asyncio.run(barrier.preload(_ExplodingRegistry(font_dirs=[tmp_path], fallbacks=[]), ["Pretendard"]))
    assert not barrier.is_ready
    with pytest.raises(FontLoadError):
        asyncio.run(barrier.wait(timeout=0.01))
