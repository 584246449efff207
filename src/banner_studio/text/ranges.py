"""
Color range resolution.

Committed ranges may overlap and arrive unsorted; the resolver composites them
(plus an optional draft range, which always wins) into a disjoint, sorted and
coalesced coverage of the normalized text.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from banner_studio.models import ColorRange

logger = logging.getLogger(__name__)


def _sort_key(r: ColorRange) -> tuple[int, int]:
    return (r.start, r.end)


def clamp_range(r: ColorRange, text_length: int) -> ColorRange | None:
    start = max(0, min(text_length, r.start))
    end = max(0, min(text_length, r.end))
    if end <= start:
        return None
    if start != r.start or end != r.end:
        logger.debug(
            "clamped color range [%d, %d) to [%d, %d) for text length %d",
            r.start,
            r.end,
            start,
            end,
            text_length,
        )
        return replace(r, start=start, end=end)
    return r


def clamp_ranges(ranges: Iterable[ColorRange], text_length: int) -> list[ColorRange]:
    """Clamp every range into [0, text_length]; ranges that end up empty are dropped."""
    out: list[ColorRange] = []
    for r in ranges:
        clamped = clamp_range(r, text_length)
        if clamped is not None:
            out.append(clamped)
    return out


def _coalesce(ranges: list[ColorRange]) -> list[ColorRange]:
    out: list[ColorRange] = []
    for r in ranges:
        if r.end <= r.start:
            continue
        last = out[-1] if out else None
        if last is not None and last.color == r.color and last.end == r.start:
            out[-1] = replace(last, end=r.end)
        else:
            out.append(r)
    return out


def _cut(accumulated: list[ColorRange], start: int, end: int) -> list[ColorRange]:
    """Remove [start, end) from a disjoint list, keeping left/right remainders."""
    pieces: list[ColorRange] = []
    for prev in accumulated:
        if prev.end <= start or prev.start >= end:
            pieces.append(prev)
            continue
        if prev.start < start:
            pieces.append(replace(prev, end=start))
        if prev.end > end:
            pieces.append(replace(prev, start=end))
    return pieces


def _overlay(accumulated: list[ColorRange], curr: ColorRange) -> list[ColorRange]:
    pieces = _cut(accumulated, curr.start, curr.end)
    pieces.append(curr)
    pieces.sort(key=_sort_key)
    return _coalesce(pieces)


def resolve(
    committed: Iterable[ColorRange],
    draft: ColorRange | None = None,
    text_length: int | None = None,
) -> list[ColorRange]:
    """
    Composite committed ranges and an optional draft into disjoint coverage.

    Committed ranges are applied in (start, end) order, so among overlapping
    committed ranges the later one wins; the draft is applied last and wins
    over all of them. Malformed ranges (end <= start) are dropped and, when
    `text_length` is given, ranges are clamped into the text first.
    """
    inputs = [r for r in committed if r.end > r.start]
    if text_length is not None:
        inputs = clamp_ranges(inputs, text_length)
    inputs.sort(key=_sort_key)

    if draft is not None and draft.end > draft.start:
        if text_length is not None:
            draft = clamp_range(draft, text_length)
        if draft is not None:
            inputs.append(draft)

    accumulated: list[ColorRange] = []
    for r in inputs:
        accumulated = _overlay(accumulated, r)
    return accumulated


def clear_range(ranges: Iterable[ColorRange], start: int, end: int) -> list[ColorRange]:
    """Remove any color from [start, end), splitting ranges that straddle its edges."""
    resolved = resolve(ranges)
    if end <= start:
        return resolved
    return _coalesce(_cut(resolved, start, end))
