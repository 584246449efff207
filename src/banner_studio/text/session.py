"""
Interactive color edit session for one text block.

Idle -> Editing(draft) -> Confirmed (draft folded into committed ranges)
                       -> Cancelled (committed ranges restored from snapshot)

Both terminal transitions return a new TextBlock in a single step and bring the
session back to Idle.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import replace

from banner_studio.config import settings
from banner_studio.models import ColorRange, TextBlock
from banner_studio.text.ranges import clear_range, resolve
from banner_studio.text.segments import normalize_text

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    pass


class EditState(enum.Enum):
    IDLE = "idle"
    EDITING = "editing"


class ColorEditSession:
    def __init__(self, block: TextBlock) -> None:
        self._block = replace(block, draft_range=None)
        self._snapshot: tuple[ColorRange, ...] | None = None
        self.state = EditState.IDLE

    @property
    def block(self) -> TextBlock:
        """Current snapshot to render; carries the draft while editing."""
        return self._block

    @property
    def draft(self) -> ColorRange | None:
        return self._block.draft_range

    def _require(self, state: EditState, action: str) -> None:
        if self.state is not state:
            raise SessionStateError(f"cannot {action} while {self.state.value}")

    def begin(self, start: int, end: int, color: str) -> TextBlock:
        """Open a draft over a selection."""
        self._require(EditState.IDLE, "begin an edit")
        self._snapshot = self._block.committed_ranges
        self._block = replace(self._block, draft_range=ColorRange(start, end, color))
        self.state = EditState.EDITING
        return self._block

    def begin_whole(self, color: str) -> TextBlock:
        """Open a draft covering the whole normalized text."""
        return self.begin(0, len(normalize_text(self._block.text)), color)

    def update(self, start: int | None = None, end: int | None = None, color: str | None = None) -> TextBlock:
        self._require(EditState.EDITING, "update the draft")
        draft = self._block.draft_range
        if draft is None:
            raise SessionStateError("no draft to update")
        draft = ColorRange(
            start=draft.start if start is None else start,
            end=draft.end if end is None else end,
            color=draft.color if color is None else color,
        )
        self._block = replace(self._block, draft_range=draft)
        return self._block

    def confirm(self) -> TextBlock:
        """Fold the draft into committed ranges with the same resolver used for rendering."""
        self._require(EditState.EDITING, "confirm")
        text_length = len(normalize_text(self._block.text))
        folded = resolve(self._block.committed_ranges, self._block.draft_range, text_length=text_length)
        self._block = replace(self._block, committed_ranges=tuple(folded), draft_range=None)
        self._snapshot = None
        self.state = EditState.IDLE
        logger.debug("block %s: confirmed color edit, %d committed ranges", self._block.id, len(folded))
        return self._block

    def cancel(self) -> TextBlock:
        self._require(EditState.EDITING, "cancel")
        committed = self._snapshot if self._snapshot is not None else self._block.committed_ranges
        self._block = replace(self._block, committed_ranges=committed, draft_range=None)
        self._snapshot = None
        self.state = EditState.IDLE
        return self._block

    def clear(self, start: int, end: int) -> TextBlock:
        """Remove color from [start, end) immediately."""
        self._require(EditState.IDLE, "clear colors")
        text_length = len(normalize_text(self._block.text))
        remaining = clear_range(resolve(self._block.committed_ranges, text_length=text_length), start, end)
        self._block = replace(self._block, committed_ranges=tuple(remaining))
        return self._block


def constrain_text(text: str, max_length: int | None = None, max_lines: int | None = None) -> str:
    """Trim editor input to the block's line and character limits."""
    max_length = settings.default_max_length if max_length is None else max_length
    max_lines = settings.default_max_lines if max_lines is None else max_lines
    lines = normalize_text(text).split("\n")
    if len(lines) > max_lines:
        lines = lines[:max_lines]
    out = "\n".join(lines)
    if len(out) > max_length:
        out = out[:max_length]
    return out
