"""
Editing session: a current buffer with bounded undo history.
"""

import logging
from typing import Any, Mapping

from soniphorm.core.buffer import Region, SampleBuffer
from soniphorm.edits import paste
from soniphorm.engine import EffectEngine

logger = logging.getLogger(__name__)

# Effects stored as non-destructive playback settings instead of rendered
LIVE_EFFECTS = ("reverb", "delay", "filter")


class EditSession:
    """
    Destructive editing of one buffer.

    Every successful edit or applied effect snapshots the buffer it replaces. At most
    max_undo snapshots are kept (the oldest is dropped), and any new edit
    clears the redo history.
    """

    def __init__(
        self,
        buffer: SampleBuffer,
        engine: EffectEngine | None = None,
        max_undo: int | None = None,
    ):
        self.buffer = buffer.copy()
        self.engine = engine or EffectEngine()
        self.max_undo = max_undo if max_undo is not None else self.engine.config.max_undo

        self.undo_stack: list[SampleBuffer] = []
        self.redo_stack: list[SampleBuffer] = []
        self.clipboard: SampleBuffer | None = None
        self.live_effects: dict[str, dict[str, Any]] = {}

        self._preview_request = 0

    # --- History ---------------------------------------------------------

    def push_undo(self) -> None:
        self.undo_stack.append(self.buffer.copy())
        if len(self.undo_stack) > self.max_undo:
            self.undo_stack.pop(0)
        self.redo_stack.clear()

    def undo(self) -> bool:
        """Step back one edit. Returns False when there is nothing to undo."""
        if not self.undo_stack:
            return False
        self.redo_stack.append(self.buffer)
        self.buffer = self.undo_stack.pop()
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False
        self.undo_stack.append(self.buffer)
        self.buffer = self.redo_stack.pop()
        return True

    # --- Edits -----------------------------------------------------------

    def _bounds(self, start: int | None, end: int | None) -> tuple[int, int]:
        start = 0 if start is None else int(start)
        end = self.buffer.length if end is None else int(end)
        return start, end

    def apply_edit(self, op: str, start: int | None = None, end: int | None = None) -> SampleBuffer:
        """
        Run a destructive edit on the current buffer.

        Raises:
            UnknownEffectError: For an unknown operation (history untouched).
            ValueError: For an invalid region (history untouched).
        """
        start, end = self._bounds(start, end)
        result = self.engine.edit(op, self.buffer, start, end)
        self.push_undo()
        self.buffer = result
        return result

    def copy_selection(self, start: int, end: int) -> SampleBuffer:
        region = Region(start, end).validate(self.buffer.length)
        self.clipboard = SampleBuffer(self.buffer.channels[:, region.slice], self.buffer.sample_rate)
        return self.clipboard

    def paste(self, position: int) -> SampleBuffer | None:
        """Insert the clipboard at position; a no-op while the clipboard is empty."""
        if self.clipboard is None:
            return None
        result = paste(self.buffer, self.clipboard, position)
        self.push_undo()
        self.buffer = result
        return result

    def bounce(self, start: int | None = None, end: int | None = None) -> SampleBuffer:
        """Copy of a region as a standalone buffer; the session is unchanged."""
        start, end = self._bounds(start, end)
        region = Region(start, end).validate(self.buffer.length)
        return SampleBuffer(self.buffer.channels[:, region.slice], self.buffer.sample_rate)

    # --- Effects ---------------------------------------------------------

    async def apply_effect(
        self,
        key: str,
        start: int | None = None,
        end: int | None = None,
        values: Mapping[str, Any] | None = None,
        source: SampleBuffer | None = None,
    ) -> SampleBuffer:
        """
        Apply a catalog effect destructively.

        The snapshot is taken only once processing succeeds, so a failing
        effect leaves the buffer and both history stacks as they were.
        """
        start, end = self._bounds(start, end)
        try:
            result = await self.engine.apply(key, self.buffer, start, end, values, source)
        except Exception:
            logger.warning("Effect %s failed, session left unchanged", key)
            raise
        self.push_undo()
        self.buffer = result
        return result

    async def preview(
        self,
        key: str,
        start: int | None = None,
        end: int | None = None,
        values: Mapping[str, Any] | None = None,
        source: SampleBuffer | None = None,
    ) -> SampleBuffer | None:
        """
        Render a short preview without touching the session.

        When previews overlap, only the most recently requested one is
        returned; earlier ones resolve to None.
        """
        self._preview_request += 1
        request = self._preview_request

        start, end = self._bounds(start, end)
        result = await self.engine.preview(key, self.buffer, start, end, values, source)

        if request != self._preview_request:
            logger.debug("Discarding stale preview %d (latest %d)", request, self._preview_request)
            return None
        return result

    def set_live_effect(self, key: str, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Store validated playback settings for reverb, delay or filter.

        Raises:
            ValueError: If the effect cannot run live.
        """
        if key not in LIVE_EFFECTS:
            raise ValueError(f"{key} cannot be applied as a live effect")
        params = self.engine.get(key).validate(values)
        self.live_effects[key] = params
        return params

    def clear_live_effect(self, key: str) -> None:
        self.live_effects.pop(key, None)
