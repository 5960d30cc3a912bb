"""Bookkeeping for a frame of the buffer pool."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Page:
    """Management state of one buffer frame; the bytes live in the buffer pool."""

    page_id: int = 0
    pin_count: int = 0
    is_dirty: bool = False
    is_valid: bool = False

    def reset(self) -> None:
        """Return the frame to the empty, unpinned, clean, invalid state."""
        self.page_id = 0
        self.pin_count = 0
        self.is_dirty = False
        self.is_valid = False