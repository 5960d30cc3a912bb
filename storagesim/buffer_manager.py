"""Buffer pool that caches disk blocks in memory frames."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import replace
from types import TracebackType

from .block import Block
from .common import (
    BlockStatus,
    BufferFullError,
    InvalidParameterError,
    NotFoundError,
    PagePinnedError,
    PageType,
)
from .disk_manager import DiskManager
from .page import Page

logger = logging.getLogger(__name__)


class ReplacementPolicy:
    """Least-recently-used choice of the frame to evict.

    Only frames that have been unpinned and not pinned again are candidates.
    """

    def __init__(self) -> None:
        # frame id -> whether the frame may be evicted; order is recency of use
        self._frames: OrderedDict[int, bool] = OrderedDict()

    def add_frame(self, frame_id: int) -> None:
        """Start tracking ``frame_id``; it is not evictable until unpinned."""
        self._frames.setdefault(frame_id, False)

    def access(self, frame_id: int) -> None:
        """Mark ``frame_id`` as the most recently used frame."""
        if frame_id in self._frames:
            self._frames.move_to_end(frame_id)

    def pin(self, frame_id: int) -> None:
        """Protect ``frame_id`` from eviction."""
        self._frames[frame_id] = False

    def unpin(self, frame_id: int) -> None:
        """Allow ``frame_id`` to be evicted."""
        self._frames[frame_id] = True

    def evict(self) -> int | None:
        """Remove and return the least recently used evictable frame, or None."""
        victim = next((frame_id for frame_id, evictable in self._frames.items() if evictable), None)
        if victim is not None:
            del self._frames[victim]
        return victim

    def remove_frame(self, frame_id: int) -> None:
        """Stop tracking ``frame_id``."""
        self._frames.pop(frame_id, None)


class BufferManager:
    """Keeps a fixed number of disk blocks in memory frames, with pinning and dirty tracking."""

    def __init__(
        self,
        disk_manager: DiskManager,
        pool_size: int,
        block_size: int,
        replacement_policy: ReplacementPolicy | None = None,
    ) -> None:
        if block_size != disk_manager.block_size:
            raise InvalidParameterError(
                "BufferManager block_size must match DiskManager's block_size."
            )
        if pool_size < 0:
            raise InvalidParameterError("pool_size cannot be negative.")
        self._disk = disk_manager
        self._pool_size = pool_size
        self._block_size = block_size
        self._policy = replacement_policy if replacement_policy is not None else ReplacementPolicy()
        self._frames = [Page() for _ in range(pool_size)]
        self._pool = [bytearray(block_size) for _ in range(pool_size)]
        self._page_table: dict[int, int] = {}
        for frame_id in range(pool_size):
            self._policy.add_frame(frame_id)
        logger.info(
            "BufferManager initialised with pool_size=%d and block_size=%d bytes.",
            pool_size,
            block_size,
        )

    # ------------------------------------------------------------ page access

    def fetch_page(self, page_id: int) -> bytearray:
        """Pin ``page_id`` in the pool, reading it from disk if needed, and return its bytes."""
        frame_id = self._page_table.get(page_id)
        if frame_id is not None:
            frame = self._frames[frame_id]
            frame.pin_count += 1
            self._policy.pin(frame_id)
            self._policy.access(frame_id)
            return self._pool[frame_id]

        frame_id = self._obtain_frame()
        try:
            block = self._disk.read_block(page_id)
        except Exception:
            self._frames[frame_id].reset()
            self._policy.remove_frame(frame_id)
            raise
        self._pool[frame_id][:] = block.data

        self._install(frame_id, page_id, dirty=False)
        return self._pool[frame_id]

    def new_page(self, page_type: PageType = PageType.DATA_PAGE) -> tuple[int, bytearray]:
        """Allocate a block on disk, pin it in the pool zeroed, and return its id and bytes."""
        page_id = self._disk.allocate_block(page_type)
        try:
            frame_id = self._obtain_frame()
        except Exception:
            self._disk.deallocate_block(page_id)
            raise

        data = self._pool[frame_id]
        data[:] = bytes(self._block_size)
        self._install(frame_id, page_id, dirty=True)

        try:
            self._disk.write_block(page_id, Block(self._block_size, data))
        except Exception:
            del self._page_table[page_id]
            self._frames[frame_id].reset()
            self._policy.remove_frame(frame_id)
            self._disk.deallocate_block(page_id)
            raise

        logger.info("New page %d created in frame %d.", page_id, frame_id)
        return page_id, data

    def delete_page(self, page_id: int) -> None:
        """Drop ``page_id`` from the pool (writing it back if dirty) and free it on disk."""
        frame_id = self._page_table.get(page_id)
        if frame_id is not None:
            frame = self._frames[frame_id]
            if frame.pin_count > 0:
                raise PagePinnedError(f"Page {page_id} is pinned and cannot be deleted.")
            if frame.is_dirty:
                self._write_page(page_id)
            frame.reset()
            del self._page_table[page_id]
            self._policy.remove_frame(frame_id)
            logger.info("Page %d removed from the buffer pool.", page_id)

        self._disk.deallocate_block(page_id)
        logger.info("Page %d deleted.", page_id)

    def unpin_page(self, page_id: int, is_dirty: bool = False) -> None:
        """Release one pin on ``page_id``, marking it dirty if it was modified."""
        frame_id = self._page_table.get(page_id)
        if frame_id is None:
            raise NotFoundError(f"Page {page_id} is not in the buffer pool.")
        frame = self._frames[frame_id]
        if frame.pin_count == 0:
            raise InvalidParameterError(f"Page {page_id} is not pinned.")
        frame.pin_count -= 1
        if is_dirty:
            frame.is_dirty = True
        if frame.pin_count == 0:
            self._policy.unpin(frame_id)

    def flush_all_pages(self) -> int:
        """Write every dirty page to disk and return how many were written.

        All pages are attempted; the first failure is raised afterwards.
        """
        written = 0
        first_error: Exception | None = None
        for frame in self._frames:
            if not (frame.is_valid and frame.is_dirty):
                continue
            try:
                self._write_page(frame.page_id)
            except Exception as exc:
                logger.error("Failed to flush page %d: %s", frame.page_id, exc)
                if first_error is None:
                    first_error = exc
            else:
                frame.is_dirty = False
                written += 1
        if first_error is not None:
            raise first_error
        return written

    # ------------------------------------------------------------- inspection

    @property
    def free_frames_count(self) -> int:
        """Frames that hold no page."""
        return sum(1 for frame in self._frames if not frame.is_valid)

    @property
    def pool_size(self) -> int:
        """Total number of frames."""
        return self._pool_size

    @property
    def num_buffered_pages(self) -> int:
        """Pages currently held in the pool."""
        return len(self._page_table)

    @property
    def block_size(self) -> int:
        """Size in bytes of a page."""
        return self._block_size

    def page_data_in_pool(self, page_id: int) -> bytearray | None:
        """Bytes of ``page_id`` if it is in the pool, without pinning it; otherwise None."""
        frame_id = self._page_table.get(page_id)
        return None if frame_id is None else self._pool[frame_id]

    def update_block_status_on_disk(self, page_id: int, status: BlockStatus) -> None:
        """Record ``status`` for ``page_id`` in the disk's sector map."""
        self._disk.update_block_status(page_id, status)

    @property
    def frames(self) -> tuple[Page, ...]:
        """Snapshot of the bookkeeping of every frame."""
        return tuple(replace(frame) for frame in self._frames)

    # -------------------------------------------------------------- lifecycle

    def close(self) -> None:
        """Flush all dirty pages; failures are logged, not raised."""
        try:
            self.flush_all_pages()
        except Exception as exc:
            logger.error("Failed to flush all dirty pages: %s", exc)

    def __enter__(self) -> BufferManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ---------------------------------------------------------------- helpers

    def _install(self, frame_id: int, page_id: int, *, dirty: bool) -> None:
        frame = self._frames[frame_id]
        frame.page_id = page_id
        frame.pin_count = 1
        frame.is_dirty = dirty
        frame.is_valid = True
        self._page_table[page_id] = frame_id
        self._policy.pin(frame_id)
        self._policy.access(frame_id)

    def _find_free_frame(self) -> int | None:
        return next(
            (frame_id for frame_id, frame in enumerate(self._frames) if not frame.is_valid),
            None,
        )

    def _obtain_frame(self) -> int:
        frame_id = self._find_free_frame()
        if frame_id is not None:
            return frame_id
        self._evict_page()
        frame_id = self._find_free_frame()
        if frame_id is None:
            raise BufferFullError("No free frame after eviction.")
        return frame_id

    def _evict_page(self) -> None:
        frame_id = self._policy.evict()
        if frame_id is None:
            raise BufferFullError("No evictable frame in the buffer pool.")
        frame = self._frames[frame_id]
        page_id = frame.page_id
        if frame.is_dirty:
            try:
                self._write_page(page_id)
            except Exception:
                self._policy.unpin(frame_id)
                raise
        self._page_table.pop(page_id, None)
        frame.reset()
        self._policy.remove_frame(frame_id)
        logger.info("Page %d evicted from frame %d.", page_id, frame_id)

    def _write_page(self, page_id: int) -> None:
        frame_id = self._page_table.get(page_id)
        if frame_id is None:
            raise NotFoundError(f"Page {page_id} is not in the buffer pool.")
        self._disk.write_block(page_id, Block(self._block_size, self._pool[frame_id]))

    def __repr__(self) -> str:
        return (
            f"BufferManager(pool_size={self._pool_size}, block_size={self._block_size}, "
            f"buffered={len(self._page_table)})"
        )