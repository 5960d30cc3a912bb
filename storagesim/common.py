"""Shared types for the storage simulator: page kinds, block states, errors, addresses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class PageType(IntEnum):
    """Kind of content a page holds."""

    DATA_PAGE = 0
    CATALOG_PAGE = 1


class BlockStatus(IntEnum):
    """Occupancy state recorded for the first sector of a logical block."""

    EMPTY = 0
    INCOMPLETE = 1
    FULL = 2


class StorageError(Exception):
    """Base class for storage simulator errors."""


class NotFoundError(StorageError, LookupError):
    """A requested page, file or entry does not exist."""


class InvalidBlockIdError(StorageError, LookupError):
    """A logical block id has no physical mapping."""


class InvalidParameterError(StorageError, ValueError):
    """An argument or state is invalid for the requested operation."""


class DiskFullError(StorageError):
    """No free space is left on the simulated disk."""


class BufferFullError(StorageError):
    """No frame in the buffer pool can be evicted."""


class PagePinnedError(StorageError):
    """A page is pinned and cannot be removed from the buffer pool."""


@dataclass(frozen=True)
class PhysicalAddress:
    """Location of a sector on the simulated disk."""

    platter_id: int = 0
    surface_id: int = 0
    track_id: int = 0
    sector_id: int = 0