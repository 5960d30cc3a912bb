"""Occupancy map of the physical sectors of a simulated disk."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from itertools import product

from .common import BlockStatus, InvalidParameterError, PhysicalAddress

_STATUS_FORMAT = "<i"
_STATUS_SIZE = struct.calcsize(_STATUS_FORMAT)
_STATUS_LETTERS = {
    BlockStatus.EMPTY: "E",
    BlockStatus.INCOMPLETE: "I",
    BlockStatus.FULL: "F",
}


class SectorStatusMap:
    """Status of every physical sector, indexed by cylinder, platter/surface and sector.

    The status of a logical block is kept on the first sector it occupies.
    """

    def __init__(
        self,
        num_platters: int,
        num_surfaces_per_platter: int,
        num_cylinders: int,
        num_sectors_per_track: int,
        sectors_per_block: int,
    ) -> None:
        if min(num_platters, num_surfaces_per_platter, num_cylinders, num_sectors_per_track) <= 0:
            raise InvalidParameterError("Disk dimensions cannot be zero.")
        if sectors_per_block <= 0:
            raise InvalidParameterError("A block must span at least one sector.")
        self.num_platters = num_platters
        self.num_surfaces_per_platter = num_surfaces_per_platter
        self.num_cylinders = num_cylinders
        self.num_sectors_per_track = num_sectors_per_track
        self.sectors_per_block = sectors_per_block
        self._statuses: list[BlockStatus] = [BlockStatus.EMPTY] * self.total_sectors

    @property
    def surfaces(self) -> int:
        """Number of recording surfaces across all platters."""
        return self.num_platters * self.num_surfaces_per_platter

    @property
    def total_sectors(self) -> int:
        """Number of physical sectors on the disk."""
        return self.num_cylinders * self.surfaces * self.num_sectors_per_track

    def _index(self, track: int, surface_index: int, sector: int) -> int:
        return (track * self.surfaces + surface_index) * self.num_sectors_per_track + sector

    def _address(self, track: int, surface_index: int, sector: int) -> PhysicalAddress:
        return PhysicalAddress(
            surface_index // self.num_surfaces_per_platter,
            surface_index % self.num_surfaces_per_platter,
            track,
            sector,
        )

    def _checked_index(self, address: PhysicalAddress) -> int:
        if not self.is_valid_address(address):
            raise InvalidParameterError(f"Invalid physical address: {address}")
        surface_index = address.platter_id * self.num_surfaces_per_platter + address.surface_id
        return self._index(address.track_id, surface_index, address.sector_id)

    def _block_starts(self) -> Iterator[tuple[int, int, int]]:
        for track, surface_index in product(range(self.num_cylinders), range(self.surfaces)):
            for sector in range(0, self.num_sectors_per_track, self.sectors_per_block):
                yield track, surface_index, sector

    def get(self, address: PhysicalAddress) -> BlockStatus:
        """Status recorded for the sector at ``address``."""
        return self._statuses[self._checked_index(address)]

    def set(self, address: PhysicalAddress, status: BlockStatus) -> None:
        """Record ``status`` for the sector at ``address``."""
        self._statuses[self._checked_index(address)] = BlockStatus(status)

    def reset(self) -> None:
        """Mark every sector as empty."""
        self._statuses = [BlockStatus.EMPTY] * self.total_sectors

    def is_valid_address(self, address: PhysicalAddress) -> bool:
        """Whether ``address`` lies within the disk geometry."""
        return (
            0 <= address.platter_id < self.num_platters
            and 0 <= address.surface_id < self.num_surfaces_per_platter
            and 0 <= address.track_id < self.num_cylinders
            and 0 <= address.sector_id < self.num_sectors_per_track
        )

    def find_first(self, status: BlockStatus) -> PhysicalAddress | None:
        """First block start with ``status``, scanning cylinder, surface, sector; None if none."""
        for track, surface_index, sector in self._block_starts():
            if self._statuses[self._index(track, surface_index, sector)] == status:
                return self._address(track, surface_index, sector)
        return None

    def find_contiguous_block(
        self,
        start_sector: int,
        end_sector: int,
        sectors_needed: int,
        prioritize_incomplete: bool = False,
    ) -> PhysicalAddress | None:
        """Find room for a block starting between ``start_sector`` and ``end_sector``.

        Incomplete blocks are preferred when ``prioritize_incomplete`` is set;
        otherwise a run of ``sectors_needed`` empty sectors is looked for.
        """
        if sectors_needed <= 0:
            raise InvalidParameterError("sectors_needed must be positive.")
        candidates = [
            (track, surface_index, sector)
            for track, surface_index in product(range(self.num_cylinders), range(self.surfaces))
            for sector in range(start_sector, end_sector + 1, sectors_needed)
            if sector + sectors_needed <= self.num_sectors_per_track
        ]
        if prioritize_incomplete:
            for track, surface_index, sector in candidates:
                if self._statuses[self._index(track, surface_index, sector)] == BlockStatus.INCOMPLETE:
                    return self._address(track, surface_index, sector)
        for track, surface_index, sector in candidates:
            first = self._index(track, surface_index, sector)
            if all(status == BlockStatus.EMPTY for status in self._statuses[first : first + sectors_needed]):
                return self._address(track, surface_index, sector)
        return None

    def free_physical_sectors(self) -> int:
        """Sectors belonging to blocks whose first sector is empty."""
        return sum(
            self.sectors_per_block
            for track, surface_index, sector in self._block_starts()
            if self._statuses[self._index(track, surface_index, sector)] == BlockStatus.EMPTY
        )

    def occupied_logical_blocks(self) -> int:
        """Block starts marked full or incomplete."""
        return sum(
            1
            for track, surface_index, sector in self._block_starts()
            if self._statuses[self._index(track, surface_index, sector)]
            in (BlockStatus.FULL, BlockStatus.INCOMPLETE)
        )

    def render(self) -> str:
        """Text picture of block states, one line per surface of each cylinder."""
        lines = ["--- Block Status Map ---", "Legend: E=EMPTY, I=INCOMPLETE, F=FULL"]
        for track in range(self.num_cylinders):
            lines.append(f"Cylinder {track}:")
            for surface_index in range(self.surfaces):
                letters = " ".join(
                    _STATUS_LETTERS[self._statuses[self._index(track, surface_index, sector)]]
                    for sector in range(0, self.num_sectors_per_track, self.sectors_per_block)
                )
                platter = surface_index // self.num_surfaces_per_platter
                surface = surface_index % self.num_surfaces_per_platter
                lines.append(f"  P{platter}S{surface}: {letters}")
        lines.append("-" * 42)
        return "\n".join(lines)

    def to_bytes(self) -> bytes:
        """Serialise every sector status, cylinder by cylinder, as little-endian int32."""
        return b"".join(struct.pack(_STATUS_FORMAT, int(status)) for status in self._statuses)

    def load_bytes(self, data: bytes | bytearray | memoryview) -> None:
        """Replace the statuses with those serialised by :meth:`to_bytes`."""
        raw = bytes(data)
        expected = self.total_sectors * _STATUS_SIZE
        if len(raw) != expected:
            raise InvalidParameterError(
                f"Sector map needs {expected} bytes, got {len(raw)}."
            )
        try:
            statuses = [BlockStatus(value) for (value,) in struct.iter_unpack(_STATUS_FORMAT, raw)]
        except ValueError as exc:
            raise InvalidParameterError(f"Invalid block status in sector map: {exc}") from exc
        self._statuses = statuses