"""Simulated hard disk: block allocation, block I/O and persistent metadata."""

from __future__ import annotations

import logging
import shutil
import struct
from os import PathLike
from pathlib import Path
from types import TracebackType

from .block import Block
from .common import (
    BlockStatus,
    DiskFullError,
    InvalidBlockIdError,
    InvalidParameterError,
    NotFoundError,
    PageType,
    PhysicalAddress,
)
from .sector_map import SectorStatusMap

logger = logging.getLogger(__name__)

METADATA_FILE_NAME = "disk_metadata.dat"
DEFAULT_ROOT = "Discos"

# platters, surfaces per platter, cylinders, sectors per track,
# block size, sector size, next logical page id
_HEADER = struct.Struct("<7I")
_COUNT = struct.Struct("<I")
# logical id, platter, surface, track, sector
_MAPPING_ENTRY = struct.Struct("<5I")


def _validate_geometry(
    num_platters: int,
    num_surfaces_per_platter: int,
    num_cylinders: int,
    num_sectors_per_track: int,
    block_size: int,
    sector_size: int,
) -> None:
    if block_size <= 0 or sector_size <= 0 or block_size % sector_size != 0:
        raise InvalidParameterError("Block size must be a non-zero multiple of sector size.")
    if min(num_platters, num_surfaces_per_platter, num_cylinders, num_sectors_per_track) <= 0:
        raise InvalidParameterError("Disk dimensions cannot be zero.")


class DiskManager:
    """Maps logical blocks onto the sectors of a simulated disk kept in a directory.

    Each logical block's bytes live in their own file inside the disk directory;
    the sector map and the logical-to-physical mapping are persisted in a
    metadata file alongside them.
    """

    def __init__(
        self,
        disk_name: str,
        num_platters: int,
        num_surfaces_per_platter: int,
        num_cylinders: int,
        num_sectors_per_track: int,
        block_size: int,
        sector_size: int,
        root: str | PathLike[str] = DEFAULT_ROOT,
    ) -> None:
        _validate_geometry(
            num_platters,
            num_surfaces_per_platter,
            num_cylinders,
            num_sectors_per_track,
            block_size,
            sector_size,
        )
        self.disk_name = disk_name
        self.num_platters = num_platters
        self.num_surfaces_per_platter = num_surfaces_per_platter
        self.num_cylinders = num_cylinders
        self.num_sectors_per_track = num_sectors_per_track
        self.block_size = block_size
        self.sector_size = sector_size
        self._disk_root = Path(root) / disk_name
        self._next_logical_page_id = 0
        self._logical_to_physical: dict[int, PhysicalAddress] = {}
        self._sectors = self._new_sector_map()

    # ------------------------------------------------------------------ paths

    @property
    def disk_root(self) -> Path:
        """Directory holding this disk's files."""
        return self._disk_root

    @property
    def _metadata_path(self) -> Path:
        return self._disk_root / METADATA_FILE_NAME

    def _block_path(self, block_id: int) -> Path:
        return self._disk_root / f"Block_{block_id}.dat"

    def _new_sector_map(self) -> SectorStatusMap:
        return SectorStatusMap(
            self.num_platters,
            self.num_surfaces_per_platter,
            self.num_cylinders,
            self.num_sectors_per_track,
            self.sectors_per_block,
        )

    # ------------------------------------------------------------- lifecycle

    def create_disk_structure(self) -> None:
        """Build a fresh disk directory tree, zeroed block files and metadata.

        Any existing content of the disk directory is removed first.
        """
        if self._disk_root.exists():
            logger.warning(
                "Disk directory '%s' already exists; removing its content.", self.disk_name
            )
            shutil.rmtree(self._disk_root)
        self._disk_root.mkdir(parents=True)
        for platter in range(self.num_platters):
            for surface in range(self.num_surfaces_per_platter):
                surface_dir = self._disk_root / f"Plato{platter}" / f"Superficie{surface}"
                for cylinder in range(self.num_cylinders):
                    (surface_dir / f"Cilindro{cylinder}").mkdir(parents=True, exist_ok=True)

        self._initialize_map_and_block_files()
        self.save_disk_metadata()
        logger.info("Disk structure created for '%s'.", self.disk_name)

    def _initialize_map_and_block_files(self) -> None:
        self._sectors.reset()
        self._logical_to_physical.clear()
        self._next_logical_page_id = 0
        empty = bytes(self.block_size)
        for block_id in range(self.total_logical_blocks):
            self._block_path(block_id).write_bytes(empty)

    def load_disk_metadata(self) -> None:
        """Restore geometry, sector map and block mapping from the metadata file."""
        path = self._metadata_path
        if not path.exists():
            raise NotFoundError(f"Metadata file not found for disk '{self.disk_name}'.")
        raw = path.read_bytes()
        try:
            header = _HEADER.unpack_from(raw, 0)
        except struct.error as exc:
            raise InvalidParameterError(f"Truncated disk metadata: {exc}") from exc
        (
            num_platters,
            num_surfaces_per_platter,
            num_cylinders,
            num_sectors_per_track,
            block_size,
            sector_size,
            next_logical_page_id,
        ) = header
        _validate_geometry(
            num_platters,
            num_surfaces_per_platter,
            num_cylinders,
            num_sectors_per_track,
            block_size,
            sector_size,
        )
        sectors = SectorStatusMap(
            num_platters,
            num_surfaces_per_platter,
            num_cylinders,
            num_sectors_per_track,
            block_size // sector_size,
        )
        offset = _HEADER.size
        map_length = len(sectors.to_bytes())
        sectors.load_bytes(raw[offset : offset + map_length])
        offset += map_length

        mapping: dict[int, PhysicalAddress] = {}
        try:
            (count,) = _COUNT.unpack_from(raw, offset)
            offset += _COUNT.size
            for _ in range(count):
                logical_id, platter, surface, track, sector = _MAPPING_ENTRY.unpack_from(raw, offset)
                offset += _MAPPING_ENTRY.size
                mapping[logical_id] = PhysicalAddress(platter, surface, track, sector)
        except struct.error as exc:
            raise InvalidParameterError(f"Truncated disk metadata: {exc}") from exc

        self.num_platters = num_platters
        self.num_surfaces_per_platter = num_surfaces_per_platter
        self.num_cylinders = num_cylinders
        self.num_sectors_per_track = num_sectors_per_track
        self.block_size = block_size
        self.sector_size = sector_size
        self._next_logical_page_id = next_logical_page_id
        self._sectors = sectors
        self._logical_to_physical = mapping
        logger.info("Metadata for disk '%s' loaded.", self.disk_name)

    def save_disk_metadata(self) -> None:
        """Write geometry, sector map and block mapping to the metadata file."""
        parts = [
            _HEADER.pack(
                self.num_platters,
                self.num_surfaces_per_platter,
                self.num_cylinders,
                self.num_sectors_per_track,
                self.block_size,
                self.sector_size,
                self._next_logical_page_id,
            ),
            self._sectors.to_bytes(),
            _COUNT.pack(len(self._logical_to_physical)),
        ]
        parts.extend(
            _MAPPING_ENTRY.pack(
                logical_id,
                address.platter_id,
                address.surface_id,
                address.track_id,
                address.sector_id,
            )
            for logical_id, address in sorted(self._logical_to_physical.items())
        )
        self._metadata_path.write_bytes(b"".join(parts))

    def _save_quietly(self, context: str) -> None:
        try:
            self.save_disk_metadata()
        except OSError as exc:
            logger.warning("Failed to save disk metadata after %s: %s", context, exc)

    def close(self) -> None:
        """Persist the disk metadata; failures are logged, not raised."""
        try:
            self.save_disk_metadata()
        except OSError as exc:
            logger.error("Failed to save metadata of disk '%s': %s", self.disk_name, exc)

    def __enter__(self) -> DiskManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------ allocation

    def allocate_block(self, page_type: PageType = PageType.DATA_PAGE) -> int:
        """Allocate a logical block and return its id.

        A block start marked incomplete is reused before an empty one is taken.
        """
        reused_id: int | None = None
        address = self._sectors.find_first(BlockStatus.INCOMPLETE)
        if address is not None:
            reused_id = next(
                (logical_id for logical_id, mapped in self._logical_to_physical.items() if mapped == address),
                None,
            )
        else:
            address = self._sectors.find_first(BlockStatus.EMPTY)
        if address is None:
            raise DiskFullError("No free space left on the disk.")

        if self._logical_to_physical.get(self._next_logical_page_id) == address:
            block_id = reused_id if reused_id is not None else self._next_logical_page_id
        else:
            block_id = self._next_logical_page_id
            self._next_logical_page_id += 1

        self._logical_to_physical[block_id] = address
        self.update_block_status(block_id, BlockStatus.INCOMPLETE)
        logger.info(
            "Logical block %d (%s) allocated at P%d S%d T%d Sec%d.",
            block_id,
            PageType(page_type).name,
            address.platter_id,
            address.surface_id,
            address.track_id,
            address.sector_id,
        )
        self._save_quietly("allocation")
        return block_id

    def deallocate_block(self, block_id: int) -> None:
        """Free the sectors of ``block_id``, drop its mapping and zero its file."""
        address = self.address_of(block_id)
        for offset in range(self.sectors_per_block):
            sector_address = PhysicalAddress(
                address.platter_id,
                address.surface_id,
                address.track_id,
                address.sector_id + offset,
            )
            if self._sectors.is_valid_address(sector_address):
                self._sectors.set(sector_address, BlockStatus.EMPTY)
            else:
                logger.warning("Skipping out-of-range sector while freeing block %d.", block_id)
        del self._logical_to_physical[block_id]

        block_path = self._block_path(block_id)
        if block_path.exists():
            try:
                block_path.write_bytes(bytes(self.block_size))
            except OSError as exc:
                logger.warning("Could not clear block file %s: %s", block_path, exc)
        else:
            logger.warning("Block file not found for clearing: %s", block_path)

        logger.info("Logical block %d deallocated.", block_id)
        self._save_quietly("deallocation")

    # ------------------------------------------------------------------ I/O

    def read_block(self, block_id: int) -> Block:
        """Read the contents of ``block_id`` from its file."""
        self.address_of(block_id)
        with self._block_path(block_id).open("rb") as handle:
            payload = handle.read(self.block_size)
        return Block(self.block_size, payload)

    def write_block(self, block_id: int, block: Block) -> None:
        """Write ``block`` to the file of ``block_id``; its size must match the disk's."""
        self.address_of(block_id)
        if block.size != self.block_size:
            raise InvalidParameterError(
                f"Block size {block.size} does not match the disk block size {self.block_size}."
            )
        self._block_path(block_id).write_bytes(bytes(block.data))

    def update_block_status(self, block_id: int, status: BlockStatus) -> None:
        """Record ``status`` for ``block_id`` in memory; unknown ids are ignored."""
        address = self._logical_to_physical.get(block_id)
        if address is None:
            logger.warning("Logical block %d not found; status not updated.", block_id)
            return
        if self._sectors.is_valid_address(address):
            self._sectors.set(address, status)
        else:
            logger.warning("Invalid physical address for block %d.", block_id)

    # ------------------------------------------------------------ statistics

    @property
    def sectors_per_block(self) -> int:
        """Number of sectors a logical block spans."""
        return self.block_size // self.sector_size

    @property
    def total_physical_sectors(self) -> int:
        """Number of sectors on the disk."""
        return (
            self.num_platters
            * self.num_surfaces_per_platter
            * self.num_cylinders
            * self.num_sectors_per_track
        )

    @property
    def free_physical_sectors(self) -> int:
        """Sectors of blocks whose first sector is empty."""
        return self._sectors.free_physical_sectors()

    @property
    def total_logical_blocks(self) -> int:
        """Number of logical blocks the disk can hold."""
        return self.total_physical_sectors // self.sectors_per_block

    @property
    def total_capacity_bytes(self) -> int:
        """Disk capacity in bytes."""
        return self.total_physical_sectors * self.sector_size

    @property
    def occupied_logical_blocks(self) -> int:
        """Block starts marked full or incomplete."""
        return self._sectors.occupied_logical_blocks()

    @property
    def disk_usage_percentage(self) -> float:
        """Share of logical blocks in use, in percent."""
        total = self.total_logical_blocks
        if total == 0:
            return 0.0
        return self.occupied_logical_blocks / total * 100.0

    def address_of(self, block_id: int) -> PhysicalAddress:
        """Physical address mapped to ``block_id``."""
        try:
            return self._logical_to_physical[block_id]
        except KeyError:
            raise InvalidBlockIdError(f"Logical block {block_id} is not mapped.") from None

    # ------------------------------------------------------------- reports

    def block_status_map_text(self) -> str:
        """Text picture of the block states of the disk."""
        return self._sectors.render()

    def logical_to_physical_text(self) -> str:
        """Table of logical block ids and their physical addresses, sorted by id."""
        lines = ["--- Logical to Physical Map ---"]
        if not self._logical_to_physical:
            lines.append("No logical blocks are currently allocated.")
            return "\n".join(lines)
        lines.append(
            "PageId".ljust(12)
            + "Platter".ljust(10)
            + "Surface".ljust(10)
            + "Track".ljust(10)
            + "Sector".ljust(10)
        )
        lines.append("-" * 52)
        for logical_id, address in sorted(self._logical_to_physical.items()):
            lines.append(
                str(logical_id).ljust(12)
                + str(address.platter_id).ljust(10)
                + str(address.surface_id).ljust(10)
                + str(address.track_id).ljust(10)
                + str(address.sector_id).ljust(10)
            )
        lines.append("-" * 42)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"DiskManager(disk_name={self.disk_name!r}, platters={self.num_platters}, "
            f"surfaces={self.num_surfaces_per_platter}, cylinders={self.num_cylinders}, "
            f"sectors={self.num_sectors_per_track}, block_size={self.block_size}, "
            f"sector_size={self.sector_size})"
        )