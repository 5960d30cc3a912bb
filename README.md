# storagesim

`storagesim` simulates the two lowest layers of a database storage engine.

- **Disk manager.** It models a hard disk made of platters, surfaces,
  cylinders and sectors. It maps logical block ids to physical addresses and
  records a status for each block: empty, incomplete or full. Block contents
  and the disk's own metadata are kept as files on the local file system.
- **Buffer manager.** It keeps a fixed-size pool of in-memory frames over
  that disk. It handles pinning and unpinning, tracks dirty pages, flushes
  them, and evicts pages through a replacement policy.

It uses only the standard library.

## Installation

```
pip install storagesim
```

## Modules

| Module | Contents |
| --- | --- |
| `storagesim.common` | `PageType`, `BlockStatus`, `PhysicalAddress` and the exceptions derived from `StorageError` |
| `storagesim.block` | `Block`, a fixed-size, zero-padded byte container that is the unit of disk I/O |
| `storagesim.page` | `Page`, the bookkeeping record for one buffer-pool frame |
| `storagesim.sector_map` | `SectorStatusMap`, the per-sector status grid, with search, statistics, a text rendering and a binary form |
| `storagesim.disk_manager` | `DiskManager` |
| `storagesim.buffer_manager` | `ReplacementPolicy` (least recently used) and `BufferManager` |

## Errors

A failed operation raises an exception; it does not return a status code.
Every such exception derives from `StorageError`:

- `NotFoundError`: a page is not in the pool, or a metadata file is missing.
- `InvalidBlockIdError`: a block id has no physical mapping.
- `InvalidParameterError`: the geometry, a size, an address or the metadata content is invalid.
- `DiskFullError`: the disk has no free block left.
- `BufferFullError`: no frame in the pool can be evicted.
- `PagePinnedError`: a pinned page cannot be deleted.

`NotFoundError` and `InvalidBlockIdError` are also `LookupError`s.
`InvalidParameterError` is also a `ValueError`.

## Creating a disk

```python
from storagesim.block import Block
from storagesim.common import BlockStatus, PageType
from storagesim.disk_manager import DiskManager

with DiskManager(
    "demo",
    num_platters=2,
    num_surfaces_per_platter=2,
    num_cylinders=4,
    num_sectors_per_track=8,
    block_size=1024,
    sector_size=512,
    root="Discos",
) as disk:
    disk.create_disk_structure()
    block_id = disk.allocate_block(PageType.DATA_PAGE)
    disk.write_block(block_id, Block(1024, b"hello"))
    print(bytes(disk.read_block(block_id).data[:5]))
    print(disk.address_of(block_id))
    disk.update_block_status(block_id, BlockStatus.FULL)
    print(f"{disk.disk_usage_percentage:.1f}% used")
    print(disk.block_status_map_text())
    print(disk.logical_to_physical_text())
```

The disk lives in `<root>/<disk_name>`, where `root` defaults to `"Discos"`.
`create_disk_structure()` first removes anything already in that directory.
It then creates the `Plato*/Superficie*/Cilindro*` subdirectories, one zeroed
`Block_<id>.dat` file for each logical block, and `disk_metadata.dat`. The
metadata file holds the geometry, the sector status grid, the next block id
and the logical-to-physical map.

`allocate_block` marks the new block `INCOMPLETE`. On the next call, a block
start still marked `INCOMPLETE` is handed out again before any empty one is
taken. Mark a finished block `FULL` with `update_block_status` so that the
next allocation goes to empty space. `deallocate_block` marks the block's
sectors empty, drops its mapping and zeroes its file.

The statistics are read-only properties: `sectors_per_block`,
`total_physical_sectors`, `free_physical_sectors`, `total_logical_blocks`,
`total_capacity_bytes`, `occupied_logical_blocks` and `disk_usage_percentage`.

Allocation and deallocation save the metadata. Calling `close()`, or leaving
the `with` block, saves it as well. To reopen an existing disk, build a
`DiskManager` with the same name and root and call `load_disk_metadata()`.
That call restores the geometry stored in the file.

## Using the buffer pool

```python
from storagesim.buffer_manager import BufferManager

with BufferManager(disk, pool_size=4, block_size=1024) as pool:
    page_id, data = pool.new_page(PageType.DATA_PAGE)
    data[:5] = b"hello"
    pool.unpin_page(page_id, True)

    again = pool.fetch_page(page_id)
    pool.unpin_page(page_id, False)

    print(pool.flush_all_pages())  # number of dirty pages written
    print(pool.free_frames_count, pool.num_buffered_pages)
```

The `block_size` passed to `BufferManager` must equal the disk's block size.

- `new_page` allocates a block, pins it zeroed in a frame and writes it to
  disk once. It returns `(page_id, bytearray)`.
- `fetch_page` pins a page and returns the frame's mutable `bytearray`. If
  the page is not in the pool, it is read from disk first.
- `unpin_page(page_id, is_dirty)` releases one pin. Pages are evicted only
  after their pin count drops to zero, and dirty pages are written back
  before eviction.
- `delete_page` fails with `PagePinnedError` while the page is pinned.
- `page_data_in_pool` returns a page's bytes without pinning it.
- `frames` is a snapshot of every frame's `Page` record.
- Closing the buffer manager flushes every dirty page.

By default the pool uses `ReplacementPolicy`, which evicts the least recently
used unpinned frame. To use another policy, pass an object with the same
methods: `add_frame`, `access`, `pin`, `unpin`, `remove_frame` and `evict`.
Its `evict()` returns a frame id, or `None` when nothing can be evicted.

## What this package does not do

`storagesim` stops at pages of bytes. It has no record or slot layout inside
pages, no catalog of tables or columns, no query layer and no command-line
tool. Those would be built on top of `BufferManager`.