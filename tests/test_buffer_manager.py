import pytest

from storagesim.buffer_manager import BufferManager, ReplacementPolicy
from storagesim.common import (
    BlockStatus,
    BufferFullError,
    InvalidBlockIdError,
    InvalidParameterError,
    NotFoundError,
    PagePinnedError,
    PageType,
)
from storagesim.disk_manager import DiskManager

BLOCK_SIZE = 512


@pytest.fixture
def disk(tmp_path):
    manager = DiskManager("disk", 1, 2, 2, 4, BLOCK_SIZE, BLOCK_SIZE, root=tmp_path)
    manager.create_disk_structure()
    return manager


def make_buffer(disk, pool_size):
    return BufferManager(disk, pool_size, BLOCK_SIZE, ReplacementPolicy())


def test_policy_evicts_least_recently_used_unpinned():
    policy = ReplacementPolicy()
    for frame_id in range(3):
        policy.add_frame(frame_id)
        policy.pin(frame_id)
    for frame_id in range(3):
        policy.unpin(frame_id)
    policy.access(0)
    assert policy.evict() == 1
    assert policy.evict() == 2
    assert policy.evict() == 0
    assert policy.evict() is None


def test_policy_never_evicts_pinned_or_removed_frames():
    policy = ReplacementPolicy()
    policy.add_frame(0)
    policy.add_frame(1)
    assert policy.evict() is None
    policy.unpin(0)
    policy.unpin(1)
    policy.pin(0)
    policy.remove_frame(1)
    assert policy.evict() is None


def test_block_size_mismatch_rejected(disk):
    with pytest.raises(InvalidParameterError):
        BufferManager(disk, 2, BLOCK_SIZE * 2, ReplacementPolicy())


def test_new_page_is_zeroed_pinned_and_dirty(disk):
    buffer = make_buffer(disk, 2)
    page_id, data = buffer.new_page(PageType.DATA_PAGE)
    assert data == bytearray(BLOCK_SIZE)
    assert buffer.page_data_in_pool(page_id) is data
    frame = next(f for f in buffer.frames if f.is_valid)
    assert frame.page_id == page_id
    assert frame.pin_count == 1
    assert frame.is_dirty


def test_frame_counts_stay_consistent(disk):
    buffer = make_buffer(disk, 3)
    assert buffer.free_frames_count == buffer.pool_size
    buffer.new_page(PageType.DATA_PAGE)
    buffer.new_page(PageType.CATALOG_PAGE)
    assert buffer.num_buffered_pages == 2
    assert buffer.free_frames_count + buffer.num_buffered_pages == buffer.pool_size
    assert buffer.block_size == BLOCK_SIZE


def test_evicted_dirty_page_survives_round_trip(disk):
    buffer = make_buffer(disk, 1)
    first_id, data = buffer.new_page(PageType.DATA_PAGE)
    data[:5] = b"hello"
    buffer.unpin_page(first_id, True)

    second_id, _ = buffer.new_page(PageType.DATA_PAGE)
    assert buffer.page_data_in_pool(first_id) is None
    buffer.unpin_page(second_id, False)

    fetched = buffer.fetch_page(first_id)
    assert bytes(fetched[:5]) == b"hello"
    assert buffer.page_data_in_pool(second_id) is None


def test_new_page_fails_when_all_frames_pinned(disk):
    buffer = make_buffer(disk, 1)
    buffer.new_page(PageType.DATA_PAGE)
    with pytest.raises(BufferFullError):
        buffer.new_page(PageType.DATA_PAGE)
    assert buffer.num_buffered_pages == 1


def test_refetched_page_is_pinned_again(disk):
    buffer = make_buffer(disk, 1)
    page_id, _ = buffer.new_page(PageType.DATA_PAGE)
    buffer.unpin_page(page_id, False)
    buffer.fetch_page(page_id)
    with pytest.raises(BufferFullError):
        buffer.new_page(PageType.DATA_PAGE)


def test_fetch_hit_increments_pin_count(disk):
    buffer = make_buffer(disk, 2)
    page_id, data = buffer.new_page(PageType.DATA_PAGE)
    assert buffer.fetch_page(page_id) is data
    frame = next(f for f in buffer.frames if f.page_id == page_id and f.is_valid)
    assert frame.pin_count == 2


def test_frames_are_snapshots(disk):
    buffer = make_buffer(disk, 1)
    page_id, _ = buffer.new_page(PageType.DATA_PAGE)
    snapshot = buffer.frames
    snapshot[0].pin_count = 0
    with pytest.raises(BufferFullError):
        buffer.new_page(PageType.DATA_PAGE)
    assert buffer.frames[0].pin_count == 1


def test_unpin_errors(disk):
    buffer = make_buffer(disk, 2)
    with pytest.raises(NotFoundError):
        buffer.unpin_page(99, False)
    page_id, _ = buffer.new_page(PageType.DATA_PAGE)
    buffer.unpin_page(page_id, False)
    with pytest.raises(InvalidParameterError):
        buffer.unpin_page(page_id, False)


def test_delete_page(disk):
    buffer = make_buffer(disk, 2)
    page_id, _ = buffer.new_page(PageType.DATA_PAGE)
    with pytest.raises(PagePinnedError):
        buffer.delete_page(page_id)
    buffer.unpin_page(page_id, True)
    buffer.delete_page(page_id)
    assert buffer.page_data_in_pool(page_id) is None
    assert buffer.num_buffered_pages == 0
    with pytest.raises(InvalidBlockIdError):
        disk.address_of(page_id)


def test_fetch_unknown_page_leaves_frame_free(disk):
    buffer = make_buffer(disk, 2)
    with pytest.raises(InvalidBlockIdError):
        buffer.fetch_page(1234)
    assert buffer.free_frames_count == 2
    assert buffer.num_buffered_pages == 0


def test_flush_all_pages_writes_dirty_pages(disk):
    buffer = make_buffer(disk, 2)
    page_id, data = buffer.new_page(PageType.DATA_PAGE)
    data[:3] = b"abc"
    buffer.unpin_page(page_id, True)
    assert buffer.flush_all_pages() == 1
    assert bytes(disk.read_block(page_id).data[:3]) == b"abc"
    assert all(not frame.is_dirty for frame in buffer.frames)
    assert buffer.flush_all_pages() == 0


def test_context_manager_flushes_on_exit(disk):
    with make_buffer(disk, 2) as buffer:
        page_id, data = buffer.new_page(PageType.DATA_PAGE)
        data[-4:] = b"tail"
        buffer.unpin_page(page_id, True)
    assert bytes(disk.read_block(page_id).data[-4:]) == b"tail"


def test_update_block_status_on_disk(disk):
    buffer = make_buffer(disk, 2)
    page_id, _ = buffer.new_page(PageType.DATA_PAGE)
    buffer.update_block_status_on_disk(page_id, BlockStatus.FULL)
    assert "F" in disk.block_status_map_text().split("Cylinder 0:")[1]
    assert disk.occupied_logical_blocks == 1