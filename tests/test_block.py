import pytest

from storagesim.block import Block


def test_default_block_is_empty():
    block = Block()
    assert block.size == 0
    assert len(block) == 0
    assert block.data == bytearray()


def test_sized_block_is_zero_filled():
    block = Block(16)
    assert block.size == 16
    assert block.data == bytearray(16)


def test_data_is_copied_and_padded():
    block = Block(8, b"abc")
    assert block.data == bytearray(b"abc" + bytes(5))
    assert len(block) == 8


def test_data_equal_to_size_fills_block():
    block = Block(4, b"wxyz")
    assert bytes(block.data) == b"wxyz"


def test_data_larger_than_size_raises():
    with pytest.raises(ValueError):
        Block(2, b"abc")


def test_negative_size_raises():
    with pytest.raises(ValueError):
        Block(-1)


def test_source_buffer_is_not_aliased():
    source = bytearray(b"hello")
    block = Block(5, source)
    source[0] = ord("j")
    assert bytes(block.data) == b"hello"


def test_data_is_mutable_in_place():
    block = Block(4)
    block.data[1] = 7
    assert block.data[1] == 7
    assert block.size == 4


def test_resize_grows_with_zeros_and_keeps_prefix():
    block = Block(3, b"xyz")
    block.resize(6)
    assert bytes(block.data) == b"xyz" + bytes(3)
    assert block.size == 6


def test_resize_shrinks_and_truncates():
    block = Block(5, b"abcde")
    block.resize(2)
    assert bytes(block.data) == b"ab"
    assert len(block) == 2


def test_resize_negative_raises():
    block = Block(4)
    with pytest.raises(ValueError):
        block.resize(-3)