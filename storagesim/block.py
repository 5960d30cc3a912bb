"""Fixed-size block of bytes, the unit of disk I/O."""

from __future__ import annotations


class Block:
    """A block of ``size`` bytes, optionally initialised from ``data`` and zero-padded."""

    def __init__(self, size: int = 0, data: bytes | bytearray | memoryview | None = None) -> None:
        if size < 0:
            raise ValueError("Block size cannot be negative")
        payload = bytes(data) if data is not None else b""
        if len(payload) > size:
            raise ValueError("Block data size exceeds allocated block size")
        self._data = bytearray(size)
        self._data[: len(payload)] = payload

    @property
    def data(self) -> bytearray:
        """The block's contents; mutable in place."""
        return self._data

    @property
    def size(self) -> int:
        """Size of the block in bytes."""
        return len(self._data)

    def resize(self, new_size: int) -> None:
        """Change the block size, truncating or zero-padding the contents."""
        if new_size < 0:
            raise ValueError("Block size cannot be negative")
        current = len(self._data)
        if new_size < current:
            del self._data[new_size:]
        else:
            self._data.extend(bytes(new_size - current))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Block(size={self.size})"