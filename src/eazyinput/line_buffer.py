"""Fixed-capacity byte buffer for the line being edited."""

from __future__ import annotations

DEFAULT_CAPACITY = 4096


class LineBuffer:
    """A preallocated ``bytearray`` plus the count of bytes in use.

    Insertion saturates at capacity instead of growing.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._data = bytearray(capacity)
        self._length = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def length(self) -> int:
        return self._length

    @property
    def is_full(self) -> bool:
        return self._length == len(self._data)

    def __len__(self) -> int:
        return self._length

    def insert(self, index: int, byte: int) -> bool:
        """Insert *byte* at *index*, shifting the tail right by one.

        Returns ``False`` and leaves the buffer untouched when it is full.
        """
        if not 0 <= index <= self._length:
            raise IndexError(f"insert index {index} outside [0, {self._length}]")
        if self.is_full:
            return False

        self._data[index + 1 : self._length + 1] = self._data[index : self._length]
        self._data[index] = byte
        self._length += 1
        return True

    def contents(self) -> bytes:
        """Return a copy of the bytes in use."""
        return bytes(self._data[: self._length])
