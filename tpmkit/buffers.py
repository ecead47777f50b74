"""Random-access request and response buffers for command processing."""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Union

BytesLike = Union[bytes, bytearray, memoryview]


class ReadOutOfBounds(IndexError):
    """A read would go past the end of the request buffer."""


class WriteOutOfBounds(IndexError):
    """A write would go past the end of the response buffer."""


def _in_range(offset: int, size: int, length: int) -> bool:
    return offset >= 0 and size >= 0 and offset + size <= length


def read_bytes(source: Any, offset: int, size: int) -> bytes:
    """Read `size` bytes at `offset` from a bytes-like object or a request view."""
    if not isinstance(source, (bytes, bytearray, memoryview)):
        return source.read(offset, size)
    if not _in_range(offset, size, len(source)):
        raise ReadOutOfBounds(f"cannot read {size} bytes at {offset} from {len(source)} bytes")
    return bytes(source[offset:offset + size])


def read_be_u16(source: Any, offset: int) -> int:
    """Read a big-endian u16 at `offset`."""
    return int.from_bytes(read_bytes(source, offset, 2), "big")


def read_be_u32(source: Any, offset: int) -> int:
    """Read a big-endian u32 at `offset`."""
    return int.from_bytes(read_bytes(source, offset, 4), "big")


def write_bytes(target: Union[bytearray, memoryview], offset: int, data: BytesLike) -> None:
    """Copy `data` into `target` at `offset`."""
    if not _in_range(offset, len(data), len(target)):
        raise WriteOutOfBounds(
            f"cannot write {len(data)} bytes at {offset} into {len(target)} bytes"
        )
    target[offset:offset + len(data)] = data


def write_with(
    target: Union[bytearray, memoryview],
    offset: int,
    size: int,
    callback: Callable[[memoryview], Any],
) -> None:
    """Let `callback` fill `size` bytes of `target` at `offset` in place.

    The callback is not called when the window would not fit.
    """
    if not _in_range(offset, size, len(target)):
        raise WriteOutOfBounds(f"cannot write {size} bytes at {offset} into {len(target)} bytes")
    with memoryview(target) as view:
        window = view[offset:offset + size]
        try:
            callback(window)
        finally:
            window.release()


class InOutBuffer:
    """A request and a response that share one mutable buffer.

    Reads are limited to the request part at the front of the buffer.
    """

    def __init__(self, buffer: bytearray, request_size: int) -> None:
        self._buffer = buffer
        self._len = min(request_size, len(buffer))

    def __len__(self) -> int:
        return self._len

    def read(self, offset: int, size: int) -> bytes:
        """Read `size` bytes at `offset` within the request part."""
        if not _in_range(offset, size, self._len):
            raise ReadOutOfBounds(f"cannot read {size} bytes at {offset} from {self._len} bytes")
        return read_bytes(self._buffer, offset, size)

    @property
    def request(self) -> "InOutBuffer":
        return self

    @property
    def response(self) -> bytearray:
        return self._buffer


@dataclasses.dataclass(frozen=True)
class SeparateBuffers:
    """A request and a response held in two different buffers."""

    request: Any
    response: bytearray