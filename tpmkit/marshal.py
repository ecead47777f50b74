"""Big-endian marshaling of TPM primitive types."""

from __future__ import annotations

import abc
from typing import Any, Generic, Optional, TypeVar

from .errors import TpmRcError

T = TypeVar("T")


class UnmarshalBuf:
    """A read cursor over a byte string that is consumed from the front."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def get(self, size: int) -> Optional[bytes]:
        """Take the next `size` bytes, or return None if fewer remain."""
        if size > len(self):
            return None
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def __len__(self) -> int:
        return len(self._data) - self._pos

    def is_empty(self) -> bool:
        return len(self) == 0


class Codec(abc.ABC, Generic[T]):
    """Converts values of one wire type to and from bytes."""

    @abc.abstractmethod
    def marshal(self, value: T) -> bytes:
        """Return the wire encoding of `value`."""

    @abc.abstractmethod
    def unmarshal(self, buf: UnmarshalBuf) -> T:
        """Read a value from the front of `buf`."""


class IntCodec(Codec[int]):
    """A fixed-width big-endian integer."""

    def __init__(self, size: int, signed: bool = False) -> None:
        self.size = size
        self.signed = signed

    def marshal(self, value: int) -> bytes:
        try:
            return value.to_bytes(self.size, "big", signed=self.signed)
        except OverflowError as exc:
            raise ValueError(
                f"{value} does not fit in {self.size} {'signed' if self.signed else 'unsigned'} bytes"
            ) from exc

    def unmarshal(self, buf: UnmarshalBuf) -> int:
        raw = buf.get(self.size)
        if raw is None:
            raise TpmRcError.MEMORY
        return int.from_bytes(raw, "big", signed=self.signed)

    def __repr__(self) -> str:
        return f"IntCodec(size={self.size}, signed={self.signed})"


class ByteArrayCodec(Codec[bytes]):
    """A fixed-length run of raw bytes."""

    def __init__(self, length: int) -> None:
        self.length = length

    def marshal(self, value: bytes) -> bytes:
        data = bytes(value)
        if len(data) != self.length:
            raise ValueError(f"expected {self.length} bytes, got {len(data)}")
        return data

    def unmarshal(self, buf: UnmarshalBuf) -> bytes:
        raw = buf.get(self.length)
        if raw is None:
            raise TpmRcError.MEMORY
        return raw


class UnitCodec(Codec[None]):
    """The empty type: nothing on the wire."""

    def marshal(self, value: Any = None) -> bytes:
        return b""

    def unmarshal(self, buf: UnmarshalBuf) -> None:
        return None


U8 = IntCodec(1)
U16 = IntCodec(2)
U32 = IntCodec(4)
U64 = IntCodec(8)
I8 = IntCodec(1, signed=True)
I16 = IntCodec(2, signed=True)
I32 = IntCodec(4, signed=True)
I64 = IntCodec(8, signed=True)
UNIT = UnitCodec()


def write_into(buffer: bytearray, offset: int, data: bytes) -> int:
    """Copy `data` into `buffer` at `offset`; return the number of bytes written."""
    end = offset + len(data)
    if end > len(buffer):
        raise TpmRcError.MEMORY
    buffer[offset:end] = data
    return len(data)


def marshal_into(codec: Codec[T], value: T, buffer: bytearray, offset: int = 0) -> int:
    """Marshal `value` into `buffer` at `offset`; return the number of bytes written."""
    return write_into(buffer, offset, codec.marshal(value))