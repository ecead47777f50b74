"""Cursors that read a command request and then write its response."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .buffers import ReadOutOfBounds, read_be_u16, read_be_u32, write_bytes, write_with


class RequestResponseCursor:
    """Tracks the read position in the request and the write position in the response.

    `buffers` has a `request` (bytes-like or readable view) and a mutable
    `response` buffer.
    """

    def __init__(self, buffers: Any, response_offset: int) -> None:
        self.buffers = buffers
        self.request_offset = 0
        self.response_offset = response_offset

    def request(self) -> "RequestThenResponse":
        """A view that reads the request and can then become the response."""
        return RequestThenResponse(self)

    @property
    def last_response_byte_written(self) -> int:
        return self.response_offset

    @property
    def response(self) -> Any:
        """The whole response buffer, including parts not yet written."""
        return self.buffers.response


class RequestThenResponse:
    """Reads the request in order, then turns once into a Response."""

    def __init__(self, cursor: RequestResponseCursor) -> None:
        self._cursor: Optional[RequestResponseCursor] = cursor

    def _live(self) -> RequestResponseCursor:
        if self._cursor is None:
            raise RuntimeError("the request view has already become the response")
        return self._cursor

    def _read(self, reader: Callable[[Any, int], int], size: int) -> Optional[int]:
        cursor = self._live()
        try:
            value = reader(cursor.buffers.request, cursor.request_offset)
        except ReadOutOfBounds:
            return None
        cursor.request_offset += size
        return value

    def read_be_u16(self) -> Optional[int]:
        """Read the next big-endian u16, or None if the request is too short."""
        return self._read(read_be_u16, 2)

    def read_be_u32(self) -> Optional[int]:
        """Read the next big-endian u32, or None if the request is too short."""
        return self._read(read_be_u32, 4)

    def into_response(self) -> "Response":
        """Give up the request view and return the response writer."""
        cursor = self._live()
        self._cursor = None
        return Response(cursor)


class Response:
    """Writes to the response buffer after the last written position."""

    def __init__(self, cursor: RequestResponseCursor) -> None:
        self._cursor = cursor

    def write(self, data: bytes) -> None:
        """Append `data`; raises WriteOutOfBounds if it does not fit."""
        cursor = self._cursor
        write_bytes(cursor.response, cursor.response_offset, data)
        cursor.response_offset += len(data)

    def write_callback(self, size: int, callback: Callable[[memoryview], Any]) -> None:
        """Let `callback` fill the next `size` bytes in place.

        Raises WriteOutOfBounds, without calling `callback`, if they do not fit.
        """
        cursor = self._cursor
        write_with(cursor.response, cursor.response_offset, size, callback)
        cursor.response_offset += size