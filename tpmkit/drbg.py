"""Deterministic random bit generators, entropy sources and their helpers."""

from __future__ import annotations

import abc
from typing import ClassVar, TypeVar, Union

Writable = Union[bytearray, memoryview]

D = TypeVar("D", bound="Drbg")
E = TypeVar("E", bound="EntropySource")


class ServerError(Exception):
    """An error raised while setting up or running the TPM service."""


class DrbgError(ServerError):
    """A DRBG operation failed."""

    def __init__(self, message: str = "Drbg operation failed") -> None:
        super().__init__(message)


class Drbg(abc.ABC):
    """A deterministic random bit generator.

    Subclasses set ENTROPY_SIZE and NONCE_SIZE, the byte lengths of the
    entropy input and nonce they are instantiated and reseeded with.
    Output should be reproducible for a given seed. An implementation may
    write one of next_u32, next_u64 and fill_bytes directly and build the
    others from the helper functions in this module.
    """

    ENTROPY_SIZE: ClassVar[int]
    NONCE_SIZE: ClassVar[int]

    @classmethod
    @abc.abstractmethod
    def instantiate(
        cls: type[D], entropy_input: bytes, nonce: bytes, personalization_string: bytes
    ) -> D:
        """Create a generator from a seed; raises DrbgError on failure."""

    @abc.abstractmethod
    def reseed(self, entropy_input: bytes, additional_input: bytes) -> None:
        """Mix fresh entropy into the generator; raises DrbgError on failure."""

    @abc.abstractmethod
    def next_u32(self, additional_input: bytes) -> int:
        """Return the next random 32-bit unsigned integer."""

    @abc.abstractmethod
    def next_u64(self, additional_input: bytes) -> int:
        """Return the next random 64-bit unsigned integer."""

    @abc.abstractmethod
    def fill_bytes(self, additional_input: bytes, dest: Writable) -> None:
        """Fill the whole of `dest` with new random bytes."""

    @abc.abstractmethod
    def requires_reseeding(self) -> bool:
        """True if the generator must be reseeded before further use."""


class EntropySource(abc.ABC):
    """A source of true random bytes."""

    @classmethod
    @abc.abstractmethod
    def instantiate(cls: type[E]) -> E:
        """Create a new entropy source."""

    @abc.abstractmethod
    def fill_entropy(self, dest: Writable) -> None:
        """Fill the whole of `dest` with true random bytes."""


def fill_bytes_via_next(rng: Drbg, additional_input: bytes, dest: Writable) -> None:
    """Fill `dest` from next_u64, and next_u32 for a tail of four bytes or less.

    Values are laid out little-endian; `additional_input` goes to the first
    call only.
    """
    with memoryview(dest) as view:
        total = len(view)
        pos = 0
        while total - pos >= 8:
            view[pos:pos + 8] = rng.next_u64(additional_input).to_bytes(8, "little")
            additional_input = b""
            pos += 8
        remaining = total - pos
        if remaining > 4:
            chunk = rng.next_u64(additional_input).to_bytes(8, "little")
            view[pos:] = chunk[:remaining]
        elif remaining > 0:
            chunk = rng.next_u32(additional_input).to_bytes(4, "little")
            view[pos:] = chunk[:remaining]


def next_u32_via_fill(rng: Drbg, additional_input: bytes) -> int:
    """Build a u32 from four bytes of fill_bytes, little-endian."""
    buf = bytearray(4)
    rng.fill_bytes(additional_input, buf)
    return int.from_bytes(buf, "little")


def next_u64_via_fill(rng: Drbg, additional_input: bytes) -> int:
    """Build a u64 from eight bytes of fill_bytes, little-endian."""
    buf = bytearray(8)
    rng.fill_bytes(additional_input, buf)
    return int.from_bytes(buf, "little")


def next_u64_via_u32(rng: Drbg, additional_input: bytes) -> int:
    """Build a u64 from two next_u32 calls; the first gives the low half."""
    low = rng.next_u32(additional_input)
    high = rng.next_u32(b"")
    return (high << 32) | low