import pytest

from tpmkit.drbg import (
    Drbg,
    DrbgError,
    EntropySource,
    ServerError,
    fill_bytes_via_next,
    next_u32_via_fill,
    next_u64_via_fill,
    next_u64_via_u32,
)


class FakeDrbg(Drbg):
    ENTROPY_SIZE = 1
    NONCE_SIZE = 0

    def __init__(self, counter: int = 0) -> None:
        self.counter = counter

    @classmethod
    def instantiate(cls, entropy_input, nonce, personalization_string):
        return cls(entropy_input[0])

    def reseed(self, entropy_input, additional_input):
        self.counter = (self.counter + entropy_input[0]) & 0xFF

    def fill_bytes(self, additional_input, dest):
        values = bytes((self.counter + step) & 0xFF for step in range(1, len(dest) + 1))
        dest[:] = values
        if values:
            self.counter = values[-1]

    def next_u32(self, additional_input):
        return next_u32_via_fill(self, additional_input)

    def next_u64(self, additional_input):
        return next_u64_via_fill(self, additional_input)

    def requires_reseeding(self):
        return False


class ScriptedDrbg(Drbg):
    """Returns queued values and records the additional input of each call."""

    ENTROPY_SIZE = 0
    NONCE_SIZE = 0

    def __init__(self, u64_values=(), u32_values=()):
        self.u64_values = list(u64_values)
        self.u32_values = list(u32_values)
        self.calls = []

    @classmethod
    def instantiate(cls, entropy_input, nonce, personalization_string):
        return cls()

    def reseed(self, entropy_input, additional_input):
        pass

    def next_u32(self, additional_input):
        self.calls.append(("u32", bytes(additional_input)))
        return self.u32_values.pop(0)

    def next_u64(self, additional_input):
        self.calls.append(("u64", bytes(additional_input)))
        return self.u64_values.pop(0)

    def fill_bytes(self, additional_input, dest):
        fill_bytes_via_next(self, additional_input, dest)

    def requires_reseeding(self):
        return False


class CountingEntropy(EntropySource):
    @classmethod
    def instantiate(cls):
        return cls()

    def fill_entropy(self, dest):
        dest[:] = bytes(index & 0xFF for index in range(len(dest)))


def test_get_random_bytes():
    crypto = FakeDrbg()
    buffer = bytearray(10)

    crypto.fill_bytes(b"", buffer)
    assert list(buffer) == [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]

    crypto.fill_bytes(b"", buffer)
    assert list(buffer) == [11, 12, 13, 14, 15, 16, 17, 18, 19, 20]

    assert next_u32_via_fill(crypto, b"") == 0x18171615


def test_instantiate_and_reseed():
    drbg = FakeDrbg.instantiate(b"\x05", b"", b"")
    drbg.reseed(b"\x03", b"")
    buffer = bytearray(2)
    drbg.fill_bytes(b"", buffer)
    assert bytes(buffer) == bytes([9, 10])
    assert next_u32_via_fill(drbg, b"") == 0x0E0D0C0B


def test_next_u32_via_fill_is_little_endian():
    assert next_u32_via_fill(FakeDrbg(), b"") == 0x04030201


def test_next_u64_via_fill_is_little_endian():
    assert next_u64_via_fill(FakeDrbg(), b"") == 0x0807060504030201


def test_next_u64_via_u32_low_half_first():
    rng = ScriptedDrbg(u32_values=[0x11111111, 0x22222222])
    assert next_u64_via_u32(rng, b"extra") == 0x2222222211111111
    assert rng.calls == [("u32", b"extra"), ("u32", b"")]


def test_fill_bytes_via_next_long_tail_uses_u64():
    rng = ScriptedDrbg(u64_values=[0x0807060504030201, 0x1817161514131211])
    dest = bytearray(13)
    fill_bytes_via_next(rng, b"in", dest)
    assert bytes(dest) == bytes([1, 2, 3, 4, 5, 6, 7, 8, 0x11, 0x12, 0x13, 0x14, 0x15])
    assert rng.calls == [("u64", b"in"), ("u64", b"")]


def test_fill_bytes_via_next_short_tail_uses_u32():
    rng = ScriptedDrbg(u64_values=[0x0807060504030201], u32_values=[0x44332211])
    dest = bytearray(10)
    fill_bytes_via_next(rng, b"in", dest)
    assert bytes(dest) == bytes([1, 2, 3, 4, 5, 6, 7, 8, 0x11, 0x22])
    assert rng.calls == [("u64", b"in"), ("u32", b"")]


def test_fill_bytes_via_next_tail_only_gets_additional_input():
    rng = ScriptedDrbg(u32_values=[0x00CCBBAA])
    dest = bytearray(3)
    fill_bytes_via_next(rng, b"first", dest)
    assert bytes(dest) == bytes([0xAA, 0xBB, 0xCC])
    assert rng.calls == [("u32", b"first")]


def test_fill_bytes_via_next_empty_makes_no_calls():
    rng = ScriptedDrbg()
    fill_bytes_via_next(rng, b"", bytearray())
    assert rng.calls == []


def test_fill_bytes_via_next_into_memoryview_window():
    rng = ScriptedDrbg(u32_values=[0x04030201])
    target = bytearray(b"\xff" * 6)
    window = memoryview(target)[1:5]
    fill_bytes_via_next(rng, b"", window)
    assert bytes(window) == bytes([1, 2, 3, 4])
    window.release()
    assert bytes(target) == bytes([0xFF, 1, 2, 3, 4, 0xFF])
    assert rng.calls == [("u32", b"")]


def test_entropy_source_fills_counting_bytes():
    source = CountingEntropy.instantiate()
    dest = bytearray(4)
    source.fill_entropy(dest)
    assert bytes(dest) == bytes([0, 1, 2, 3])

    seed = bytearray(FakeDrbg.ENTROPY_SIZE)
    source.fill_entropy(seed)
    drbg = FakeDrbg.instantiate(bytes(seed), b"", b"")
    assert next_u32_via_fill(drbg, b"") == 0x04030201


def test_drbg_error_is_server_error():
    error = DrbgError()
    assert str(error) == "Drbg operation failed"
    with pytest.raises(ServerError) as info:
        raise error
    assert info.value is error


def test_drbg_is_abstract():
    with pytest.raises(TypeError):
        Drbg()