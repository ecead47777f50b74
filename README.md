# tpmkit

Building blocks for TPM 2.0 in Python: response codes, big-endian wire
marshalling, and a small command processor that answers `TPM2_GetRandom`.

## Modules

- `tpmkit.errors`: response codes as exceptions. `TssError` is the common
  base, holding a non-zero 32-bit `code`; zero raises `TssErrorCannotBeZero`.
  `TpmRcError` carries the TPM service codes (`TpmRcError.MEMORY`,
  `TpmRcError.SIZE`, `TpmRcError.COMMAND_SIZE`, ...), each access giving a
  fresh instance ready to `raise`. Format-1 codes are built with
  `asymmetric_for`, `value_for`, `size_for` and `selector_for` from an
  `ErrorType` and an `ErrorPosition`, and decoded with `format1_parameter()`;
  `is_warning()` tells warnings from failures. `TssTddlError`, `TssTcsError`
  and `TssTspError` are the client layer codes (`GENERAL_FAILURE`,
  `OUT_OF_MEMORY`, ...), tagged with their layer number.
- `tpmkit.marshal`: `UnmarshalBuf`, a cursor consumed from the front, and the
  codecs `IntCodec` (with ready-made `U8`, `U16`, `U32`, `U64`, `I8`, `I16`,
  `I32`, `I64`), `ByteArrayCodec` and `UnitCodec` (`UNIT`). Reading past the
  end raises `TpmRcError.MEMORY`. `write_into` and `marshal_into` place
  encoded bytes into a `bytearray`.
- `tpmkit.structs`: the `marshalable` class decorator and `marshal_field`,
  which make a dataclass marshal its fields in order. `ArrayCodec` handles
  fixed arrays; with `length="<field>"` only as many entries as an earlier
  integer field says go on the wire.
- `tpmkit.variants`: `Tpm2bSimple` (a u16 size followed by up to
  `MAX_BUFFER_SIZE` bytes), `Tpm2bStruct` (such a buffer holding one
  marshalled `STRUCT_TYPE`, with `from_struct` and `to_struct`), and
  `VariantUnion`, whose `VARIANTS` map each variant name to its selector and
  field codecs. An unknown selector raises `TpmRcError.SELECTOR`.
- `tpmkit.buffers`: `read_bytes`, `read_be_u16`, `read_be_u32`,
  `write_bytes` and `write_with` over bytes-like buffers, raising
  `ReadOutOfBounds` or `WriteOutOfBounds`; `InOutBuffer` for a request and
  response sharing one buffer, and `SeparateBuffers` for two.
- `tpmkit.req_resp`: `RequestResponseCursor`, whose `request()` view reads the
  request in order and then turns, once, into a `Response` writer.
- `tpmkit.drbg`: the abstract `Drbg` and `EntropySource` classes,
  `ServerError` and `DrbgError`, and the helpers `fill_bytes_via_next`,
  `next_u32_via_fill`, `next_u64_via_fill` and `next_u64_via_u32`.
- `tpmkit.context`: `TpmContext`, built from a `Drbg` subclass and an
  `EntropySource` subclass, with `execute_command_separate(request, response)`
  and `execute_command_in_place(in_out, request_size)`.

## Example: structures

```python
from tpmkit.marshal import U8, U32, UnmarshalBuf
from tpmkit.structs import ArrayCodec, marshal_field, marshalable


@marshalable
class HasArray:
    count: int = marshal_field(U8)
    other: int = marshal_field(U32)
    array: list = marshal_field(ArrayCodec(U8, 128), length="count")


value = HasArray(count=2, other=7, array=[9] * 128)
wire = value.marshal()           # b"\x02\x00\x00\x00\x07\x09\x09"
back = HasArray.unmarshal(UnmarshalBuf(wire))
```

## Example: serving GetRandom

```python
from tpmkit.context import TpmContext
from tpmkit.drbg import Drbg, EntropySource, next_u32_via_fill, next_u64_via_fill


class CounterDrbg(Drbg):
    ENTROPY_SIZE = 1
    NONCE_SIZE = 0

    def __init__(self, counter):
        self.counter = counter

    @classmethod
    def instantiate(cls, entropy_input, nonce, personalization_string):
        return cls(entropy_input[0])

    def reseed(self, entropy_input, additional_input):
        self.counter = (self.counter + entropy_input[0]) & 0xFF

    def fill_bytes(self, additional_input, dest):
        for i in range(len(dest)):
            self.counter = (self.counter + 1) & 0xFF
            dest[i] = self.counter

    def next_u32(self, additional_input):
        return next_u32_via_fill(self, additional_input)

    def next_u64(self, additional_input):
        return next_u64_via_fill(self, additional_input)

    def requires_reseeding(self):
        return False


class CountingEntropy(EntropySource):
    @classmethod
    def instantiate(cls):
        return cls()

    def fill_entropy(self, dest):
        dest[:] = bytes(i & 0xFF for i in range(len(dest)))


ctx = TpmContext(CounterDrbg, CountingEntropy)
request = bytes.fromhex("80010000000c0000017b000c")
response = bytearray(256)
size = ctx.execute_command_separate(request, response)
print(response[:size].hex())
# 80010000001600000000 0102030405060708090a0b0c (without the space)
```

The response starts with tag `0x8001`, the response size and a zero status,
followed by the requested bytes. When a command fails (a wrong size field,
an unknown command code, a response that does not fit), the TPM response code
is written at offset 6 and the returned size is 10; if even that does not fit,
the returned size is 0. The first six bytes are not filled in on failure.

## What the package does not do

- It does not talk to a TPM: there is no client, transport or simulator
  connection, and no authorization sessions.
- `TpmContext` serves only `TPM2_GetRandom` (command code `0x17B`); every
  other command code answers with `TpmRcError.COMMAND_CODE`. Session data in
  requests is not parsed.
- No real generator or entropy source is included: you provide `Drbg` and
  `EntropySource` subclasses.

## Installing

```
pip install .
```

## Running the tests

```
pip install ".[test]"
pytest
```