from __future__ import annotations

import pytest

from tpmkit.errors import TpmRcError
from tpmkit.marshal import U8, U16, U32, U64, UNIT, ByteArrayCodec, UnmarshalBuf, marshal_into
from tpmkit.structs import ArrayCodec, StructCodec, marshal_field, marshalable


@marshalable
class BasicFields:
    x: int = marshal_field(U32)
    y: int = marshal_field(U16)
    z: int = marshal_field(U8)


@marshalable
class NestedFields:
    one: BasicFields = marshal_field(BasicFields)
    two: int = marshal_field(U32)
    three: BasicFields = marshal_field(BasicFields)


@marshalable
class HasArray:
    count: int = marshal_field(U8)
    other: int = marshal_field(U32)
    array: list = marshal_field(ArrayCodec(U8, 128), length="count")


@marshalable
class Nameless:
    first: int = marshal_field(U32)
    second: int = marshal_field(U16)


@marshalable
class HasPlainArrayField:
    a: int = marshal_field(U32)
    b: list = marshal_field(ArrayCodec(U8, 10))


@marshalable
class HasUnitField:
    a: int = marshal_field(U8)
    b: None = marshal_field(UNIT)
    c: int = marshal_field(U32)


def _nested() -> NestedFields:
    return NestedFields(
        one=BasicFields(x=10, y=32, z=4),
        two=88,
        three=BasicFields(x=11, y=33, z=5),
    )


def test_derive_basic():
    begin = BasicFields(x=10, y=32, z=4)
    buffer = bytearray(8)
    assert marshal_into(BasicFields.CODEC, begin, buffer) == 7
    middle = BasicFields.unmarshal(UnmarshalBuf(buffer))
    assert middle == begin
    end = bytes([0xF] * 8)
    assert marshal_into(ByteArrayCodec(8), end, buffer) == 8
    assert bytes(buffer) == end


def test_basic_wire_bytes():
    data = StructCodec(BasicFields).marshal(BasicFields(x=10, y=32, z=4))
    assert data == bytes.fromhex("0000000a002004")


def test_derive_nested():
    begin = _nested()
    buffer = bytearray(20)
    assert marshal_into(NestedFields.CODEC, begin, buffer) == 18
    middle = NestedFields.unmarshal(UnmarshalBuf(buffer))
    assert middle == begin
    end = bytes([0xF] * 20)
    marshal_into(ByteArrayCodec(20), end, buffer)
    assert bytes(buffer) == end


def test_derive_bounds():
    info = _nested()
    buffer = bytearray(20)
    written = marshal_into(NestedFields.CODEC, info, buffer)

    tiny_buffer = bytearray(3)
    with pytest.raises(TpmRcError) as raised:
        marshal_into(NestedFields.CODEC, info, tiny_buffer)
    assert raised.value == TpmRcError.MEMORY

    huge_buffer = bytearray(64)
    assert marshal_into(NestedFields.CODEC, info, huge_buffer) == written
    assert huge_buffer[: len(buffer)] == buffer

    assert NestedFields.unmarshal(UnmarshalBuf(huge_buffer)) == info


def test_unmarshal_truncated_input_fails():
    data = _nested().marshal()
    with pytest.raises(TpmRcError) as raised:
        NestedFields.unmarshal(UnmarshalBuf(data[:-1]))
    assert raised.value == TpmRcError.MEMORY


def test_derive_custom_len():
    value = HasArray(count=10, other=0, array=[9] * 128)
    buffer = bytearray(256)
    written = marshal_into(HasArray.CODEC, value, buffer)
    assert written == value.count + 4 + 1

    unmarshaled = HasArray.unmarshal(UnmarshalBuf(buffer))
    assert unmarshaled.count == value.count
    assert unmarshaled.other == value.other
    assert unmarshaled.array[: value.count] == value.array[: value.count]
    # The bytes past the count were not on the wire, so the whole structs differ.
    assert unmarshaled != value


def test_custom_len_too_large_on_unmarshal():
    data = bytes([200]) + bytes(4) + bytes(200)
    with pytest.raises(TpmRcError) as raised:
        HasArray.unmarshal(UnmarshalBuf(data))
    assert raised.value == TpmRcError.SIZE


def test_custom_len_too_large_on_marshal():
    value = HasArray(count=200, other=0, array=[0] * 128)
    with pytest.raises(TpmRcError) as raised:
        marshal_into(HasArray.CODEC, value, bytearray(256))
    assert raised.value == TpmRcError.SIZE


def test_derive_nameless_fields():
    value = Nameless(7777777, 61)
    buffer = bytearray(6)
    assert marshal_into(Nameless.CODEC, value, buffer) == 6
    assert Nameless.unmarshal(UnmarshalBuf(buffer)) == value


def test_derive_array_field():
    value = HasPlainArrayField(a=0x10101010, b=[3, 4, 3, 4, 3, 4, 3, 4, 3, 4])
    buffer = bytearray(16)
    assert marshal_into(HasPlainArrayField.CODEC, value, buffer) == 14
    assert HasPlainArrayField.unmarshal(UnmarshalBuf(buffer)) == value


def test_derive_unit_struct():
    value = HasUnitField(a=0x4, b=None, c=0x12122121)
    buffer = bytearray(1 + 4)
    assert marshal_into(HasUnitField.CODEC, value, buffer) == 5
    assert HasUnitField.unmarshal(UnmarshalBuf(buffer)) == value


def test_defaults_are_zero_values():
    assert StructCodec(BasicFields).default() == BasicFields(0, 0, 0)
    assert StructCodec(HasArray).default().array == [0] * 128
    assert StructCodec(NestedFields).default().one == BasicFields(0, 0, 0)
    assert BasicFields() == BasicFields(0, 0, 0)


def test_struct_codec_default_matches_constructor():
    assert StructCodec(HasPlainArrayField).default() == HasPlainArrayField()


def test_array_codec_round_trip():
    codec = ArrayCodec(U64, 3)
    values = [1, 2**63, 7]
    data = codec.marshal(values)
    assert len(data) == 24
    assert codec.unmarshal(UnmarshalBuf(data)) == values


def test_array_codec_wrong_length():
    with pytest.raises(ValueError):
        ArrayCodec(U8, 4).marshal([1, 2, 3])


def test_length_field_must_come_first():
    with pytest.raises(TypeError, match="must appear before"):

        @marshalable
        class LengthAfter:
            array: list = marshal_field(ArrayCodec(U8, 4), length="count")
            count: int = marshal_field(U8)


def test_length_on_non_array_rejected():
    with pytest.raises(TypeError, match="non-array"):

        @marshalable
        class LengthOnScalar:
            count: int = marshal_field(U8)
            value: int = marshal_field(U32, length="count")


def test_field_without_codec_rejected():
    class Plain:
        x: int = 0

    with pytest.raises(TypeError, match="no codec"):
        marshalable(Plain)


def test_marshal_field_rejects_non_codec():
    with pytest.raises(TypeError):
        marshal_field(int)