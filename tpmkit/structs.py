"""Field-by-field marshaling of dataclass structures and fixed arrays."""

from __future__ import annotations

import copy
import dataclasses
from typing import Any, Dict, List, Optional, Sequence

from .errors import TpmRcError
from .marshal import ByteArrayCodec, Codec, IntCodec, UnitCodec, UnmarshalBuf

_CODEC_KEY = "tpmkit.codec"
_LENGTH_KEY = "tpmkit.length"


def _as_codec(codec: Any) -> Codec:
    """Accept a codec, or a marshalable class carrying one in CODEC."""
    if isinstance(codec, Codec):
        return codec
    found = getattr(codec, "CODEC", None)
    if isinstance(found, Codec):
        return found
    raise TypeError(f"{codec!r} is neither a codec nor a marshalable class")


def _default_value(codec: Codec) -> Any:
    """The zero value of the type a codec handles."""
    make_default = getattr(codec, "default", None)
    if callable(make_default):
        return make_default()
    if isinstance(codec, IntCodec):
        return 0
    if isinstance(codec, ByteArrayCodec):
        return bytes(codec.length)
    if isinstance(codec, UnitCodec):
        return None
    raise TypeError(f"no default value is known for {codec!r}")


class ArrayCodec(Codec[List[Any]]):
    """A fixed number of entries of one type, laid out back to back."""

    def __init__(self, entry: Any, count: int) -> None:
        self.entry = _as_codec(entry)
        self.count = count

    def marshal(self, value: Sequence[Any]) -> bytes:
        items = list(value)
        if len(items) != self.count:
            raise ValueError(f"expected {self.count} entries, got {len(items)}")
        return b"".join(self.entry.marshal(item) for item in items)

    def unmarshal(self, buf: UnmarshalBuf) -> List[Any]:
        return [self.entry.unmarshal(buf) for _ in range(self.count)]

    def default(self) -> List[Any]:
        return [_default_value(self.entry) for _ in range(self.count)]

    def _marshal_prefix(self, value: Sequence[Any], used: int) -> bytes:
        items = list(value)
        if used > self.count or used > len(items):
            raise TpmRcError.SIZE
        return b"".join(self.entry.marshal(item) for item in items[:used])

    def _unmarshal_prefix(self, buf: UnmarshalBuf, used: int) -> List[Any]:
        if used > self.count:
            raise TpmRcError.SIZE
        head = [self.entry.unmarshal(buf) for _ in range(used)]
        return head + [_default_value(self.entry) for _ in range(self.count - used)]

    def __repr__(self) -> str:
        return f"ArrayCodec({self.entry!r}, {self.count})"


def marshal_field(codec: Any, *, length: Optional[str] = None, default: Any = dataclasses.MISSING) -> Any:
    """Declare a dataclass field with its wire codec.

    `length` names an earlier integer field that holds how many entries of
    an array field go on the wire.
    """
    resolved = _as_codec(codec)
    metadata = {_CODEC_KEY: resolved, _LENGTH_KEY: length}
    if default is dataclasses.MISSING:
        return dataclasses.field(default_factory=lambda: _default_value(resolved), metadata=metadata)
    if type(default).__hash__ is None:
        return dataclasses.field(default_factory=lambda: copy.deepcopy(default), metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


@dataclasses.dataclass(frozen=True)
class _FieldSpec:
    name: str
    codec: Codec
    length: Optional[str]


class StructCodec(Codec[Any]):
    """Marshals a dataclass by marshaling each of its fields in order."""

    def __init__(self, cls: type) -> None:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls!r} is not a dataclass")
        self.cls = cls
        specs: List[_FieldSpec] = []
        basic: set = set()
        problems: List[str] = []
        for field in dataclasses.fields(cls):
            codec = field.metadata.get(_CODEC_KEY)
            if codec is None:
                problems.append(f"field {field.name!r} has no codec; declare it with marshal_field()")
                continue
            if not field.init:
                problems.append(f"field {field.name!r} must be an __init__ parameter")
                continue
            length = field.metadata.get(_LENGTH_KEY)
            if length is not None:
                if not isinstance(codec, ArrayCodec):
                    problems.append(
                        f"length attribute is not permitted for non-array field {field.name!r}"
                    )
                    continue
                if length not in basic:
                    problems.append(
                        f"length field {length!r} must appear before field {field.name!r} "
                        "using it in a length attribute"
                    )
                    continue
            elif not isinstance(codec, ArrayCodec):
                basic.add(field.name)
            specs.append(_FieldSpec(field.name, codec, length))
        if problems:
            raise TypeError("; ".join(problems))
        self._specs = tuple(specs)

    def marshal(self, value: Any) -> bytes:
        parts = []
        for spec in self._specs:
            item = getattr(value, spec.name)
            if spec.length is None:
                parts.append(spec.codec.marshal(item))
            else:
                used = int(getattr(value, spec.length))
                parts.append(spec.codec._marshal_prefix(item, used))
        return b"".join(parts)

    def unmarshal(self, buf: UnmarshalBuf) -> Any:
        values: Dict[str, Any] = {}
        for spec in self._specs:
            if spec.length is None:
                values[spec.name] = spec.codec.unmarshal(buf)
            else:
                values[spec.name] = spec.codec._unmarshal_prefix(buf, int(values[spec.length]))
        return self.cls(**values)

    def default(self) -> Any:
        return self.cls(**{spec.name: _default_value(spec.codec) for spec in self._specs})

    def __repr__(self) -> str:
        return f"StructCodec({self.cls.__name__})"


def marshalable(cls: type) -> type:
    """Make `cls` a dataclass that marshals its fields in declaration order.

    The class gains a CODEC attribute, a marshal() method and an
    unmarshal(buf) class method.
    """
    if "__dataclass_fields__" not in cls.__dict__:
        cls = dataclasses.dataclass(cls)
    codec = StructCodec(cls)

    def marshal(self: Any) -> bytes:
        """Return the wire encoding of this value."""
        return codec.marshal(self)

    def unmarshal(klass: type, buf: UnmarshalBuf) -> Any:
        """Read a value from the front of `buf`."""
        return codec.unmarshal(buf)

    cls.CODEC = codec
    cls.marshal = marshal
    cls.unmarshal = classmethod(unmarshal)
    return cls