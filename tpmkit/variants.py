"""Length-prefixed byte buffers and selector-tagged unions."""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Sequence, Tuple

from .errors import TpmRcError
from .marshal import U8, U16, Codec, UnmarshalBuf

_U16_MAX = 0xFFFF


def _resolve(codec: Any) -> Codec:
    """Accept a codec, or a class carrying one in CODEC."""
    if isinstance(codec, Codec):
        return codec
    found = getattr(codec, "CODEC", None)
    if isinstance(found, Codec):
        return found
    raise TypeError(f"{codec!r} is neither a codec nor a marshalable class")


class _ClassCodec(Codec[Any]):
    """Codec that delegates to a class's own marshal/unmarshal methods."""

    def __init__(self, cls: type, has_default: bool) -> None:
        self.cls = cls
        self.has_default = has_default

    def marshal(self, value: Any) -> bytes:
        if not isinstance(value, self.cls):
            raise TypeError(f"expected {self.cls.__name__}, got {type(value).__name__}")
        return value.marshal()

    def unmarshal(self, buf: UnmarshalBuf) -> Any:
        return self.cls.unmarshal(buf)

    def default(self) -> Any:
        if not self.has_default:
            raise TypeError(f"{self.cls.__name__} has no default value")
        return self.cls()

    def __repr__(self) -> str:
        return f"_ClassCodec({self.cls.__name__})"


class Tpm2bSimple:
    """A sized buffer: a u16 length followed by that many bytes.

    Subclasses set MAX_BUFFER_SIZE, the capacity of the buffer.
    """

    MAX_BUFFER_SIZE: ClassVar[int]
    CODEC: ClassVar[Codec]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        size = getattr(cls, "MAX_BUFFER_SIZE", None)
        if size is None:
            return
        if not isinstance(size, int) or size < 0:
            raise TypeError(f"{cls.__name__}.MAX_BUFFER_SIZE must be a non-negative integer")
        cls.CODEC = _ClassCodec(cls, has_default=True)

    def __init__(self, data: bytes = b"") -> None:
        capacity = getattr(type(self), "MAX_BUFFER_SIZE", None)
        if capacity is None:
            raise TypeError(f"{type(self).__name__} does not define MAX_BUFFER_SIZE")
        data = bytes(data)
        if len(data) > min(_U16_MAX, capacity):
            raise TpmRcError.SIZE
        self._data = data

    @classmethod
    def from_bytes(cls, data: bytes) -> "Tpm2bSimple":
        """Build a buffer holding `data`; raises TPM_RC_SIZE if it does not fit."""
        return cls(data)

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def buffer(self) -> bytes:
        return self._data

    def marshal(self) -> bytes:
        """The u16 size followed by the used bytes."""
        return U16.marshal(len(self._data)) + self._data

    @classmethod
    def unmarshal(cls, buf: UnmarshalBuf) -> "Tpm2bSimple":
        """Read a size and that many bytes from the front of `buf`."""
        size = U16.unmarshal(buf)
        chunk = buf.get(size)
        if chunk is None or size > cls.MAX_BUFFER_SIZE:
            raise TpmRcError.MEMORY
        return cls(chunk)

    def __bytes__(self) -> bytes:
        return self._data

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash((type(self), self._data))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"


class Tpm2bStruct(Tpm2bSimple):
    """A sized buffer that holds one marshaled structure of type STRUCT_TYPE."""

    STRUCT_TYPE: ClassVar[Any]

    @classmethod
    def from_struct(cls, value: Any) -> "Tpm2bStruct":
        """Marshal `value` into a new buffer; raises TPM_RC_MEMORY if it does not fit."""
        data = _resolve(cls.STRUCT_TYPE).marshal(value)
        if len(data) > cls.MAX_BUFFER_SIZE:
            raise TpmRcError.MEMORY
        return cls(data)

    def to_struct(self) -> Any:
        """Unmarshal the held bytes as a STRUCT_TYPE value."""
        return _resolve(type(self).STRUCT_TYPE).unmarshal(UnmarshalBuf(self.buffer))


class VariantUnion:
    """A union whose active variant is named by a selector on the wire.

    Subclasses set VARIANTS, mapping each variant name to a pair of its
    selector and the codecs of its fields, and may set SELECTOR, the codec
    of the selector (u8 by default).
    """

    SELECTOR: ClassVar[Codec] = U8
    VARIANTS: ClassVar[Mapping[str, Tuple[Any, Sequence[Any]]]]
    CODEC: ClassVar[Codec]
    _fields: ClassVar[Dict[str, Tuple[int, Tuple[Codec, ...]]]] = {}
    _by_selector: ClassVar[Dict[int, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        variants = getattr(cls, "VARIANTS", None)
        if variants is None:
            return
        fields: Dict[str, Tuple[int, Tuple[Codec, ...]]] = {}
        by_selector: Dict[int, str] = {}
        problems = []
        for name, spec in variants.items():
            try:
                selector, codecs = spec
            except (TypeError, ValueError):
                problems.append(f"variant {name!r} must be a (selector, fields) pair")
                continue
            if selector is None:
                problems.append(f"variant {name!r} must declare a selector")
                continue
            try:
                cls.SELECTOR.marshal(selector)
            except (ValueError, AttributeError, TypeError):
                problems.append(f"selector {selector!r} of variant {name!r} does not fit the selector type")
                continue
            if selector in by_selector:
                problems.append(
                    f"variant {name!r} reuses selector {selector!r} of variant {by_selector[selector]!r}"
                )
                continue
            try:
                resolved = tuple(_resolve(codec) for codec in codecs)
            except TypeError as exc:
                problems.append(f"variant {name!r}: {exc}")
                continue
            fields[name] = (selector, resolved)
            by_selector[selector] = name
        if problems:
            raise TypeError("; ".join(problems))
        cls._fields = fields
        cls._by_selector = by_selector
        cls.CODEC = _ClassCodec(cls, has_default=False)

    def __init__(self, variant: str, *values: Any) -> None:
        spec = type(self)._fields.get(variant)
        if spec is None:
            raise ValueError(f"{type(self).__name__} has no variant {variant!r}")
        codecs = spec[1]
        if len(values) != len(codecs):
            raise TypeError(
                f"variant {variant!r} takes {len(codecs)} value(s), got {len(values)}"
            )
        self.variant = variant
        self.values = tuple(values)

    @property
    def discriminant(self) -> int:
        """The selector of the active variant."""
        return type(self)._fields[self.variant][0]

    def marshal_variant(self) -> bytes:
        """The fields of the active variant, without the selector."""
        codecs = type(self)._fields[self.variant][1]
        return b"".join(codec.marshal(value) for codec, value in zip(codecs, self.values))

    @classmethod
    def unmarshal_variant(cls, selector: int, buf: UnmarshalBuf) -> "VariantUnion":
        """Read the fields of the variant named by `selector`."""
        name = cls._by_selector.get(selector)
        if name is None:
            raise TpmRcError.SELECTOR
        codecs = cls._fields[name][1]
        return cls(name, *(codec.unmarshal(buf) for codec in codecs))

    def marshal(self) -> bytes:
        """The selector followed by the fields of the active variant."""
        return type(self).SELECTOR.marshal(self.discriminant) + self.marshal_variant()

    @classmethod
    def unmarshal(cls, buf: UnmarshalBuf) -> "VariantUnion":
        """Read a selector and then the variant it names."""
        selector = cls.SELECTOR.unmarshal(buf)
        return cls.unmarshal_variant(selector, buf)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (self.variant, self.values) == (other.variant, other.values)

    def __hash__(self) -> int:
        return hash((type(self), self.variant, self.values))

    def __repr__(self) -> str:
        args = ", ".join(repr(v) for v in (self.variant, *self.values))
        return f"{type(self).__name__}({args})"