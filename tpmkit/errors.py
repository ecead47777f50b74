"""Error codes for the TPM service layer and the TSS client layers."""

from __future__ import annotations

import enum
from typing import ClassVar, Optional, Tuple

_U32_MAX = 0xFFFF_FFFF


class TssErrorCannotBeZero(ValueError):
    """Raised when a zero value is turned into an error code."""

    def __init__(self) -> None:
        super().__init__("a TSS error code cannot be zero")


class _Constant:
    """Class-level error constant that yields a fresh instance on every access."""

    def __init__(self, value: int) -> None:
        self._value = value

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    def __get__(self, obj: object, owner: type) -> "TssError":
        return owner(self._value)


class _LayerConstant(_Constant):
    """Error constant whose code is tagged with the owning class's layer."""

    def __get__(self, obj: object, owner: type) -> "TssError":
        layer = getattr(owner, "LAYER", None)
        if layer is None:
            raise AttributeError(f"{owner.__name__} has no layer; use a concrete layer class")
        return owner(self._value | (layer << 12))


class TssError(Exception):
    """An error from any layer, identified by a non-zero 32-bit code."""

    def __init__(self, code: int) -> None:
        if code == 0:
            raise TssErrorCannotBeZero()
        if not 0 < code <= _U32_MAX:
            raise ValueError(f"error code {code!r} does not fit in 32 bits")
        super().__init__(code)
        self.code = code

    @classmethod
    def from_code(cls, value: int) -> "TssError":
        """Build an error from a raw response code; zero is not an error."""
        return cls(value)

    def __int__(self) -> int:
        return self.code

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TssError):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code:#x})"

    def __str__(self) -> str:
        return f"{type(self).__name__} {self.code:#x}"


class ErrorType(enum.Enum):
    """What a format-1 response code refers to."""

    HANDLE = 0x0
    PARAMETER = 0x40
    SESSION = 0x800

    @property
    def mask(self) -> int:
        return self.value

    @classmethod
    def from_mask(cls, value: int) -> Optional["ErrorType"]:
        if value & 0x80 == 0:
            return None
        if value & cls.PARAMETER.value:
            return cls.PARAMETER
        return cls.SESSION


class ErrorPosition(enum.IntEnum):
    """Position, from 1, of the handle, parameter or session in error."""

    POS1 = 1
    POS2 = 2
    POS3 = 3
    POS4 = 4
    POS5 = 5
    POS6 = 6
    POS7 = 7
    POS8 = 8
    POS9 = 9
    POSA = 10
    POSB = 11
    POSC = 12
    POSD = 13
    POSE = 14
    POSF = 15

    @property
    def mask(self) -> int:
        return self.value << 8

    @classmethod
    def from_mask(cls, value: int) -> Optional["ErrorPosition"]:
        if value & 0x80 == 0:
            return None
        position = (value & 0xF00) >> 8
        return cls(position) if position else None


_RC_FMT1 = 0x080


class TpmRcError(TssError):
    """A TPM 2.0 service response code (TPM_RC)."""

    ASYMMETRIC = _Constant(_RC_FMT1 + 0x001)
    VALUE = _Constant(_RC_FMT1 + 0x004)
    SIZE = _Constant(_RC_FMT1 + 0x015)
    SELECTOR = _Constant(_RC_FMT1 + 0x018)
    BAD_TAG = _Constant(0x1E)
    INITIALIZE = _Constant(0x100)
    FAILURE = _Constant(0x101)
    SEQUENCE = _Constant(0x102)
    COMMAND_SIZE = _Constant(0x142)
    COMMAND_CODE = _Constant(0x143)
    CONTEXT_GAP = _Constant(0x901)
    OBJECT_MEMORY = _Constant(0x902)
    SESSION_MEMORY = _Constant(0x903)
    MEMORY = _Constant(0x904)

    @classmethod
    def _format1(cls, base: int, on: ErrorType, pos: ErrorPosition) -> "TpmRcError":
        return cls(base | on.mask | pos.mask)

    @classmethod
    def asymmetric_for(cls, on: ErrorType, pos: ErrorPosition) -> "TpmRcError":
        """Asymmetric algorithm error tagged with the offending item."""
        return cls._format1(_RC_FMT1 + 0x001, on, pos)

    @classmethod
    def value_for(cls, on: ErrorType, pos: ErrorPosition) -> "TpmRcError":
        """Value error tagged with the offending item."""
        return cls._format1(_RC_FMT1 + 0x004, on, pos)

    @classmethod
    def size_for(cls, on: ErrorType, pos: ErrorPosition) -> "TpmRcError":
        """Size error tagged with the offending item."""
        return cls._format1(_RC_FMT1 + 0x015, on, pos)

    @classmethod
    def selector_for(cls, on: ErrorType, pos: ErrorPosition) -> "TpmRcError":
        """Selector error tagged with the offending item."""
        return cls._format1(_RC_FMT1 + 0x018, on, pos)

    def is_warning(self) -> bool:
        """True if the code is a format-0 warning rather than a failure."""
        return self.code & 0x980 == 0x900

    def format1_parameter(self) -> Optional[Tuple[ErrorType, ErrorPosition]]:
        """The (type, position) pair of a format-1 code, or None."""
        on = ErrorType.from_mask(self.code)
        pos = ErrorPosition.from_mask(self.code)
        if on is None or pos is None:
            return None
        return on, pos


class TssLayerError(TssError):
    """An error raised by one of the TSS client layers."""

    LAYER: ClassVar[int]

    GENERAL_FAILURE = _LayerConstant(2)
    BAD_PARAMETER = _LayerConstant(3)
    INTERNAL_ERROR = _LayerConstant(4)
    OUT_OF_MEMORY = _LayerConstant(5)
    NOT_IMPLEMENTED = _LayerConstant(6)
    KEY_ALREADY_REGISTERED = _LayerConstant(8)
    TPM_UNEXPECTED = _LayerConstant(16)
    COMM_FAILURE = _LayerConstant(17)
    TIMEOUT = _LayerConstant(18)
    UNSUPPORTED = _LayerConstant(20)
    CANCELED = _LayerConstant(22)


class TssTddlError(TssLayerError):
    """Error from the device driver library layer."""

    LAYER = 0x1


class TssTcsError(TssLayerError):
    """Error from the core services layer."""

    LAYER = 0x2


class TssTspError(TssLayerError):
    """Error from the service provider layer."""

    LAYER = 0x3