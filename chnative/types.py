"""Column types and values of the ClickHouse native format."""

from __future__ import annotations

import enum
import ipaddress
import re
import struct
import uuid
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

NEED_GLOBAL_DICTIONARY_BIT = 1 << 8
HAS_ADDITIONAL_KEYS_BIT = 1 << 9
NEED_UPDATE_DICTIONARY_BIT = 1 << 10

TUINT8 = 0
TUINT16 = 1
TUINT32 = 2
TUINT64 = 3

LOW_CARDINALITY_VERSION = 1

UTC = "UTC"


class ClickhouseError(Exception):
    """Base class of all errors raised by this package."""


class TypeParseError(ClickhouseError):
    """A type name could not be parsed or is not valid."""


class DeserializeError(ClickhouseError):
    """Column data could not be decoded."""


class ProtocolError(ClickhouseError):
    """The data violates a protocol limit."""


class TypeKind(enum.Enum):
    """The kinds of column type; simple kinds carry their type name."""

    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    INT128 = "Int128"
    INT256 = "Int256"
    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    UINT128 = "UInt128"
    UINT256 = "UInt256"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    DECIMAL32 = "Decimal32"
    DECIMAL64 = "Decimal64"
    DECIMAL128 = "Decimal128"
    DECIMAL256 = "Decimal256"
    STRING = "String"
    FIXED_STRING = "FixedString"
    UUID = "UUID"
    DATE = "Date"
    DATETIME = "DateTime"
    DATETIME64 = "DateTime64"
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    POINT = "Point"
    RING = "Ring"
    POLYGON = "Polygon"
    MULTIPOLYGON = "MultiPolygon"
    ENUM8 = "Enum8"
    ENUM16 = "Enum16"
    LOW_CARDINALITY = "LowCardinality"
    ARRAY = "Array"
    TUPLE = "Tuple"
    NULLABLE = "Nullable"
    MAP = "Map"


class ValueKind(enum.Enum):
    """The kinds of column value."""

    INT8 = enum.auto()
    INT16 = enum.auto()
    INT32 = enum.auto()
    INT64 = enum.auto()
    INT128 = enum.auto()
    INT256 = enum.auto()
    UINT8 = enum.auto()
    UINT16 = enum.auto()
    UINT32 = enum.auto()
    UINT64 = enum.auto()
    UINT128 = enum.auto()
    UINT256 = enum.auto()
    FLOAT32 = enum.auto()
    FLOAT64 = enum.auto()
    DECIMAL32 = enum.auto()
    DECIMAL64 = enum.auto()
    DECIMAL128 = enum.auto()
    DECIMAL256 = enum.auto()
    STRING = enum.auto()
    UUID = enum.auto()
    DATE = enum.auto()
    DATETIME = enum.auto()
    DATETIME64 = enum.auto()
    IPV4 = enum.auto()
    IPV6 = enum.auto()
    POINT = enum.auto()
    RING = enum.auto()
    POLYGON = enum.auto()
    MULTIPOLYGON = enum.auto()
    ENUM8 = enum.auto()
    ENUM16 = enum.auto()
    ARRAY = enum.auto()
    TUPLE = enum.auto()
    NULL = enum.auto()
    MAP = enum.auto()


def _freeze(obj: Any) -> Any:
    if isinstance(obj, (list, tuple)):
        return tuple(_freeze(item) for item in obj)
    if isinstance(obj, bytearray):
        return bytes(obj)
    return obj


def _canonical(obj: Any) -> Any:
    # Floats compare by bit pattern so that NaN equals itself.
    if isinstance(obj, float):
        return ("f", struct.pack("<d", obj))
    if isinstance(obj, tuple):
        return tuple(_canonical(item) for item in obj)
    return obj


@dataclass(frozen=True, eq=False)
class Value:
    """A single column value.

    ``data`` holds the payload: an int for integers, decimals, dates and
    enums, a float for floats, bytes for strings, a tuple of values for
    arrays and tuples, ``(keys, values)`` for maps, a pair of floats for a
    point and nested tuples of points for the other geo kinds.  ``scale``
    is the decimal scale or DateTime64 precision, ``tz`` the time zone.
    """

    kind: ValueKind
    data: Any = None
    scale: int | None = None
    tz: str | None = None

    def __post_init__(self) -> None:
        data = self.data
        if self.kind is ValueKind.STRING and isinstance(data, str):
            data = data.encode("utf-8")
        object.__setattr__(self, "data", _freeze(data))

    @classmethod
    def string(cls, text: str | bytes) -> Value:
        """Build a String value from text or raw bytes."""
        return cls(ValueKind.STRING, text)

    @classmethod
    def null(cls) -> Value:
        """Build the Null value."""
        return cls(ValueKind.NULL)

    def _key(self) -> tuple:
        return (self.kind, _canonical(self.data), self.scale, self.tz)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


_ARITY = {
    TypeKind.LOW_CARDINALITY: 1,
    TypeKind.ARRAY: 1,
    TypeKind.NULLABLE: 1,
    TypeKind.MAP: 2,
}

_SIZED_KINDS = frozenset(
    {
        TypeKind.DECIMAL32,
        TypeKind.DECIMAL64,
        TypeKind.DECIMAL128,
        TypeKind.DECIMAL256,
        TypeKind.FIXED_STRING,
        TypeKind.DATETIME64,
    }
)


@dataclass(frozen=True)
class Type:
    """A column type.

    ``children`` holds the inner types of composite kinds, ``size`` the
    decimal scale, FixedString length or DateTime64 precision, ``tz`` the
    time zone of DateTime kinds and ``variants`` the entries of enums.
    """

    kind: TypeKind
    children: tuple[Type, ...] = ()
    size: int | None = None
    tz: str | None = None
    variants: tuple[tuple[str, int], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))
        object.__setattr__(
            self, "variants", tuple((str(name), int(v)) for name, v in self.variants)
        )
        arity = _ARITY.get(self.kind)
        if arity is not None and len(self.children) != arity:
            raise ValueError(f"{self.kind.value} takes {arity} inner type(s)")
        if self.kind in _SIZED_KINDS and self.size is None:
            raise ValueError(f"{self.kind.value} needs a size")
        if self.kind in (TypeKind.DATETIME, TypeKind.DATETIME64) and self.tz is None:
            object.__setattr__(self, "tz", UTC)

    @classmethod
    def parse(cls, text: str) -> Type:
        """Parse a type name as the server spells it."""
        return _parse(text)

    def unwrap_array(self) -> Type:
        if self.kind is not TypeKind.ARRAY:
            raise ValueError(f"not an Array type: {self}")
        return self.children[0]

    def unarray(self) -> Type | None:
        return self.children[0] if self.kind is TypeKind.ARRAY else None

    def unwrap_map(self) -> tuple[Type, Type]:
        if self.kind is not TypeKind.MAP:
            raise ValueError(f"not a Map type: {self}")
        return self.children[0], self.children[1]

    def unmap(self) -> tuple[Type, Type] | None:
        if self.kind is not TypeKind.MAP:
            return None
        return self.children[0], self.children[1]

    def unwrap_tuple(self) -> tuple[Type, ...]:
        if self.kind is not TypeKind.TUPLE:
            raise ValueError(f"not a Tuple type: {self}")
        return self.children

    def untuple(self) -> tuple[Type, ...] | None:
        return self.children if self.kind is TypeKind.TUPLE else None

    def unnull(self) -> Type | None:
        return self.children[0] if self.kind is TypeKind.NULLABLE else None

    def strip_null(self) -> Type:
        return self.children[0] if self.kind is TypeKind.NULLABLE else self

    def is_nullable(self) -> bool:
        return self.kind is TypeKind.NULLABLE

    def strip_low_cardinality(self) -> Type:
        return self.children[0] if self.kind is TypeKind.LOW_CARDINALITY else self

    def default_value(self) -> Value:
        """The zero value of this type."""
        kind = self.kind
        if kind in _PLAIN_VALUE_KINDS:
            value_kind = _PLAIN_VALUE_KINDS[kind]
            zero = 0.0 if kind in (TypeKind.FLOAT32, TypeKind.FLOAT64) else 0
            return Value(value_kind, zero)
        if kind in _DECIMAL_VALUE_KINDS:
            return Value(_DECIMAL_VALUE_KINDS[kind], 0, scale=self.size)
        if kind in (TypeKind.STRING, TypeKind.FIXED_STRING):
            return Value(ValueKind.STRING, b"")
        if kind is TypeKind.UUID:
            return Value(ValueKind.UUID, uuid.UUID(int=0))
        if kind is TypeKind.DATE:
            return Value(ValueKind.DATE, 0)
        if kind is TypeKind.DATETIME:
            return Value(ValueKind.DATETIME, 0, tz=self.tz)
        if kind is TypeKind.DATETIME64:
            return Value(ValueKind.DATETIME64, 0, scale=self.size, tz=self.tz)
        if kind is TypeKind.IPV4:
            return Value(ValueKind.IPV4, ipaddress.IPv4Address(0))
        if kind is TypeKind.IPV6:
            return Value(ValueKind.IPV6, ipaddress.IPv6Address(0))
        if kind is TypeKind.POINT:
            return Value(ValueKind.POINT, (0.0, 0.0))
        if kind is TypeKind.RING:
            return Value(ValueKind.RING, ())
        if kind is TypeKind.POLYGON:
            return Value(ValueKind.POLYGON, ())
        if kind is TypeKind.MULTIPOLYGON:
            return Value(ValueKind.MULTIPOLYGON, ())
        if kind is TypeKind.LOW_CARDINALITY:
            return self.children[0].default_value()
        if kind is TypeKind.ARRAY:
            return Value(ValueKind.ARRAY, ())
        if kind is TypeKind.TUPLE:
            return Value(ValueKind.TUPLE, tuple(c.default_value() for c in self.children))
        if kind is TypeKind.NULLABLE:
            return Value.null()
        return Value(ValueKind.MAP, ((), ()))

    def __str__(self) -> str:
        kind = self.kind
        if kind in _SIZED_KINDS and kind is not TypeKind.DATETIME64:
            return f"{kind.value}({self.size})"
        if kind is TypeKind.DATETIME:
            return f"DateTime('{self.tz}')"
        if kind is TypeKind.DATETIME64:
            return f"DateTime64({self.size},'{self.tz}')"
        if kind in (TypeKind.ENUM8, TypeKind.ENUM16):
            items = ",".join(f"{name}={value}" for name, value in self.variants)
            return f"{kind.value}({items})"
        if self.children or kind is TypeKind.TUPLE:
            return f"{kind.value}({','.join(str(c) for c in self.children)})"
        return kind.value


_PLAIN_VALUE_KINDS = {
    TypeKind.INT8: ValueKind.INT8,
    TypeKind.INT16: ValueKind.INT16,
    TypeKind.INT32: ValueKind.INT32,
    TypeKind.INT64: ValueKind.INT64,
    TypeKind.INT128: ValueKind.INT128,
    TypeKind.INT256: ValueKind.INT256,
    TypeKind.UINT8: ValueKind.UINT8,
    TypeKind.UINT16: ValueKind.UINT16,
    TypeKind.UINT32: ValueKind.UINT32,
    TypeKind.UINT64: ValueKind.UINT64,
    TypeKind.UINT128: ValueKind.UINT128,
    TypeKind.UINT256: ValueKind.UINT256,
    TypeKind.FLOAT32: ValueKind.FLOAT32,
    TypeKind.FLOAT64: ValueKind.FLOAT64,
    TypeKind.ENUM8: ValueKind.ENUM8,
    TypeKind.ENUM16: ValueKind.ENUM16,
}

_DECIMAL_VALUE_KINDS = {
    TypeKind.DECIMAL32: ValueKind.DECIMAL32,
    TypeKind.DECIMAL64: ValueKind.DECIMAL64,
    TypeKind.DECIMAL128: ValueKind.DECIMAL128,
    TypeKind.DECIMAL256: ValueKind.DECIMAL256,
}

_SIMPLE_NAMES = {
    "Int8": TypeKind.INT8,
    "Int16": TypeKind.INT16,
    "Int32": TypeKind.INT32,
    "Int64": TypeKind.INT64,
    "Int128": TypeKind.INT128,
    "Int256": TypeKind.INT256,
    "Bool": TypeKind.UINT8,
    "UInt8": TypeKind.UINT8,
    "UInt16": TypeKind.UINT16,
    "UInt32": TypeKind.UINT32,
    "UInt64": TypeKind.UINT64,
    "UInt128": TypeKind.UINT128,
    "UInt256": TypeKind.UINT256,
    "Float32": TypeKind.FLOAT32,
    "Float64": TypeKind.FLOAT64,
    "String": TypeKind.STRING,
    "UUID": TypeKind.UUID,
    "Date": TypeKind.DATE,
    "DateTime": TypeKind.DATETIME,
    "IPv4": TypeKind.IPV4,
    "IPv6": TypeKind.IPV6,
    "Point": TypeKind.POINT,
    "Ring": TypeKind.RING,
    "Polygon": TypeKind.POLYGON,
    "MultiPolygon": TypeKind.MULTIPOLYGON,
}

_SCALED_NAMES = {
    "Decimal32": TypeKind.DECIMAL32,
    "Decimal64": TypeKind.DECIMAL64,
    "Decimal128": TypeKind.DECIMAL128,
    "Decimal256": TypeKind.DECIMAL256,
    "FixedString": TypeKind.FIXED_STRING,
}

_WRAPPER_NAMES = {
    "LowCardinality": TypeKind.LOW_CARDINALITY,
    "Array": TypeKind.ARRAY,
    "Nullable": TypeKind.NULLABLE,
}

_DECIMAL_BY_PRECISION = (
    (9, TypeKind.DECIMAL32),
    (18, TypeKind.DECIMAL64),
    (38, TypeKind.DECIMAL128),
    (76, TypeKind.DECIMAL256),
)

_UNSIGNED = re.compile(r"\+?[0-9]+")


def _eat_identifier(text: str) -> tuple[str, str]:
    for i, c in enumerate(text):
        if not (c.isalpha() or c in "_$" or (i > 0 and c.isnumeric())):
            return text[:i], text[i:]
    return text, ""


def _parse_args(text: str) -> list[str]:
    if not text.startswith("(") or not text.endswith(")"):
        raise TypeParseError("malformed arguments to type")
    body = text[1:-1].strip()
    out: list[str] = []
    depth = 0
    last_start = 0
    for i, c in enumerate(body):
        if c == "," and depth == 0:
            out.append(body[last_start:i].strip())
            last_start = i + 1
        elif c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth < 0:
                raise TypeParseError("mismatched parenthesis")
    if depth != 0:
        raise TypeParseError("mismatched parenthesis")
    if last_start != len(body):
        out.append(body[last_start:].strip())
    return out


def _parse_unsigned(text: str, what: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise TypeParseError(f"couldn't parse {what}")
    return int(text)


def _parse_timezone(arg: str, type_name: str, shown: str) -> str:
    if len(arg) < 2 or not arg.startswith("'") or not arg.endswith("'"):
        raise TypeParseError(f"failed to parse timezone for {type_name}: '{shown}'")
    name = arg[1:-1]
    if name == UTC:
        return name
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise TypeParseError(
            f"failed to parse timezone for {type_name}: '{shown}': {exc}"
        ) from exc
    return name


def _expect_args(name: str, args: list[str], count: int) -> None:
    if len(args) != count:
        raise TypeParseError(
            f"bad arg count for {name}, expected {count} and got {len(args)}"
        )


def _parse(text: str) -> Type:
    ident, following = _eat_identifier(text)
    if not ident:
        raise TypeParseError(f"invalid empty identifier for type: '{text}'")
    following = following.strip()
    if not following:
        kind = _SIMPLE_NAMES.get(ident)
        if kind is None:
            raise TypeParseError(f"invalid type name: '{ident}'")
        return Type(kind)

    args = _parse_args(following)
    if ident == "Decimal":
        _expect_args("Decimal", args, 2)
        precision = _parse_unsigned(args[0], "precision")
        scale = _parse_unsigned(args[1], "scale")
        for limit, kind in _DECIMAL_BY_PRECISION:
            if precision <= limit:
                return Type(kind, size=scale)
        raise TypeParseError("bad decimal spec, cannot exceed 76 precision")
    if ident in _SCALED_NAMES:
        _expect_args(ident, args, 1)
        return Type(_SCALED_NAMES[ident], size=_parse_unsigned(args[0], "scale"))
    if ident == "DateTime":
        _expect_args("DateTime", args, 1)
        return Type(TypeKind.DATETIME, tz=_parse_timezone(args[0], "DateTime", args[0]))
    if ident == "DateTime64":
        if len(args) == 2:
            tz = _parse_timezone(args[1], "DateTime64", args[0])
            return Type(
                TypeKind.DATETIME64, size=_parse_unsigned(args[0], "precision"), tz=tz
            )
        if len(args) == 1:
            return Type(
                TypeKind.DATETIME64, size=_parse_unsigned(args[0], "precision"), tz=UTC
            )
        raise TypeParseError(
            f"bad arg count for DateTime64, expected 1 or 2 and got {len(args)}"
        )
    if ident in ("Enum8", "Enum16", "Nested"):
        raise TypeParseError(f"unsupported {ident} type")
    if ident in _WRAPPER_NAMES:
        _expect_args(ident, args, 1)
        return Type(_WRAPPER_NAMES[ident], (_parse(args[0]),))
    if ident == "Tuple":
        return Type(TypeKind.TUPLE, tuple(_parse(arg.strip()) for arg in args))
    if ident == "Map":
        _expect_args("Map", args, 2)
        return Type(TypeKind.MAP, (_parse(args[0]), _parse(args[1])))
    raise TypeParseError(f"invalid type with arguments: '{ident}'")