"""Byte-level reading and writing of fixed-size and string columns."""

from __future__ import annotations

import io
import ipaddress
import struct
import uuid
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Iterable

from .types import DeserializeError, Type, TypeKind, Value, ValueKind

_U64 = struct.Struct("<Q")
_U8 = struct.Struct("<B")
_MAX_VARINT_BYTES = 10
_U64_MASK = (1 << 64) - 1


class Reader:
    """Reads little-endian primitives from bytes or a binary stream."""

    def __init__(self, source: bytes | bytearray | memoryview | BinaryIO) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._stream: BinaryIO = io.BytesIO(bytes(source))
        else:
            self._stream = source

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes or raise DeserializeError."""
        if size < 0:
            raise ValueError(f"cannot read a negative number of bytes: {size}")
        buf = bytearray()
        while len(buf) < size:
            chunk = self._stream.read(size - len(buf))
            if not chunk:
                raise DeserializeError(
                    f"unexpected end of data: wanted {size} bytes, got {len(buf)}"
                )
            buf += chunk
        return bytes(buf)

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_u64(self) -> int:
        return _U64.unpack(self.read_exact(8))[0]

    def read_varint(self) -> int:
        """Read an unsigned LEB128 integer of at most 64 bits."""
        result = 0
        for shift in range(0, 7 * _MAX_VARINT_BYTES, 7):
            byte = self.read_u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > _U64_MASK:
                    raise DeserializeError("varint exceeds 64 bits")
                return result
        raise DeserializeError("varint is too long")

    def read_string(self) -> bytes:
        """Read a varint length followed by that many bytes."""
        return self.read_exact(self.read_varint())


class Writer:
    """Collects little-endian primitives into a byte buffer."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes | bytearray | memoryview) -> None:
        self._buffer += data

    def write_u8(self, value: int) -> None:
        self._buffer += _pack(_U8, value)

    def write_u64(self, value: int) -> None:
        self._buffer += _pack(_U64, value)

    def write_varint(self, value: int) -> None:
        """Write an unsigned LEB128 integer of at most 64 bits."""
        if value < 0 or value > _U64_MASK:
            raise ValueError(f"varint out of range: {value}")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buffer.append(byte | 0x80)
            else:
                self._buffer.append(byte)
                return

    def write_string(self, data: bytes | bytearray | memoryview) -> None:
        """Write a varint length followed by the bytes."""
        self.write_varint(len(data))
        self.write(data)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


def _pack(packer: struct.Struct, value: Any) -> bytes:
    try:
        return packer.pack(value)
    except struct.error as exc:
        raise ValueError(f"cannot encode {value!r}: {exc}") from exc


@dataclass(frozen=True)
class _Codec:
    width: int
    decode: Callable[[bytes], Any]
    encode: Callable[[Any], bytes]


def _struct_codec(fmt: str) -> _Codec:
    packer = struct.Struct(fmt)
    return _Codec(packer.size, lambda raw: packer.unpack(raw)[0], packer.pack)


def _int_codec(width: int, signed: bool) -> _Codec:
    return _Codec(
        width,
        lambda raw: int.from_bytes(raw, "little", signed=signed),
        lambda n: int(n).to_bytes(width, "little", signed=signed),
    )


def _decode_uuid(raw: bytes) -> uuid.UUID:
    high, low = struct.unpack("<QQ", raw)
    return uuid.UUID(int=(high << 64) | low)


def _encode_uuid(value: uuid.UUID) -> bytes:
    n = value.int
    return struct.pack("<QQ", n >> 64, n & _U64_MASK)


_UUID_CODEC = _Codec(16, _decode_uuid, _encode_uuid)
_IPV4_CODEC = _Codec(
    4,
    lambda raw: ipaddress.IPv4Address(struct.unpack("<I", raw)[0]),
    lambda addr: struct.pack("<I", int(addr)),
)
_IPV6_CODEC = _Codec(16, ipaddress.IPv6Address, lambda addr: addr.packed)

_LAYOUT = (
    (TypeKind.INT8, ValueKind.INT8, _struct_codec("<b")),
    (TypeKind.INT16, ValueKind.INT16, _struct_codec("<h")),
    (TypeKind.INT32, ValueKind.INT32, _struct_codec("<i")),
    (TypeKind.INT64, ValueKind.INT64, _struct_codec("<q")),
    (TypeKind.INT128, ValueKind.INT128, _int_codec(16, True)),
    (TypeKind.INT256, ValueKind.INT256, _int_codec(32, True)),
    (TypeKind.UINT8, ValueKind.UINT8, _struct_codec("<B")),
    (TypeKind.UINT16, ValueKind.UINT16, _struct_codec("<H")),
    (TypeKind.UINT32, ValueKind.UINT32, _struct_codec("<I")),
    (TypeKind.UINT64, ValueKind.UINT64, _struct_codec("<Q")),
    (TypeKind.UINT128, ValueKind.UINT128, _int_codec(16, False)),
    (TypeKind.UINT256, ValueKind.UINT256, _int_codec(32, False)),
    (TypeKind.FLOAT32, ValueKind.FLOAT32, _struct_codec("<f")),
    (TypeKind.FLOAT64, ValueKind.FLOAT64, _struct_codec("<d")),
    (TypeKind.DECIMAL32, ValueKind.DECIMAL32, _struct_codec("<i")),
    (TypeKind.DECIMAL64, ValueKind.DECIMAL64, _struct_codec("<q")),
    (TypeKind.DECIMAL128, ValueKind.DECIMAL128, _int_codec(16, True)),
    (TypeKind.DECIMAL256, ValueKind.DECIMAL256, _int_codec(32, True)),
    (TypeKind.UUID, ValueKind.UUID, _UUID_CODEC),
    (TypeKind.DATE, ValueKind.DATE, _struct_codec("<H")),
    (TypeKind.DATETIME, ValueKind.DATETIME, _struct_codec("<I")),
    (TypeKind.DATETIME64, ValueKind.DATETIME64, _struct_codec("<Q")),
    (TypeKind.IPV4, ValueKind.IPV4, _IPV4_CODEC),
    (TypeKind.IPV6, ValueKind.IPV6, _IPV6_CODEC),
    (TypeKind.ENUM8, ValueKind.ENUM8, _struct_codec("<b")),
    (TypeKind.ENUM16, ValueKind.ENUM16, _struct_codec("<h")),
)

_BY_TYPE_KIND = {kind: (vkind, codec) for kind, vkind, codec in _LAYOUT}
_BY_VALUE_KIND = {vkind: codec for _, vkind, codec in _LAYOUT}


def _justify(value: Value, type_: Type) -> Value:
    """Replace Null with the type's zero value."""
    return type_.default_value() if value.kind is ValueKind.NULL else value


def read_sized(type_: Type, reader: Reader, rows: int) -> list[Value]:
    """Read ``rows`` values of a fixed-size type."""
    layout = _BY_TYPE_KIND.get(type_.kind)
    if layout is None:
        raise ValueError(f"not a fixed-size type: {type_}")
    vkind, codec = layout
    return [
        Value(vkind, codec.decode(reader.read_exact(codec.width)), scale=type_.size, tz=type_.tz)
        for _ in range(rows)
    ]


def write_sized(type_: Type, values: Iterable[Value], writer: Writer) -> None:
    """Write values of a fixed-size type; Null is written as the zero value."""
    for value in values:
        value = _justify(value, type_)
        codec = _BY_VALUE_KIND.get(value.kind)
        if codec is None:
            raise ValueError(f"not a fixed-size value: {value!r}")
        try:
            encoded = codec.encode(value.data)
        except (struct.error, OverflowError, TypeError, AttributeError) as exc:
            raise ValueError(f"cannot encode {value!r} as {type_}: {exc}") from exc
        writer.write(encoded)


def read_strings(type_: Type, reader: Reader, rows: int) -> list[Value]:
    """Read ``rows`` values of a String or FixedString column."""
    if type_.kind is TypeKind.STRING:
        return [Value(ValueKind.STRING, reader.read_string()) for _ in range(rows)]
    if type_.kind is TypeKind.FIXED_STRING:
        out = []
        for _ in range(rows):
            raw = reader.read_exact(type_.size)
            end = raw.find(b"\x00")
            out.append(Value(ValueKind.STRING, raw if end < 0 else raw[:end]))
        return out
    raise ValueError(f"not a string type: {type_}")


def _byte_of(item: Value) -> int:
    if item.kind is ValueKind.UINT8:
        return item.data
    if item.kind is ValueKind.INT8:
        return item.data & 0xFF
    raise ValueError(f"not a byte value: {item!r}")


def _emit(type_: Type, data: bytes, writer: Writer) -> None:
    if type_.kind is TypeKind.FIXED_STRING:
        size = type_.size
        writer.write(data[:size].ljust(size, b"\x00"))
    else:
        writer.write_string(data)


def write_strings(type_: Type, values: Iterable[Value], writer: Writer) -> None:
    """Write String or FixedString values; FixedString is cut or zero padded."""
    if type_.kind not in (TypeKind.STRING, TypeKind.FIXED_STRING):
        raise ValueError(f"not a string type: {type_}")
    for value in values:
        value = _justify(value, type_)
        if value.kind is ValueKind.STRING:
            _emit(type_, value.data, writer)
        elif value.kind is ValueKind.ARRAY:
            _emit(type_, bytes(_byte_of(item) for item in value.data), writer)
        else:
            raise ValueError(f"not a string value: {value!r}")