import io
import ipaddress
import math
import uuid

import pytest

from chnative.scalars import (
    Reader,
    Writer,
    read_sized,
    read_strings,
    write_sized,
    write_strings,
)
from chnative.types import DeserializeError, Type, TypeKind, Value, ValueKind


def _roundtrip(type_, values, read=read_sized, write=write_sized):
    writer = Writer()
    write(type_, values, writer)
    reader = Reader(writer.getvalue())
    out = read(type_, reader, len(values))
    with pytest.raises(DeserializeError):
        reader.read_exact(1)
    return out


SEVENS = int.from_bytes(bytes([7] * 32), "big")
BIG = 9000000000 * 9000000000


def _vals(kind, items, **extra):
    return [Value(kind, item, **extra) for item in items]


@pytest.mark.parametrize(
    "type_, values",
    [
        (Type(TypeKind.UINT8), _vals(ValueKind.UINT8, [12, 24, 30])),
        (Type(TypeKind.UINT16), _vals(ValueKind.UINT16, [12, 24, 30000])),
        (Type(TypeKind.UINT32), _vals(ValueKind.UINT32, [12, 24, 900000])),
        (Type(TypeKind.UINT64), _vals(ValueKind.UINT64, [12, 24, 9000000000])),
        (Type(TypeKind.UINT128), _vals(ValueKind.UINT128, [12, 24, 9000000000, BIG])),
        (Type(TypeKind.UINT256), _vals(ValueKind.UINT256, [0, SEVENS])),
        (Type(TypeKind.INT8), _vals(ValueKind.INT8, [12, 24, 30, -30])),
        (Type(TypeKind.INT16), _vals(ValueKind.INT16, [12, 24, 30000, -30000])),
        (Type(TypeKind.INT32), _vals(ValueKind.INT32, [12, 24, 900000, -900000])),
        (Type(TypeKind.INT64), _vals(ValueKind.INT64, [12, 24, 9000000000, -9000000000])),
        (Type(TypeKind.INT128), _vals(ValueKind.INT128, [12, 24, 9000000000, BIG, -BIG])),
        (Type(TypeKind.INT256), _vals(ValueKind.INT256, [0, SEVENS])),
        (
            Type(TypeKind.DECIMAL32, size=5),
            _vals(ValueKind.DECIMAL32, [12, 24, 900000, -900000], scale=5),
        ),
        (
            Type(TypeKind.DECIMAL64, size=5),
            _vals(ValueKind.DECIMAL64, [12, 24, 9000000000, -9000000000], scale=5),
        ),
        (
            Type(TypeKind.DECIMAL128, size=5),
            _vals(ValueKind.DECIMAL128, [12, 24, 9000000000, BIG, -BIG], scale=5),
        ),
        (Type(TypeKind.DECIMAL256, size=5), _vals(ValueKind.DECIMAL256, [0, SEVENS], scale=5)),
        (
            Type(TypeKind.UUID),
            _vals(ValueKind.UUID, [uuid.UUID(int=0), uuid.UUID(int=1), uuid.UUID(int=456345634563456)]),
        ),
        (Type(TypeKind.DATE), _vals(ValueKind.DATE, [0, 3234, 45345])),
        (
            Type(TypeKind.DATETIME),
            _vals(ValueKind.DATETIME, [0, 323463434, 45345345], tz="UTC"),
        ),
        (
            Type(TypeKind.DATETIME64, size=3),
            _vals(ValueKind.DATETIME64, [0, 32346345634, 4534564345], scale=3, tz="UTC"),
        ),
        (
            Type(TypeKind.IPV4),
            _vals(ValueKind.IPV4, [ipaddress.IPv4Address("5.6.7.8")]),
        ),
        (
            Type(TypeKind.IPV6),
            _vals(ValueKind.IPV6, [ipaddress.IPv6Address("ff26::c5")]),
        ),
        (
            Type(TypeKind.ENUM8, variants=(("a", 1), ("b", -2))),
            _vals(ValueKind.ENUM8, [1, -2]),
        ),
        (Type(TypeKind.ENUM16, variants=(("a", 1000),)), _vals(ValueKind.ENUM16, [1000])),
    ],
)
def test_sized_roundtrip(type_, values):
    assert _roundtrip(type_, values) == values


@pytest.mark.parametrize(
    "kind, vkind",
    [(TypeKind.FLOAT32, ValueKind.FLOAT32), (TypeKind.FLOAT64, ValueKind.FLOAT64)],
)
def test_float_roundtrip(kind, vkind):
    items = [1.0, 0.0, 100.0, 100000.0, 1000000.0, -1000000.0, math.nan, math.inf, -math.inf]
    values = _vals(vkind, items)
    out = _roundtrip(Type(kind), values)
    assert out == values
    assert math.isnan(out[6].data)


@pytest.mark.parametrize(
    "kind, width",
    [
        (TypeKind.INT8, 1),
        (TypeKind.UINT16, 2),
        (TypeKind.FLOAT32, 4),
        (TypeKind.UINT64, 8),
        (TypeKind.INT128, 16),
        (TypeKind.UINT256, 32),
        (TypeKind.UUID, 16),
        (TypeKind.DATE, 2),
        (TypeKind.IPV6, 16),
    ],
)
def test_sized_width(kind, width):
    type_ = Type(kind)
    writer = Writer()
    write_sized(type_, [type_.default_value()] * 3, writer)
    assert len(writer.getvalue()) == width * 3


def test_uint16_little_endian():
    writer = Writer()
    write_sized(Type(TypeKind.UINT16), [Value(ValueKind.UINT16, 0x0102)], writer)
    assert writer.getvalue() == b"\x02\x01"


def test_int256_little_endian():
    writer = Writer()
    write_sized(Type(TypeKind.INT256), [Value(ValueKind.INT256, 1)], writer)
    assert writer.getvalue() == b"\x01" + b"\x00" * 31


def test_uuid_high_half_first():
    writer = Writer()
    write_sized(Type(TypeKind.UUID), [Value(ValueKind.UUID, uuid.UUID(int=1))], writer)
    assert writer.getvalue() == b"\x00" * 8 + b"\x01" + b"\x00" * 7


def test_null_written_as_zero():
    type_ = Type(TypeKind.UINT32)
    writer = Writer()
    write_sized(type_, [Value.null()], writer)
    assert writer.getvalue() == b"\x00" * 4
    assert read_sized(type_, Reader(writer.getvalue()), 1) == [type_.default_value()]


def test_sized_rejects_wrong_type_and_value():
    with pytest.raises(ValueError):
        read_sized(Type(TypeKind.STRING), Reader(b"\x00"), 1)
    with pytest.raises(ValueError):
        write_sized(Type(TypeKind.UINT8), [Value.string("x")], Writer())


def test_sized_rejects_out_of_range():
    with pytest.raises(ValueError):
        write_sized(Type(TypeKind.UINT8), [Value(ValueKind.UINT8, 256)], Writer())
    with pytest.raises(ValueError):
        write_sized(Type(TypeKind.INT128), [Value(ValueKind.INT128, 1 << 130)], Writer())


def test_short_read_raises():
    with pytest.raises(DeserializeError):
        read_sized(Type(TypeKind.UINT32), Reader(b"\x01\x02"), 1)


def test_reader_over_stream():
    writer = Writer()
    writer.write_u64(9000000000)
    writer.write_u8(30)
    reader = Reader(io.BytesIO(writer.getvalue()))
    assert reader.read_u64() == 9000000000
    assert reader.read_u8() == 30


def test_varint_wire_bytes():
    writer = Writer()
    writer.write_varint(300)
    assert writer.getvalue() == b"\xac\x02"


@pytest.mark.parametrize("number", [0, 1, 127, 128, 300, 9000000000, (1 << 64) - 1])
def test_varint_roundtrip(number):
    writer = Writer()
    writer.write_varint(number)
    assert Reader(writer.getvalue()).read_varint() == number


def test_varint_errors():
    with pytest.raises(ValueError):
        Writer().write_varint(-1)
    with pytest.raises(ValueError):
        Writer().write_varint(1 << 64)
    with pytest.raises(DeserializeError):
        Reader(b"\xff" * 11).read_varint()


def test_write_string_prefixes_length():
    writer = Writer()
    writer.write_string(b"test")
    assert writer.getvalue() == b"\x04test"
    assert Reader(writer.getvalue()).read_string() == b"test"


STRINGS = [Value.string(s) for s in ["", "t", "test", "TESTST", "日本語"]]


def test_string_roundtrip():
    out = _roundtrip(Type(TypeKind.STRING), STRINGS, read_strings, write_strings)
    assert out == STRINGS


def test_fixed_string_roundtrip():
    out = _roundtrip(Type(TypeKind.FIXED_STRING, size=32), STRINGS, read_strings, write_strings)
    assert out == STRINGS


def test_fixed_string_truncates():
    out = _roundtrip(Type(TypeKind.FIXED_STRING, size=3), STRINGS, read_strings, write_strings)
    assert out != STRINGS
    assert out[3] == Value.string("TES")
    assert out[4] == Value.string("日本語".encode("utf-8")[:3])


def test_fixed_string_padding():
    writer = Writer()
    write_strings(Type(TypeKind.FIXED_STRING, size=6), [Value.string("ab")], writer)
    assert writer.getvalue() == b"ab" + b"\x00" * 4


def test_fixed_string_stops_at_zero():
    out = read_strings(Type(TypeKind.FIXED_STRING, size=4), Reader(b"ab\x00c"), 1)
    assert out == [Value.string(b"ab")]


def test_byte_array_written_as_string():
    raw = Value(ValueKind.ARRAY, (Value(ValueKind.UINT8, 66), Value(ValueKind.INT8, -1)))
    writer = Writer()
    write_strings(Type(TypeKind.STRING), [raw], writer)
    out = read_strings(Type(TypeKind.STRING), Reader(writer.getvalue()), 1)
    assert out == [Value.string(b"B\xff")]


def test_null_string_written_empty():
    out = _roundtrip(Type(TypeKind.STRING), [Value.null()], read_strings, write_strings)
    assert out == [Value.string("")]


def test_strings_reject_wrong_type_and_value():
    with pytest.raises(ValueError):
        read_strings(Type(TypeKind.UINT8), Reader(b"\x00"), 1)
    with pytest.raises(ValueError):
        write_strings(Type(TypeKind.STRING), [Value(ValueKind.UINT8, 1)], Writer())
    bad = Value(ValueKind.ARRAY, (Value(ValueKind.UINT16, 1),))
    with pytest.raises(ValueError):
        write_strings(Type(TypeKind.STRING), [bad], Writer())