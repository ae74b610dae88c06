import ipaddress
import math
import uuid

import pytest

from chnative.types import (
    ClickhouseError,
    Type,
    TypeKind,
    TypeParseError,
    Value,
    ValueKind,
)


def t(kind, *children, **kwargs):
    return Type(kind, children, **kwargs)


@pytest.mark.parametrize(
    "name, kind",
    [
        ("Int8", TypeKind.INT8),
        ("UInt256", TypeKind.UINT256),
        ("Bool", TypeKind.UINT8),
        ("UUID", TypeKind.UUID),
        ("IPv6", TypeKind.IPV6),
        ("MultiPolygon", TypeKind.MULTIPOLYGON),
        ("Float64", TypeKind.FLOAT64),
    ],
)
def test_parse_simple_names(name, kind):
    assert Type.parse(name) == Type(kind)


def test_parse_plain_datetime_is_utc():
    assert Type.parse("DateTime") == Type(TypeKind.DATETIME, tz="UTC")


def test_parse_composites():
    parsed = Type.parse("Map(LowCardinality(String), Array(Nullable(UInt32)))")
    expected = t(
        TypeKind.MAP,
        t(TypeKind.LOW_CARDINALITY, t(TypeKind.STRING)),
        t(TypeKind.ARRAY, t(TypeKind.NULLABLE, t(TypeKind.UINT32))),
    )
    assert parsed == expected


def test_parse_tuple_nested():
    parsed = Type.parse("Tuple(UInt32, Tuple(UInt32, UInt16))")
    expected = t(
        TypeKind.TUPLE,
        t(TypeKind.UINT32),
        t(TypeKind.TUPLE, t(TypeKind.UINT32), t(TypeKind.UINT16)),
    )
    assert parsed == expected


@pytest.mark.parametrize(
    "precision, kind",
    [
        ("9", TypeKind.DECIMAL32),
        ("10", TypeKind.DECIMAL64),
        ("18", TypeKind.DECIMAL64),
        ("38", TypeKind.DECIMAL128),
        ("76", TypeKind.DECIMAL256),
    ],
)
def test_decimal_precision_selects_width(precision, kind):
    assert Type.parse(f"Decimal({precision}, 5)") == Type(kind, size=5)


def test_decimal_precision_too_large():
    with pytest.raises(TypeParseError, match="76"):
        Type.parse("Decimal(77, 2)")


def test_datetime64_forms():
    assert Type.parse("DateTime64(3)") == Type(TypeKind.DATETIME64, size=3, tz="UTC")
    assert Type.parse("DateTime64(6, 'UTC')") == Type(
        TypeKind.DATETIME64, size=6, tz="UTC"
    )


def test_display_datetime64_format():
    assert str(Type.parse("DateTime64(3)")) == "DateTime64(3,'UTC')"


@pytest.mark.parametrize(
    "text",
    [
        "Int8",
        "Decimal32(5)",
        "Decimal256(5)",
        "FixedString(16)",
        "DateTime('UTC')",
        "DateTime64(3,'UTC')",
        "Array(Array(UInt32))",
        "Tuple(UInt32,UInt16)",
        "Map(String,Nullable(String))",
        "LowCardinality(Nullable(String))",
        "IPv4",
        "UUID",
        "Polygon",
    ],
)
def test_display_roundtrip(text):
    parsed = Type.parse(text)
    assert str(parsed) == text
    assert Type.parse(str(parsed)) == parsed


def test_display_enum():
    enum_type = Type(TypeKind.ENUM8, variants=[("a", 1), ("b", 2)])
    assert str(enum_type) == "Enum8(a=1,b=2)"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "(UInt8)",
        "Foo",
        "Foo(UInt8)",
        "Array(UInt8, UInt8)",
        "Array(UInt8",
        "Map(String)",
        "Nullable()",
        "FixedString(x)",
        "FixedString(-1)",
        "Decimal(5)",
        "DateTime(UTC)",
        "DateTime('Nowhere/Atlantis')",
        "DateTime64(1, 2, 3)",
        "Enum8('a' = 1)",
        "Enum16('a' = 1)",
        "Nested(id UInt32)",
        "Tuple(UInt8, Bogus)",
    ],
)
def test_parse_errors(text):
    with pytest.raises(TypeParseError):
        Type.parse(text)


def test_parse_error_is_clickhouse_error():
    with pytest.raises(ClickhouseError):
        Type.parse("Array((UInt8)")


def test_unwrap_helpers():
    inner = Type(TypeKind.UINT32)
    array = t(TypeKind.ARRAY, inner)
    assert array.unwrap_array() == inner
    assert array.unarray() == inner
    assert inner.unarray() is None
    with pytest.raises(ValueError):
        inner.unwrap_array()

    key, value = Type(TypeKind.STRING), Type(TypeKind.UINT64)
    map_type = t(TypeKind.MAP, key, value)
    assert map_type.unwrap_map() == (key, value)
    assert map_type.unmap() == (key, value)
    assert array.unmap() is None
    with pytest.raises(ValueError):
        array.unwrap_map()

    tup = t(TypeKind.TUPLE, key, value)
    assert tup.unwrap_tuple() == (key, value)
    assert tup.untuple() == (key, value)
    assert map_type.untuple() is None
    with pytest.raises(ValueError):
        map_type.unwrap_tuple()


def test_null_and_low_cardinality_stripping():
    inner = Type(TypeKind.STRING)
    nullable = t(TypeKind.NULLABLE, inner)
    assert nullable.is_nullable()
    assert not inner.is_nullable()
    assert nullable.strip_null() == inner
    assert inner.strip_null() == inner
    assert nullable.unnull() == inner
    assert inner.unnull() is None
    low = t(TypeKind.LOW_CARDINALITY, nullable)
    assert low.strip_low_cardinality() == nullable
    assert nullable.strip_low_cardinality() == nullable


def test_default_values():
    assert Type(TypeKind.INT32).default_value() == Value(ValueKind.INT32, 0)
    assert Type(TypeKind.DECIMAL64, size=5).default_value() == Value(
        ValueKind.DECIMAL64, 0, scale=5
    )
    assert Type(TypeKind.FIXED_STRING, size=8).default_value() == Value.string("")
    assert Type(TypeKind.UUID).default_value() == Value(ValueKind.UUID, uuid.UUID(int=0))
    assert Type(TypeKind.IPV4).default_value() == Value(
        ValueKind.IPV4, ipaddress.IPv4Address(0)
    )
    assert t(TypeKind.NULLABLE, Type(TypeKind.STRING)).default_value() == Value.null()
    assert t(
        TypeKind.LOW_CARDINALITY, Type(TypeKind.UINT8)
    ).default_value() == Value(ValueKind.UINT8, 0)
    assert Type.parse("Tuple(UInt32, String)").default_value() == Value(
        ValueKind.TUPLE, [Value(ValueKind.UINT32, 0), Value.string(b"")]
    )
    assert Type.parse("Map(String, UInt8)").default_value() == Value(
        ValueKind.MAP, ([], [])
    )
    assert Type.parse("DateTime64(3)").default_value() == Value(
        ValueKind.DATETIME64, 0, scale=3, tz="UTC"
    )


def test_value_string_encodes_utf8():
    assert Value.string("日本語") == Value(ValueKind.STRING, "日本語".encode("utf-8"))
    assert Value.string("abc").data == b"abc"


def test_value_nan_equal_and_hashable():
    a = Value(ValueKind.FLOAT64, math.nan)
    b = Value(ValueKind.FLOAT64, float("nan"))
    assert a == b
    assert hash(a) == hash(b)
    assert Value(ValueKind.FLOAT64, 1.0) != Value(ValueKind.FLOAT32, 1.0)


def test_value_lists_become_tuples_and_hash():
    a = Value(ValueKind.ARRAY, [Value.string("x"), Value.null()])
    b = Value(ValueKind.ARRAY, (Value.string("x"), Value.null()))
    assert a == b
    assert len({a, b}) == 1
    point_a = Value(ValueKind.POINT, [1.0, 3.0])
    point_b = Value(ValueKind.POINT, (1.0, 3.0))
    assert point_a == point_b


def test_type_construction_checks_arity():
    with pytest.raises(ValueError):
        Type(TypeKind.ARRAY)
    with pytest.raises(ValueError):
        Type(TypeKind.MAP, (Type(TypeKind.STRING),))
    with pytest.raises(ValueError):
        Type(TypeKind.DECIMAL32)


def test_types_are_hashable():
    a = Type.parse("Array(Nullable(String))")
    b = Type.parse("Array( Nullable( String ) )")
    assert a == b
    assert len({a, b}) == 1