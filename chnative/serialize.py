"""Encoding of whole columns of the native format."""

from __future__ import annotations

import struct
from typing import Iterable, Sequence

from .scalars import Writer, write_sized, write_strings
from .types import (
    HAS_ADDITIONAL_KEYS_BIT,
    LOW_CARDINALITY_VERSION,
    TUINT8,
    TUINT16,
    TUINT32,
    TUINT64,
    Type,
    TypeKind,
    Value,
    ValueKind,
)

_SIZED_KINDS = frozenset(
    {
        TypeKind.INT8,
        TypeKind.INT16,
        TypeKind.INT32,
        TypeKind.INT64,
        TypeKind.INT128,
        TypeKind.INT256,
        TypeKind.UINT8,
        TypeKind.UINT16,
        TypeKind.UINT32,
        TypeKind.UINT64,
        TypeKind.UINT128,
        TypeKind.UINT256,
        TypeKind.FLOAT32,
        TypeKind.FLOAT64,
        TypeKind.DECIMAL32,
        TypeKind.DECIMAL64,
        TypeKind.DECIMAL128,
        TypeKind.DECIMAL256,
        TypeKind.UUID,
        TypeKind.DATE,
        TypeKind.DATETIME,
        TypeKind.DATETIME64,
        TypeKind.IPV4,
        TypeKind.IPV6,
        TypeKind.ENUM8,
        TypeKind.ENUM16,
    }
)

# Each geo array kind: its own value kind, the type of its items and their value kind.
_GEO_ARRAYS = {
    TypeKind.RING: (ValueKind.RING, TypeKind.POINT, ValueKind.POINT),
    TypeKind.POLYGON: (ValueKind.POLYGON, TypeKind.RING, ValueKind.RING),
    TypeKind.MULTIPOLYGON: (ValueKind.MULTIPOLYGON, TypeKind.POLYGON, ValueKind.POLYGON),
}

_FLOAT64 = Type(TypeKind.FLOAT64)

_U8_MAX = (1 << 8) - 1
_U16_MAX = (1 << 16) - 1
_U32_MAX = (1 << 32) - 1


def write_prefix(type_: Type, writer: Writer) -> None:
    """Write the per-column prefix that precedes the data of ``type_``."""
    kind = type_.kind
    if kind is TypeKind.LOW_CARDINALITY:
        writer.write_u64(LOW_CARDINALITY_VERSION)
    elif kind in (TypeKind.ARRAY, TypeKind.TUPLE, TypeKind.NULLABLE, TypeKind.MAP):
        for child in type_.children:
            write_prefix(child, writer)
    elif kind in _GEO_ARRAYS:
        write_prefix(Type(_GEO_ARRAYS[kind][1]), writer)
    elif kind is TypeKind.POINT:
        write_prefix(_FLOAT64, writer)
        write_prefix(_FLOAT64, writer)


def write_column(type_: Type, values: Iterable[Value], writer: Writer) -> None:
    """Write the values of one column of ``type_``."""
    values = list(values)
    kind = type_.kind
    if kind in _SIZED_KINDS:
        write_sized(type_, values, writer)
    elif kind in (TypeKind.STRING, TypeKind.FIXED_STRING):
        write_strings(type_, values, writer)
    elif kind is TypeKind.ARRAY:
        groups = [_items(value, ValueKind.ARRAY) for value in values]
        _write_groups(type_.children[0], groups, writer)
    elif kind in _GEO_ARRAYS:
        own_kind, item_type, item_kind = _GEO_ARRAYS[kind]
        groups = [
            [Value(item_kind, data) for data in _items(value, own_kind)]
            for value in values
        ]
        _write_groups(Type(item_type), groups, writer)
    elif kind is TypeKind.POINT:
        points = [_items(value, ValueKind.POINT) for value in values]
        for axis in (0, 1):
            write_column(
                _FLOAT64,
                [Value(ValueKind.FLOAT64, point[axis]) for point in points],
                writer,
            )
    elif kind is TypeKind.TUPLE:
        _write_tuple(type_, values, writer)
    elif kind is TypeKind.NULLABLE:
        writer.write(bytes(value.kind is ValueKind.NULL for value in values))
        write_column(type_.children[0], values, writer)
    elif kind is TypeKind.MAP:
        _write_map(type_, values, writer)
    elif kind is TypeKind.LOW_CARDINALITY:
        _write_low_cardinality(type_, values, writer)
    else:
        raise ValueError(f"cannot write a column of type {type_}")


def encode_column(type_: Type, values: Iterable[Value]) -> bytes:
    """Encode the prefix and the values of a column of ``type_``."""
    writer = Writer()
    write_prefix(type_, writer)
    write_column(type_, values, writer)
    return writer.getvalue()


def _items(value: Value, expected: ValueKind) -> tuple:
    if value.kind is not expected:
        raise ValueError(f"expected a {expected.name} value, got {value!r}")
    return value.data


def _write_groups(inner: Type, groups: Sequence[Sequence[Value]], writer: Writer) -> None:
    offset = 0
    for group in groups:
        offset += len(group)
        writer.write_u64(offset)
    write_column(inner, [item for group in groups for item in group], writer)


def _write_tuple(type_: Type, values: list[Value], writer: Writer) -> None:
    inner_types = type_.children
    columns: list[list[Value]] = [[] for _ in inner_types]
    for value in values:
        items = _items(value, ValueKind.TUPLE)
        if len(items) != len(inner_types):
            raise ValueError(
                f"tuple of {len(items)} items does not fit {type_}"
            )
        for column, item in zip(columns, items):
            column.append(item)
    for inner_type, column in zip(inner_types, columns):
        write_column(inner_type, column, writer)


def _write_map(type_: Type, values: list[Value], writer: Writer) -> None:
    key_type, value_type = type_.unwrap_map()
    all_keys: list[Value] = []
    all_values: list[Value] = []
    for value in values:
        keys, items = _items(value, ValueKind.MAP)
        if len(keys) != len(items):
            raise ValueError(
                f"map has {len(keys)} keys but {len(items)} values"
            )
        all_keys.extend(keys)
        all_values.extend(items)
        writer.write_u64(len(all_keys))
    write_column(key_type, all_keys, writer)
    write_column(value_type, all_values, writer)


def _index_layout(count: int) -> tuple[int, struct.Struct]:
    if count > _U32_MAX:
        return TUINT64, struct.Struct("<Q")
    if count > _U16_MAX:
        return TUINT32, struct.Struct("<I")
    if count > _U8_MAX:
        return TUINT16, struct.Struct("<H")
    return TUINT8, struct.Struct("<B")


def _write_low_cardinality(type_: Type, values: list[Value], writer: Writer) -> None:
    if not values:
        return
    inner_full = type_.children[0]
    inner = inner_full.strip_null()

    keys: dict[Value, int] = {}
    if inner_full.is_nullable():
        keys[Value.null()] = 0
    for value in values:
        keys.setdefault(value, len(keys))

    index_code, packer = _index_layout(len(keys))
    writer.write_u64(index_code | HAS_ADDITIONAL_KEYS_BIT)
    writer.write_u64(len(keys))
    write_column(inner, list(keys), writer)
    writer.write_u64(len(values))
    for value in values:
        writer.write(packer.pack(keys[value]))