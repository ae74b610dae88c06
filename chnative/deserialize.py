"""Decoding of whole columns of the native format."""

from __future__ import annotations

from typing import Sequence

from .scalars import Reader, read_sized, read_strings
from .types import (
    HAS_ADDITIONAL_KEYS_BIT,
    LOW_CARDINALITY_VERSION,
    NEED_GLOBAL_DICTIONARY_BIT,
    NEED_UPDATE_DICTIONARY_BIT,
    TUINT8,
    TUINT16,
    TUINT32,
    TUINT64,
    DeserializeError,
    ProtocolError,
    Type,
    TypeKind,
    Value,
    ValueKind,
)

MAX_ROWS = 1 << 30
"""Largest number of rows a single column read may ask for."""

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

# Each geo array kind and the kind of its items.
_GEO_ITEMS = {
    TypeKind.RING: TypeKind.POINT,
    TypeKind.POLYGON: TypeKind.RING,
    TypeKind.MULTIPOLYGON: TypeKind.POLYGON,
}

_GEO_VALUES = {
    TypeKind.RING: ValueKind.RING,
    TypeKind.POLYGON: ValueKind.POLYGON,
    TypeKind.MULTIPOLYGON: ValueKind.MULTIPOLYGON,
}

_INDEX_TYPES = {
    TUINT8: Type(TypeKind.UINT8),
    TUINT16: Type(TypeKind.UINT16),
    TUINT32: Type(TypeKind.UINT32),
    TUINT64: Type(TypeKind.UINT64),
}

_FLOAT64 = Type(TypeKind.FLOAT64)


def read_prefix(type_: Type, reader: Reader) -> None:
    """Read the per-column prefix that precedes the data of ``type_``."""
    kind = type_.kind
    if kind is TypeKind.LOW_CARDINALITY:
        version = reader.read_u64()
        if version != LOW_CARDINALITY_VERSION:
            raise DeserializeError(
                f"LowCardinality: invalid low cardinality version: {version}"
            )
    elif kind in (TypeKind.ARRAY, TypeKind.TUPLE, TypeKind.NULLABLE, TypeKind.MAP):
        for child in type_.children:
            read_prefix(child, reader)
    elif kind in _GEO_ITEMS:
        read_prefix(Type(_GEO_ITEMS[kind]), reader)
    elif kind is TypeKind.POINT:
        read_prefix(_FLOAT64, reader)
        read_prefix(_FLOAT64, reader)


def read_column(type_: Type, reader: Reader, rows: int) -> list[Value]:
    """Read ``rows`` values of ``type_``."""
    if rows > MAX_ROWS:
        raise ProtocolError(
            f"deserialize response size too large. {rows} > {MAX_ROWS}"
        )
    kind = type_.kind
    if kind in _SIZED_KINDS:
        return read_sized(type_, reader, rows)
    if kind in (TypeKind.STRING, TypeKind.FIXED_STRING):
        return read_strings(type_, reader, rows)
    if kind is TypeKind.ARRAY:
        inner = read_column_groups(type_.children[0], reader, rows)
        return [Value(ValueKind.ARRAY, group) for group in inner]
    if kind in _GEO_ITEMS:
        groups = read_column_groups(Type(_GEO_ITEMS[kind]), reader, rows)
        vkind = _GEO_VALUES[kind]
        return [Value(vkind, tuple(item.data for item in group)) for group in groups]
    if kind is TypeKind.POINT:
        xs = read_column(_FLOAT64, reader, rows)
        ys = read_column(_FLOAT64, reader, rows)
        return [Value(ValueKind.POINT, (x.data, y.data)) for x, y in zip(xs, ys)]
    if kind is TypeKind.TUPLE:
        columns = [read_column(child, reader, rows) for child in type_.children]
        return [Value(ValueKind.TUPLE, items) for items in zip(*columns)] if columns else [
            Value(ValueKind.TUPLE, ()) for _ in range(rows)
        ]
    if kind is TypeKind.NULLABLE:
        return _read_nullable(type_, reader, rows)
    if kind is TypeKind.MAP:
        return _read_map(type_, reader, rows)
    if kind is TypeKind.LOW_CARDINALITY:
        return _read_low_cardinality(type_, reader, rows)
    raise ValueError(f"cannot read a column of type {type_}")


def decode_column(type_: Type, data: bytes, rows: int) -> list[Value]:
    """Decode a prefix and ``rows`` values of ``type_`` from ``data``."""
    reader = Reader(data)
    read_prefix(type_, reader)
    return read_column(type_, reader, rows)


def _read_offsets(reader: Reader, rows: int) -> list[int]:
    offsets = [reader.read_u64() for _ in range(rows)]
    previous = 0
    for offset in offsets:
        if offset < previous:
            raise DeserializeError(
                f"decreasing offset {offset} after {previous} in column"
            )
        previous = offset
    return offsets


def _split(items: Sequence[Value], offsets: list[int]) -> list[tuple[Value, ...]]:
    groups = []
    start = 0
    for offset in offsets:
        groups.append(tuple(items[start:offset]))
        start = offset
    return groups


def read_column_groups(inner: Type, reader: Reader, rows: int) -> list[tuple[Value, ...]]:
    """Read array offsets and items, returning the items of each row."""
    if rows == 0:
        return []
    offsets = _read_offsets(reader, rows)
    items = read_column(inner, reader, offsets[-1])
    return _split(items, offsets)


def _read_nullable(type_: Type, reader: Reader, rows: int) -> list[Value]:
    mask = reader.read_exact(rows)
    values = read_column(type_.strip_null(), reader, rows)
    return [Value.null() if flag else value for flag, value in zip(mask, values)]


def _read_map(type_: Type, reader: Reader, rows: int) -> list[Value]:
    if rows > MAX_ROWS:
        raise ProtocolError(
            f"read_n response size too large for map. {rows} > {MAX_ROWS}"
        )
    if rows == 0:
        return []
    key_type, value_type = type_.unwrap_map()
    offsets = _read_offsets(reader, rows)
    total = offsets[-1]
    keys = read_column(key_type, reader, total)
    values = read_column(value_type, reader, total)
    return [
        Value(ValueKind.MAP, (k, v))
        for k, v in zip(_split(keys, offsets), _split(values, offsets))
    ]


def _lookup(table: Sequence[Value], index: int, name: str, shown: int) -> Value:
    if 0 <= index < len(table):
        return table[index]
    raise DeserializeError(f"LowCardinality: illegal index {shown} in {name}")


def _read_low_cardinality(type_: Type, reader: Reader, rows: int) -> list[Value]:
    inner_full = type_.children[0]
    is_nullable = inner_full.is_nullable()
    inner = inner_full.strip_null()

    pending = 0
    limit = rows
    index_type = _INDEX_TYPES[TUINT8]
    global_dictionary: list[Value] | None = None
    additional_keys: list[Value] | None = None
    needs_global = False
    has_additional = False
    output: list[Value] = []

    while limit > 0:
        if pending == 0:
            flags = reader.read_u64()
            has_additional = bool(flags & HAS_ADDITIONAL_KEYS_BIT)
            needs_global = bool(flags & NEED_GLOBAL_DICTIONARY_BIT)
            needs_update = bool(flags & NEED_UPDATE_DICTIONARY_BIT)

            index_code = flags & 0xFF
            if index_code not in _INDEX_TYPES:
                raise DeserializeError(f"LowCardinality: bad index type: {index_code}")
            index_type = _INDEX_TYPES[index_code]

            if needs_global and (global_dictionary is None or needs_update):
                count = reader.read_u64()
                global_dictionary = read_column(inner, reader, count)
            if has_additional:
                count = reader.read_u64()
                additional_keys = read_column(inner, reader, count)
            pending = reader.read_u64()

        reading = min(limit, pending)
        entries = [entry.data for entry in read_column(index_type, reader, reading)]
        limit -= reading
        pending -= reading

        if has_additional and additional_keys is None:
            raise DeserializeError("LowCardinality: missing additional keys")
        if needs_global and global_dictionary is None:
            raise DeserializeError("LowCardinality: missing global dictionary")

        if has_additional and not needs_global:
            for entry in entries:
                if is_nullable and entry == 0:
                    output.append(Value.null())
                else:
                    output.append(
                        _lookup(additional_keys, entry, "additional_keys", entry)
                    )
        elif needs_global and not has_additional:
            output.extend(
                _lookup(global_dictionary, entry, "global_dictionary", entry)
                for entry in entries
            )
        elif needs_global and has_additional:
            extra = len(additional_keys)
            for entry in entries:
                if is_nullable and entry == 0:
                    output.append(Value.null())
                elif entry < extra:
                    output.append(additional_keys[entry])
                else:
                    output.append(
                        _lookup(
                            global_dictionary, entry - extra, "global_dictionary", entry
                        )
                    )
    return output