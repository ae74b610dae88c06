"""Checks that column types are well formed and that values fit them."""

from __future__ import annotations

from .types import Type, TypeKind, TypeParseError, Value, ValueKind

_DECIMAL_LIMITS = {
    TypeKind.DECIMAL32: (9, "Decimal32"),
    TypeKind.DECIMAL64: (18, "Decimal64/DateTime64"),
    TypeKind.DATETIME64: (18, "Decimal64/DateTime64"),
    TypeKind.DECIMAL128: (38, "Decimal128"),
    TypeKind.DECIMAL256: (76, "Decimal256"),
}

_INTEGER_KINDS = frozenset(
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
    }
)

_LOW_CARDINALITY_INNER = _INTEGER_KINDS | {
    TypeKind.STRING,
    TypeKind.FIXED_STRING,
    TypeKind.DATE,
    TypeKind.DATETIME,
    TypeKind.IPV4,
    TypeKind.IPV6,
}

_NOT_NULLABLE = frozenset(
    {
        TypeKind.ARRAY,
        TypeKind.MAP,
        TypeKind.LOW_CARDINALITY,
        TypeKind.TUPLE,
        TypeKind.NULLABLE,
    }
)

_MAP_KEY_KINDS = _INTEGER_KINDS | {
    TypeKind.STRING,
    TypeKind.FIXED_STRING,
    TypeKind.LOW_CARDINALITY,
    TypeKind.UUID,
    TypeKind.DATE,
    TypeKind.DATETIME,
    TypeKind.DATETIME64,
    TypeKind.ENUM8,
    TypeKind.ENUM16,
}

# Type kinds that accept a value of exactly one matching kind.
_MATCHING_KINDS = {
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
    TypeKind.UUID: ValueKind.UUID,
    TypeKind.DATE: ValueKind.DATE,
    TypeKind.IPV4: ValueKind.IPV4,
    TypeKind.IPV6: ValueKind.IPV6,
    TypeKind.POINT: ValueKind.POINT,
    TypeKind.RING: ValueKind.RING,
    TypeKind.POLYGON: ValueKind.POLYGON,
    TypeKind.MULTIPOLYGON: ValueKind.MULTIPOLYGON,
}

_DECIMAL_VALUES = {
    TypeKind.DECIMAL32: ValueKind.DECIMAL32,
    TypeKind.DECIMAL64: ValueKind.DECIMAL64,
    TypeKind.DECIMAL128: ValueKind.DECIMAL128,
    TypeKind.DECIMAL256: ValueKind.DECIMAL256,
}

_ENUM_VALUES = {
    TypeKind.ENUM8: ValueKind.ENUM8,
    TypeKind.ENUM16: ValueKind.ENUM16,
}


def validate(type_: Type) -> Type:
    """Check that ``type_`` is a legal column type and return it.

    Raises TypeParseError when a precision is out of range or a composite
    type holds an inner type it may not hold.
    """
    kind = type_.kind
    if kind in _DECIMAL_LIMITS:
        limit, name = _DECIMAL_LIMITS[kind]
        if type_.size == 0 or type_.size > limit:
            raise TypeParseError(
                f"precision out of bounds for {name}({type_.size}) "
                f"must be in range (1..={limit})"
            )
    elif kind is TypeKind.LOW_CARDINALITY:
        inner = type_.children[0]
        if inner.strip_null().kind not in _LOW_CARDINALITY_INNER:
            raise TypeParseError(
                f"illegal type '{inner}' in LowCardinality, not allowed"
            )
        validate(inner)
    elif kind in (TypeKind.ARRAY, TypeKind.TUPLE):
        for child in type_.children:
            validate(child)
    elif kind is TypeKind.NULLABLE:
        inner = type_.children[0]
        if inner.kind in _NOT_NULLABLE:
            raise TypeParseError(
                f"nullable cannot contain composite type '{inner}'"
            )
        validate(inner)
    elif kind is TypeKind.MAP:
        key, value = type_.children
        if key.kind not in _MAP_KEY_KINDS:
            raise TypeParseError(
                "key in map must be String, Integer, LowCardinality, FixedString, "
                "UUID, Date, DateTime, Date32, Enum"
            )
        validate(key)
        validate(value)
    return type_


def validate_value(type_: Type, value: Value) -> Value:
    """Check that ``type_`` is legal and ``value`` may be stored in it.

    Returns the value; raises TypeParseError otherwise.
    """
    validate(type_)
    if not value_fits(type_, value):
        raise TypeParseError(f"could not assign value '{value!r}' to type '{type_}'")
    return value


def _is_byte(item: Value) -> bool:
    return item.kind in (ValueKind.UINT8, ValueKind.INT8)


def value_fits(type_: Type, value: Value) -> bool:
    """Whether ``value`` can be stored in a column of ``type_``."""
    kind = type_.kind
    vkind = value.kind

    if kind is TypeKind.INT8:
        # UInt8 is accepted for compatibility with older boolean columns.
        return vkind in (ValueKind.INT8, ValueKind.UINT8)
    if kind in _MATCHING_KINDS:
        return vkind is _MATCHING_KINDS[kind]
    if kind in _DECIMAL_VALUES:
        return vkind is _DECIMAL_VALUES[kind] and type_.size == value.scale
    if kind in (TypeKind.STRING, TypeKind.FIXED_STRING):
        if vkind is ValueKind.ARRAY:
            return all(_is_byte(item) for item in value.data)
        return vkind is ValueKind.STRING
    if kind is TypeKind.DATETIME:
        return vkind is ValueKind.DATETIME and type_.tz == value.tz
    if kind is TypeKind.DATETIME64:
        return (
            vkind is ValueKind.DATETIME64
            and type_.tz == value.tz
            and type_.size == value.scale
        )
    if kind in _ENUM_VALUES:
        return vkind is _ENUM_VALUES[kind] and any(
            number == value.data for _, number in type_.variants
        )
    if kind is TypeKind.LOW_CARDINALITY:
        return value_fits(type_.children[0], value)
    if kind is TypeKind.ARRAY:
        inner = type_.children[0]
        return vkind is ValueKind.ARRAY and all(
            value_fits(inner, item) for item in value.data
        )
    if kind is TypeKind.TUPLE:
        return vkind is ValueKind.TUPLE and all(
            value_fits(child, item) for child, item in zip(type_.children, value.data)
        )
    if kind is TypeKind.NULLABLE:
        return vkind is ValueKind.NULL or value_fits(type_.children[0], value)
    if kind is TypeKind.MAP:
        if vkind is not ValueKind.MAP:
            return False
        key_type, value_type = type_.children
        keys, values = value.data
        return all(value_fits(key_type, k) for k in keys) and all(
            value_fits(value_type, v) for v in values
        )
    return False