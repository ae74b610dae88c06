# chnative

`chnative` handles ClickHouse column types and reads and writes single
columns in the ClickHouse Native format. It provides:

- parsing type names into `Type` objects
- checking types and values against ClickHouse's rules
- turning lists of `Value` cells into bytes and back

The package needs Python 3.10 or later and has no runtime dependencies.

```
pip install chnative
```

## Types (`chnative.types`)

`Type.parse` turns a type name, spelled the way the server reports it, into a
`Type`. Calling `str()` on a `Type` gives back the canonical spelling.

```python
from chnative.types import Type

t = Type.parse("Map(LowCardinality(String), Nullable(UInt32))")
key_type, value_type = t.unwrap_map()
print(t)                          # Map(LowCardinality(String),Nullable(UInt32))
print(value_type.is_nullable())   # True
print(value_type.strip_null())    # UInt32
```

The parser understands these names:

- integers from `Int8` to `Int256` and from `UInt8` to `UInt256`. `Bool` is read as `UInt8`.
- `Float32` and `Float64`
- `Decimal(P, S)` and `Decimal32/64/128/256(S)`. For `Decimal(P, S)`, the precision decides the width, up to 76.
- `String` and `FixedString(N)`
- `UUID`
- `Date`
- `DateTime` and `DateTime('tz')`. With no zone given, the type uses `UTC`.
- `DateTime64(P)` and `DateTime64(P, 'tz')`. With no zone given, the type uses `UTC`.
- `IPv4` and `IPv6`
- `Point`, `Ring`, `Polygon` and `MultiPolygon`
- `LowCardinality`, `Array`, `Tuple`, `Nullable` and `Map`

A time zone other than `UTC` is checked with `zoneinfo`.

An unknown name, a malformed name or a wrong number of arguments raises
`TypeParseError`. The parser rejects `Enum8`, `Enum16` and `Nested`. You can
still build enum types directly, as `Type(TypeKind.ENUM8, variants=...)`.

A `Type` has these accessors:

| Accessor | Result |
| --- | --- |
| `unwrap_array`, `unwrap_map`, `unwrap_tuple` | The inner type or types. They raise `ValueError` when the type is a different kind. |
| `unarray`, `unmap`, `untuple`, `unnull` | The inner type or types, or `None` when the type is a different kind. |
| `strip_null`, `strip_low_cardinality` | The type with one `Nullable` or `LowCardinality` wrapper removed. |
| `is_nullable` | Whether the type is `Nullable`. |
| `default_value` | The zero value of the type. For `Nullable` this is Null. |

## Values

A cell is a `Value`. It has these fields:

- `kind`: a `ValueKind`
- `data`: the payload
- `scale`: the decimal scale, or the `DateTime64` precision
- `tz`: the time zone

There are two shortcuts:

- `Value.string(text)` builds a String cell from `str` or `bytes`. A `str` is encoded as UTF-8.
- `Value.null()` builds Null.

Values are frozen and hashable. Floats compare by their bit pattern, so a NaN
cell equals itself.

## Validation (`chnative.validate`)

`validate(type_)` checks the structural rules and returns the type. It checks:

- decimal and `DateTime64` precision bounds
- which types may appear inside `LowCardinality` and inside `Nullable`
- which types may be map keys

`validate_value(type_, value)` also checks that the value can be stored in the
type, and returns the value. Both raise `TypeParseError` when a check fails.

`value_fits(type_, value)` gives the same answer as the value check, as a
boolean instead of an exception.

## Encoding and decoding columns

```python
from chnative.types import Type, Value
from chnative.serialize import encode_column
from chnative.deserialize import decode_column

column_type = Type.parse("LowCardinality(Nullable(String))")
values = [Value.string("abc"), Value.null(), Value.string("abc")]

data = encode_column(column_type, values)
assert decode_column(column_type, data, len(values)) == values
```

`encode_column` writes the column prefix followed by the values.
`decode_column` reads the same layout and needs the row count.

### Streaming

`chnative.scalars` provides two classes for working with a stream:

- `Writer` collects bytes.
- `Reader` reads from `bytes` or from a binary file object.

To write a column:

1. Call `serialize.write_prefix(type_, writer)`.
2. Call `serialize.write_column(type_, values, writer)`.
3. Call `writer.getvalue()` to get the bytes.

To read a column, call `deserialize.read_prefix(type_, reader)` and then
`deserialize.read_column(type_, reader, rows)`.

### Lower-level functions

`Reader` and `Writer` also have methods for single primitives:

- `read_u8` / `write_u8`
- `read_u64` / `write_u64`
- `read_varint` / `write_varint` (LEB128)
- `read_string` / `write_string` (a length-prefixed byte string)

These functions work on fixed-size and string columns:

- `read_sized`
- `read_strings`
- `write_sized`
- `write_strings`

When any of the write functions meets a Null, it writes the type's zero value
in its place. A `FixedString` value is cut to the fixed length or padded with
zero bytes.

### Errors

These errors can occur:

- **`DeserializeError`**: the data ends early, or is malformed in another way, such as a bad LowCardinality version, an index out of range, or decreasing offsets.
- **`ProtocolError`**: a read asks for more than `deserialize.MAX_ROWS` rows.
- **`ValueError`**: a value cannot be encoded as the requested type.

`DeserializeError`, `ProtocolError` and `TypeParseError` derive from
`ClickhouseError`.

## What it does not do

This package does not provide a client. It has:

- no connections or queries
- no server protocol packets
- no block headers with column names
- no compression

It reads and writes the bytes of one column at a time. The caller must know
the column type and the row count.

## Running the tests

```
pip install -e .[test]
pytest
```