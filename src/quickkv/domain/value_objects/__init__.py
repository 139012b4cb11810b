"""Value objects for the key-value store domain.

Exports:
    Values:
        - Value: Base class of the tagged value union
        - ValueType: Variant discriminant (one byte on disk)
        - StringValue, IntegerValue, FloatValue, BooleanValue, BytesValue,
          HashValue, SequenceValue, NullValue: The variants

    Conversion:
        - ValueAdapter: Explicit to/from ``Value`` conversion interface
        - Storable: Protocol for user types with their own conversion
        - KeyValue: Key paired with a typed value for batch operations
        - adapter_for, to_value, from_value, to_native: Conversion helpers

    Codec:
        - ByteReader: Bounds-checked decode cursor
"""

from quickkv.domain.value_objects.byte_reader import ByteReader, pack_sized, pack_text
from quickkv.domain.value_objects.conversion import (
    KeyValue,
    Storable,
    ValueAdapter,
    adapter_for,
    from_value,
    to_native,
    to_value,
)
from quickkv.domain.value_objects.value import (
    BooleanValue,
    BytesValue,
    FloatValue,
    HashValue,
    IntegerValue,
    NullValue,
    SequenceValue,
    StringValue,
    Value,
    ValueType,
)

__all__ = [
    # Values
    "Value",
    "ValueType",
    "StringValue",
    "IntegerValue",
    "FloatValue",
    "BooleanValue",
    "BytesValue",
    "HashValue",
    "SequenceValue",
    "NullValue",
    # Conversion
    "ValueAdapter",
    "Storable",
    "KeyValue",
    "adapter_for",
    "to_value",
    "from_value",
    "to_native",
    # Codec
    "ByteReader",
    "pack_sized",
    "pack_text",
]
