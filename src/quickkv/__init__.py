"""
QuickKV - Embedded single-file key-value store

A small, thread-safe storage engine that persists typed values under string
keys to an append-only binary file and mirrors them in memory for fast reads.
"""

__version__ = "0.1.0"

from quickkv.application import QuickClient, TypedClient
from quickkv.domain.exceptions import (
    CodecError,
    QuickKVError,
    StorageIOError,
    TypeMismatchError,
)
from quickkv.domain.value_objects import (
    BooleanValue,
    BytesValue,
    FloatValue,
    HashValue,
    IntegerValue,
    KeyValue,
    NullValue,
    SequenceValue,
    Storable,
    StringValue,
    Value,
    ValueType,
)
from quickkv.infrastructure.config import QuickConfiguration

__all__ = [
    "QuickClient",
    "TypedClient",
    "QuickConfiguration",
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
    "KeyValue",
    "Storable",
    # Errors
    "QuickKVError",
    "StorageIOError",
    "CodecError",
    "TypeMismatchError",
]
