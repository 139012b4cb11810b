"""Tagged value types and their canonical binary encoding.

Every storable value is one variant of a closed tagged union. A value
encodes to ``[tag:1][payload]`` so that decoding can dispatch on the tag
without any external type information:

    Tag | Variant  | Payload
    ----|----------|------------------------------------------------
    0   | NULL     | (empty)
    1   | STRING   | [len:4][utf-8]
    2   | INTEGER  | [len:1][signed big-endian two's complement]
    3   | FLOAT    | [ieee754 double:8]
    4   | BOOLEAN  | [0|1:1]
    5   | BYTES    | [len:4][raw]
    6   | HASH     | [count:4] then ([len:4][key][len:4][value]) sorted by key
    7   | SEQUENCE | [element_tag:1][count:4] then each element fully encoded

Round-trip law: ``Value.from_bytes(v.to_bytes()) == v`` for every variant.

Accessors (``as_str``, ``as_hash``, ...) never coerce: asking a value for
a shape it does not hold raises ``TypeMismatchError``.
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, TypeVar

from quickkv.domain.exceptions import CodecError, TypeMismatchError
from quickkv.domain.value_objects.byte_reader import ByteReader, pack_sized, pack_text


# Widest integer payload: the length prefix is a single byte
MAX_INTEGER_BYTES = 255

V = TypeVar("V", bound="Value")


class ValueType(IntEnum):
    """Discriminant of the value union.

    Using IntEnum for efficient serialization (single byte).
    """

    NULL = 0
    STRING = 1
    INTEGER = 2
    FLOAT = 3
    BOOLEAN = 4
    BYTES = 5
    HASH = 6
    SEQUENCE = 7


class Value(ABC):
    """Base class for all storable values."""

    TAG_FORMAT: ClassVar[str] = ">B"

    @property
    @abstractmethod
    def value_type(self) -> ValueType:
        """Return the variant tag of this value."""
        ...

    @abstractmethod
    def payload_to_bytes(self) -> bytes:
        """Serialize the variant payload (without the tag)."""
        ...

    @classmethod
    @abstractmethod
    def payload_from_reader(cls, reader: ByteReader) -> Value:
        """Deserialize the variant payload (the tag is already consumed)."""
        ...

    def to_bytes(self) -> bytes:
        """Serialize the value as ``[tag][payload]``."""
        return struct.pack(self.TAG_FORMAT, self.value_type) + self.payload_to_bytes()

    @classmethod
    def read_from(cls, reader: ByteReader) -> Value:
        """Decode one value starting at the reader's position."""
        tag_offset = reader.position
        (tag,) = reader.unpack(cls.TAG_FORMAT)
        try:
            value_type = ValueType(tag)
        except ValueError:
            raise CodecError(f"Unknown value tag: {tag}", offset=tag_offset)
        return _VALUE_CLASSES[value_type].payload_from_reader(reader)

    @classmethod
    def from_bytes(cls, data: bytes, base_offset: int = 0) -> Value:
        """Decode a complete encoded value.

        Args:
            data: Exactly one encoded value.
            base_offset: Offset of ``data`` within the file, for error messages.

        Raises:
            CodecError: If the bytes are malformed or contain trailing data.
        """
        reader = ByteReader(data, base_offset=base_offset)
        value = cls.read_from(reader)
        if reader.remaining:
            raise CodecError(
                f"{reader.remaining} trailing bytes after value", offset=reader.position
            )
        return value

    # Fallible accessors

    def _expect(self, variant: type[V]) -> V:
        if not isinstance(self, variant):
            raise TypeMismatchError(
                expected=variant.TYPE.name, actual=self.value_type.name
            )
        return self

    def as_str(self) -> str:
        return self._expect(StringValue).data

    def as_int(self) -> int:
        return self._expect(IntegerValue).data

    def as_float(self) -> float:
        return self._expect(FloatValue).data

    def as_bool(self) -> bool:
        return self._expect(BooleanValue).data

    def as_bytes(self) -> bytes:
        return self._expect(BytesValue).data

    def as_hash(self) -> dict[str, str]:
        """Return a copy of the Hash payload."""
        return dict(self._expect(HashValue).data)

    def as_sequence(self) -> list[Value]:
        """Return the Sequence elements as a list."""
        return list(self._expect(SequenceValue).items)

    def is_null(self) -> bool:
        return self.value_type == ValueType.NULL


def _check_payload(variant: str, data: object, *kinds: type) -> None:
    # bool is an int subclass; it must never pass as an Integer or Float
    if isinstance(data, bool) and bool not in kinds:
        raise TypeMismatchError(expected=variant, actual="BOOLEAN")
    if not isinstance(data, kinds):
        raise TypeMismatchError(expected=variant, actual=type(data).__name__)


@dataclass(frozen=True, slots=True)
class NullValue(Value):
    """The absence of a payload (distinct from a missing key)."""

    TYPE: ClassVar[ValueType] = ValueType.NULL

    @property
    def value_type(self) -> ValueType:
        return ValueType.NULL

    def payload_to_bytes(self) -> bytes:
        return b""

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> NullValue:
        return cls()


@dataclass(frozen=True, slots=True)
class StringValue(Value):
    """UTF-8 text."""

    data: str
    TYPE: ClassVar[ValueType] = ValueType.STRING

    def __post_init__(self) -> None:
        _check_payload("STRING", self.data, str)

    @property
    def value_type(self) -> ValueType:
        return ValueType.STRING

    def payload_to_bytes(self) -> bytes:
        return pack_text(self.data)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> StringValue:
        return cls(reader.read_text())


@dataclass(frozen=True, slots=True)
class IntegerValue(Value):
    """Signed integer of arbitrary precision (up to 255 encoded bytes)."""

    data: int
    TYPE: ClassVar[ValueType] = ValueType.INTEGER

    def __post_init__(self) -> None:
        _check_payload("INTEGER", self.data, int)

    @property
    def value_type(self) -> ValueType:
        return ValueType.INTEGER

    def payload_to_bytes(self) -> bytes:
        # One extra bit for the sign, rounded up to whole bytes
        length = (self.data.bit_length() + 8) // 8
        if length > MAX_INTEGER_BYTES:
            raise CodecError(f"Integer needs {length} bytes, max is {MAX_INTEGER_BYTES}")
        return struct.pack(">B", length) + self.data.to_bytes(length, "big", signed=True)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> IntegerValue:
        length_offset = reader.position
        (length,) = reader.unpack(">B")
        if length == 0:
            raise CodecError("Integer payload has zero length", offset=length_offset)
        return cls(int.from_bytes(reader.read(length), "big", signed=True))


@dataclass(frozen=True, slots=True)
class FloatValue(Value):
    """IEEE 754 double.

    NaN payloads encode and decode bit-for-bit, but compare unequal as
    floats always do.
    """

    data: float
    TYPE: ClassVar[ValueType] = ValueType.FLOAT

    def __post_init__(self) -> None:
        _check_payload("FLOAT", self.data, float)

    @property
    def value_type(self) -> ValueType:
        return ValueType.FLOAT

    def payload_to_bytes(self) -> bytes:
        return struct.pack(">d", self.data)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> FloatValue:
        (data,) = reader.unpack(">d")
        return cls(data)


@dataclass(frozen=True, slots=True)
class BooleanValue(Value):
    """True or false, one byte on disk."""

    data: bool
    TYPE: ClassVar[ValueType] = ValueType.BOOLEAN

    def __post_init__(self) -> None:
        _check_payload("BOOLEAN", self.data, bool)

    @property
    def value_type(self) -> ValueType:
        return ValueType.BOOLEAN

    def payload_to_bytes(self) -> bytes:
        return b"\x01" if self.data else b"\x00"

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> BooleanValue:
        flag_offset = reader.position
        (flag,) = reader.unpack(">B")
        if flag not in (0, 1):
            raise CodecError(f"Invalid boolean byte: {flag}", offset=flag_offset)
        return cls(flag == 1)


@dataclass(frozen=True, slots=True)
class BytesValue(Value):
    """Opaque byte sequence."""

    data: bytes
    TYPE: ClassVar[ValueType] = ValueType.BYTES

    def __post_init__(self) -> None:
        _check_payload("BYTES", self.data, bytes, bytearray, memoryview)
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    @property
    def value_type(self) -> ValueType:
        return ValueType.BYTES

    def payload_to_bytes(self) -> bytes:
        return pack_sized(self.data)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> BytesValue:
        return cls(reader.read_sized())


@dataclass(frozen=True, slots=True)
class HashValue(Value):
    """Mapping of string keys to string values.

    Pairs are encoded sorted by key, so equal mappings always produce the
    same bytes regardless of insertion order.
    """

    data: Mapping[str, str] = field(default_factory=dict)
    TYPE: ClassVar[ValueType] = ValueType.HASH

    def __post_init__(self) -> None:
        _check_payload("HASH", self.data, Mapping)
        for key, item in self.data.items():
            _check_payload("HASH key", key, str)
            _check_payload("HASH value", item, str)
        object.__setattr__(self, "data", dict(self.data))

    @property
    def value_type(self) -> ValueType:
        return ValueType.HASH

    def payload_to_bytes(self) -> bytes:
        parts = [struct.pack(">I", len(self.data))]
        for key in sorted(self.data):
            parts.append(pack_text(key))
            parts.append(pack_text(self.data[key]))
        return b"".join(parts)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> HashValue:
        (count,) = reader.unpack(">I")
        data: dict[str, str] = {}
        for _ in range(count):
            key_offset = reader.position
            key = reader.read_text()
            if key in data:
                raise CodecError(f"Duplicate hash key: {key!r}", offset=key_offset)
            data[key] = reader.read_text()
        return cls(data)


@dataclass(frozen=True, slots=True)
class SequenceValue(Value):
    """Ordered list whose elements all share one variant.

    The element variant is stored even for an empty sequence, so an empty
    list of integers and an empty list of strings stay distinct.

    Example:
        >>> seq = SequenceValue(ValueType.INTEGER, [IntegerValue(1), IntegerValue(2)])
        >>> [item.as_int() for item in seq.items]
        [1, 2]
    """

    element_type: ValueType
    items: tuple[Value, ...] = ()
    TYPE: ClassVar[ValueType] = ValueType.SEQUENCE

    def __post_init__(self) -> None:
        object.__setattr__(self, "element_type", ValueType(self.element_type))
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, Value):
                raise TypeMismatchError(
                    expected=self.element_type.name, actual=type(item).__name__
                )
            if item.value_type != self.element_type:
                raise TypeMismatchError(
                    expected=self.element_type.name, actual=item.value_type.name
                )
        object.__setattr__(self, "items", items)

    @property
    def value_type(self) -> ValueType:
        return ValueType.SEQUENCE

    def payload_to_bytes(self) -> bytes:
        header = struct.pack(">BI", self.element_type, len(self.items))
        return header + b"".join(item.to_bytes() for item in self.items)

    @classmethod
    def payload_from_reader(cls, reader: ByteReader) -> SequenceValue:
        header_offset = reader.position
        element_tag, count = reader.unpack(">BI")
        try:
            element_type = ValueType(element_tag)
        except ValueError:
            raise CodecError(f"Unknown element tag: {element_tag}", offset=header_offset)

        items = []
        for _ in range(count):
            item_offset = reader.position
            item = Value.read_from(reader)
            if item.value_type != element_type:
                raise CodecError(
                    f"Sequence of {element_type.name} holds {item.value_type.name}",
                    offset=item_offset,
                )
            items.append(item)
        return cls(element_type, tuple(items))


_VALUE_CLASSES: dict[ValueType, type[Value]] = {
    ValueType.NULL: NullValue,
    ValueType.STRING: StringValue,
    ValueType.INTEGER: IntegerValue,
    ValueType.FLOAT: FloatValue,
    ValueType.BOOLEAN: BooleanValue,
    ValueType.BYTES: BytesValue,
    ValueType.HASH: HashValue,
    ValueType.SEQUENCE: SequenceValue,
}

