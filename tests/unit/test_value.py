"""Unit tests for the value type system."""

from __future__ import annotations

import math
import struct

import pytest

from quickkv.domain.exceptions import CodecError, TypeMismatchError
from quickkv.domain.value_objects import (
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


SAMPLE_VALUES = [
    NullValue(),
    StringValue(""),
    StringValue("hello"),
    StringValue("héllo wörld ✓"),
    IntegerValue(0),
    IntegerValue(-1),
    IntegerValue(127),
    IntegerValue(128),
    IntegerValue(-(2**63)),
    IntegerValue(2**200),
    FloatValue(0.0),
    FloatValue(-2.5),
    FloatValue(math.inf),
    BooleanValue(True),
    BooleanValue(False),
    BytesValue(b""),
    BytesValue(b"\x00\xff\x10"),
    HashValue({}),
    HashValue({"name": "Alice", "role": "admin"}),
    SequenceValue(ValueType.INTEGER, (IntegerValue(1), IntegerValue(2))),
    SequenceValue(ValueType.STRING),
    SequenceValue(
        ValueType.SEQUENCE,
        (SequenceValue(ValueType.BOOLEAN, (BooleanValue(True),)),),
    ),
]


@pytest.mark.unit
class TestRoundTrip:
    """Every variant decodes back to what was encoded."""

    @pytest.mark.parametrize("value", SAMPLE_VALUES, ids=repr)
    def test_round_trip(self, value: Value) -> None:
        assert Value.from_bytes(value.to_bytes()) == value

    def test_nan_round_trips_bit_for_bit(self) -> None:
        encoded = FloatValue(math.nan).to_bytes()
        decoded = Value.from_bytes(encoded)
        assert math.isnan(decoded.as_float())
        assert decoded.to_bytes() == encoded


@pytest.mark.unit
class TestEncoding:
    """Tests for the exact byte layout."""

    def test_tag_is_first_byte(self) -> None:
        for value in SAMPLE_VALUES:
            assert value.to_bytes()[0] == value.value_type

    def test_string_layout(self) -> None:
        assert StringValue("hi").to_bytes() == b"\x01\x00\x00\x00\x02hi"

    def test_integer_layout(self) -> None:
        assert IntegerValue(1).to_bytes() == b"\x02\x01\x01"
        assert IntegerValue(-1).to_bytes() == b"\x02\x01\xff"
        assert IntegerValue(255).to_bytes() == b"\x02\x02\x00\xff"

    def test_float_layout(self) -> None:
        assert FloatValue(1.5).to_bytes() == b"\x03" + struct.pack(">d", 1.5)

    def test_boolean_layout(self) -> None:
        assert BooleanValue(True).to_bytes() == b"\x04\x01"
        assert BooleanValue(False).to_bytes() == b"\x04\x00"

    def test_null_layout(self) -> None:
        assert NullValue().to_bytes() == b"\x00"

    def test_hash_is_key_sorted(self) -> None:
        """Equal mappings encode identically whatever the insertion order."""
        first = HashValue({"b": "2", "a": "1"})
        second = HashValue({"a": "1", "b": "2"})
        assert first.to_bytes() == second.to_bytes()

    def test_empty_sequences_keep_element_type(self) -> None:
        ints = SequenceValue(ValueType.INTEGER)
        strings = SequenceValue(ValueType.STRING)
        assert ints.to_bytes() != strings.to_bytes()
        assert Value.from_bytes(ints.to_bytes()) == ints

    def test_integer_too_wide(self) -> None:
        with pytest.raises(CodecError):
            IntegerValue(2 ** (8 * 255)).to_bytes()


@pytest.mark.unit
class TestDecodeErrors:
    """Malformed input raises CodecError."""

    def test_empty_input(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"")

    def test_unknown_tag(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"\x63")

    def test_trailing_bytes(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(StringValue("x").to_bytes() + b"\x00")

    def test_truncated_string(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"\x01\x00\x00\x00\x05abc")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"\x01\x00\x00\x00\x01\xff")

    def test_invalid_boolean_byte(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"\x04\x02")

    def test_zero_length_integer(self) -> None:
        with pytest.raises(CodecError):
            Value.from_bytes(b"\x02\x00")

    def test_sequence_element_mismatch(self) -> None:
        # Declares INTEGER elements but holds a BOOLEAN
        data = b"\x07" + struct.pack(">BI", ValueType.INTEGER, 1) + BooleanValue(True).to_bytes()
        with pytest.raises(CodecError):
            Value.from_bytes(data)

    def test_duplicate_hash_key(self) -> None:
        pair = b"\x00\x00\x00\x01k\x00\x00\x00\x01v"
        data = b"\x06" + struct.pack(">I", 2) + pair + pair
        with pytest.raises(CodecError):
            Value.from_bytes(data)

    def test_codec_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Value.from_bytes(b"\x63")


@pytest.mark.unit
class TestAccessors:
    """Accessors return the payload or raise TypeMismatchError."""

    def test_matching_accessors(self) -> None:
        assert StringValue("a").as_str() == "a"
        assert IntegerValue(7).as_int() == 7
        assert FloatValue(0.5).as_float() == 0.5
        assert BooleanValue(True).as_bool() is True
        assert BytesValue(b"x").as_bytes() == b"x"
        assert HashValue({"k": "v"}).as_hash() == {"k": "v"}
        assert SequenceValue(ValueType.INTEGER, (IntegerValue(1),)).as_sequence() == [
            IntegerValue(1)
        ]
        assert NullValue().is_null()

    def test_hash_accessor_on_string(self) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            StringValue("not a hash").as_hash()
        assert exc_info.value.expected == "HASH"
        assert exc_info.value.actual == "STRING"

    def test_no_coercion_between_bool_and_int(self) -> None:
        with pytest.raises(TypeMismatchError):
            BooleanValue(True).as_int()
        with pytest.raises(TypeMismatchError):
            IntegerValue(1).as_bool()

    def test_as_hash_returns_copy(self) -> None:
        value = HashValue({"k": "v"})
        value.as_hash()["k"] = "changed"
        assert value.as_hash() == {"k": "v"}


@pytest.mark.unit
class TestConstruction:
    """Variants validate their payloads."""

    def test_bool_is_not_an_integer(self) -> None:
        with pytest.raises(TypeMismatchError):
            IntegerValue(True)

    def test_string_requires_str(self) -> None:
        with pytest.raises(TypeMismatchError):
            StringValue(5)  # type: ignore[arg-type]

    def test_hash_requires_str_pairs(self) -> None:
        with pytest.raises(TypeMismatchError):
            HashValue({"k": 1})  # type: ignore[dict-item]

    def test_sequence_requires_uniform_elements(self) -> None:
        with pytest.raises(TypeMismatchError):
            SequenceValue(ValueType.INTEGER, (IntegerValue(1), StringValue("x")))

    def test_bytes_accepts_bytearray(self) -> None:
        assert BytesValue(bytearray(b"ab")).data == b"ab"
