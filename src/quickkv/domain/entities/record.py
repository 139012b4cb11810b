"""Record entity: the unit of persistence.

A record pairs a key with an already-encoded value and a small metadata
slot. Records are appended to the log in temporal order; the log may hold
several records for one key and the last one wins.

Body format (framing with length and CRC is added by the log adapter):
    [key_len:4][key utf-8][value_len:4][encoded value][flags:1]
    [expires_at_us:8]   (only when FLAG_EXPIRES is set)

References:
    - value.py for the encoded value layout
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import ClassVar

from quickkv.domain.exceptions import CodecError, TypeMismatchError
from quickkv.domain.value_objects import ByteReader, Value, pack_sized, pack_text


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Metadata flags
FLAG_EXPIRES = 0x01
KNOWN_FLAGS = FLAG_EXPIRES


def to_epoch_micros(moment: datetime) -> int:
    """Convert a datetime to microseconds since the Unix epoch (UTC).

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(microseconds=1)


def from_epoch_micros(micros: int) -> datetime:
    """Convert microseconds since the Unix epoch to an aware UTC datetime."""
    return EPOCH + timedelta(microseconds=micros)


@dataclass(frozen=True, slots=True)
class Record:
    """A persisted key + encoded value pair.

    Attributes:
        key: The record key (any UTF-8 string).
        value: Canonical encoding of a ``Value``.
        expires_at: Optional expiry instant (UTC). Expired records read as
            absent but stay in the log until compaction exists.
    """

    key: str
    value: bytes
    expires_at: datetime | None = None

    FLAGS_FORMAT: ClassVar[str] = ">B"
    EXPIRES_FORMAT: ClassVar[str] = ">q"

    def __post_init__(self) -> None:
        if not isinstance(self.key, str):
            raise TypeMismatchError(expected="str key", actual=type(self.key).__name__)
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            object.__setattr__(self, "expires_at", self.expires_at.replace(tzinfo=timezone.utc))

    @classmethod
    def of(cls, key: str, value: Value, expires_at: datetime | None = None) -> Record:
        """Build a record by encoding ``value``."""
        return cls(key=key, value=value.to_bytes(), expires_at=expires_at)

    def decode(self) -> Value:
        """Decode the stored value."""
        return Value.from_bytes(self.value)

    def is_expired(self, now: datetime) -> bool:
        """Check whether the record's expiry instant has passed."""
        return self.expires_at is not None and self.expires_at <= now

    @property
    def flags(self) -> int:
        return FLAG_EXPIRES if self.expires_at is not None else 0

    def to_bytes(self) -> bytes:
        """Serialize the record body."""
        parts = [
            pack_text(self.key),
            pack_sized(self.value),
            struct.pack(self.FLAGS_FORMAT, self.flags),
        ]
        if self.expires_at is not None:
            parts.append(struct.pack(self.EXPIRES_FORMAT, to_epoch_micros(self.expires_at)))
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes, base_offset: int = 0) -> Record:
        """Deserialize a record body.

        Args:
            data: Exactly one record body.
            base_offset: File offset of ``data``, for error messages.

        Raises:
            CodecError: If the body or the encoded value is malformed.
        """
        reader = ByteReader(data, base_offset=base_offset)
        key = reader.read_text()
        value = reader.read_sized()
        # The value must decode on its own
        Value.from_bytes(value, base_offset=reader.position - len(value))

        flags_offset = reader.offset
        (flags,) = reader.unpack(cls.FLAGS_FORMAT)
        if flags & ~KNOWN_FLAGS:
            raise CodecError(f"Unknown record flags: {flags:#04x}", offset=base_offset + flags_offset)

        expires_at = None
        if flags & FLAG_EXPIRES:
            (micros,) = reader.unpack(cls.EXPIRES_FORMAT)
            try:
                expires_at = from_epoch_micros(micros)
            except OverflowError as exc:
                raise CodecError(
                    f"Expiry out of range: {micros}", offset=base_offset + reader.offset - 8
                ) from exc

        if reader.remaining:
            raise CodecError(
                f"{reader.remaining} trailing bytes in record", offset=base_offset + reader.offset
            )
        return cls(key=key, value=value, expires_at=expires_at)

    def size_bytes(self) -> int:
        """Return the size of the serialized body in bytes."""
        return len(self.to_bytes())
