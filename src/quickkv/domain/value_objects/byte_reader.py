"""Bounds-checked cursor over an encoded byte buffer."""

from __future__ import annotations

import struct

from quickkv.domain.exceptions import CodecError


class ByteReader:
    """Sequential reader used by the value and record decoders.

    Every read is bounds-checked so a short buffer surfaces as a
    ``CodecError`` instead of an ``IndexError`` or a silent short slice.

    Example:
        >>> reader = ByteReader(b"\\x00\\x00\\x00\\x02hi")
        >>> reader.read_sized()
        b'hi'
        >>> reader.remaining
        0
    """

    def __init__(self, data: bytes, base_offset: int = 0) -> None:
        """Initialize the reader.

        Args:
            data: The buffer to read from.
            base_offset: Offset of ``data`` within a larger stream, used
                only to make error messages point at the right byte.
        """
        self._data = memoryview(data)
        self._offset = 0
        self._base_offset = base_offset

    @property
    def offset(self) -> int:
        """Return the current position within the buffer."""
        return self._offset

    @property
    def position(self) -> int:
        """Return the current position within the larger stream."""
        return self._base_offset + self._offset

    @property
    def remaining(self) -> int:
        """Return the number of unread bytes."""
        return len(self._data) - self._offset

    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes.

        Raises:
            CodecError: If fewer than ``size`` bytes remain.
        """
        if size < 0 or size > self.remaining:
            raise CodecError(
                f"Need {size} bytes, only {self.remaining} remain",
                offset=self._base_offset + self._offset,
            )
        chunk = self._data[self._offset : self._offset + size].tobytes()
        self._offset += size
        return chunk

    def unpack(self, fmt: str) -> tuple:
        """Read and unpack a fixed-size struct."""
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))

    def read_sized(self) -> bytes:
        """Read a ``[length:u32][bytes]`` field."""
        (length,) = self.unpack(">I")
        return self.read(length)

    def read_text(self) -> str:
        """Read a ``[length:u32][utf-8]`` field."""
        raw = self.read_sized()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CodecError(
                f"Invalid UTF-8 text: {exc.reason}",
                offset=self._base_offset + self._offset - len(raw),
            ) from exc


def pack_sized(data: bytes) -> bytes:
    """Encode a ``[length:u32][bytes]`` field."""
    return struct.pack(">I", len(data)) + data


def pack_text(text: str) -> bytes:
    """Encode a ``[length:u32][utf-8]`` field."""
    try:
        return pack_sized(text.encode("utf-8"))
    except UnicodeEncodeError as exc:
        raise CodecError(f"Text is not encodable as UTF-8: {exc.reason}") from exc
