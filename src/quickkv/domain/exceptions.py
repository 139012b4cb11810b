"""Error kinds raised by the key-value store.

Every failure reaches the caller as one of these exceptions. A missing key
is not an error: lookups return ``None`` instead.
"""

from __future__ import annotations


class QuickKVError(Exception):
    """Base class for all store errors."""

    pass


class StorageIOError(QuickKVError):
    """Raised when the backing file cannot be opened, read or written.

    Fatal to the operation that hit it. The store never retries.
    """

    pass


class CodecError(QuickKVError, ValueError):
    """Raised when a record or value cannot be encoded or decoded."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class TypeMismatchError(QuickKVError, TypeError):
    """Raised when a value is requested or converted as the wrong shape."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} value, got {actual}")
