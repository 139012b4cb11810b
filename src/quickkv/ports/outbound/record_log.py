"""Record Log port for append-only record persistence.

This outbound port defines the contract for the storage behind a client.
The log owns the on-disk (or in-memory) state; the cache is rebuilt from
it by replaying every record in order.

References:
    - file_record_log.py for the on-disk format
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import Iterator, Protocol

from quickkv.domain.entities import Record


class SyncMode(Enum):
    """Sync modes with different durability/performance tradeoffs.

    FSYNC: Full durability - sync file and metadata (safest)
    FDATASYNC: Data durability - sync file data only (faster on Linux)
    NONE: No sync - rely on OS buffering (fastest, but unsafe)
    """

    FSYNC = "fsync"
    FDATASYNC = "fdatasync"
    NONE = "none"


class RecordLog(Protocol):
    """Protocol for append-only record storage.

    Key guarantees:
    - Records replay in exactly the order they were appended
    - After sync() returns, appended records survive a process crash
      (subject to the sync mode)

    Thread Safety:
        None. The storage engine serializes all access with its
        reader-writer lock.
    """

    @property
    @abstractmethod
    def record_count(self) -> int:
        """Return the number of records in the log (all versions)."""
        ...

    @property
    @abstractmethod
    def size_bytes(self) -> int:
        """Return the log size in bytes."""
        ...

    @abstractmethod
    def replay(self) -> Iterator[Record]:
        """Yield every record from the start of the log.

        Raises:
            CodecError: If a complete record is corrupt.
            StorageIOError: If reading fails.
        """
        ...

    @abstractmethod
    def append(self, record: Record) -> int:
        """Append one record at the end of the log.

        The record may sit in a buffer until sync() is called.

        Returns:
            Number of bytes the record occupies in the log.

        Raises:
            StorageIOError: If the write fails or the log is closed.
        """
        ...

    @abstractmethod
    def sync(self) -> None:
        """Push appended records to storage according to the sync mode.

        Raises:
            StorageIOError: If the flush fails.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Sync pending records and release resources."""
        ...
