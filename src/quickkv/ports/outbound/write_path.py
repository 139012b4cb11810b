"""Write Path port: how a guarded write reaches the record log.

The storage engine never appends to the log directly; it hands each
record to a write path while holding the exclusive lock. The default
path appends and syncs immediately. A batching path could instead queue
records in ``write`` and persist them on a size or time threshold in
``flush``, as long as it recovers its own queue on restart.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from quickkv.domain.entities import Record


class WritePath(Protocol):
    """Protocol for the write side of the storage engine."""

    @abstractmethod
    def write(self, record: Record) -> int:
        """Accept one record for persistence.

        Returns:
            Number of bytes handed to the log for this record.

        Raises:
            StorageIOError: If the record cannot be accepted.
        """
        ...

    @abstractmethod
    def flush(self) -> None:
        """Make every accepted record durable before returning."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Flush and release the path. The log is closed by its owner."""
        ...
