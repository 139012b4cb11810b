"""In-memory Record Log for the ``memory`` runtime.

Records live in a list for the lifetime of the client and are gone once it
closes. Sizes are reported as if the records had been framed on disk so
metrics stay comparable between runtimes.
"""

from __future__ import annotations

from typing import Iterator

from quickkv.adapters.outbound.file_record_log import RECORD_OVERHEAD
from quickkv.domain.entities import Record
from quickkv.domain.exceptions import StorageIOError


class MemoryRecordLog:
    """List-backed implementation of the RecordLog protocol."""

    def __init__(self) -> None:
        self._records: list[Record] = []
        self._size = 0
        self._closed = False

    @property
    def record_count(self) -> int:
        return len(self._records)

    @property
    def size_bytes(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def replay(self) -> Iterator[Record]:
        self._ensure_open()
        yield from list(self._records)

    def append(self, record: Record) -> int:
        self._ensure_open()
        size = record.size_bytes() + RECORD_OVERHEAD
        self._records.append(record)
        self._size += size
        return size

    def sync(self) -> None:
        self._ensure_open()

    def close(self) -> None:
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageIOError("In-memory log is closed")
