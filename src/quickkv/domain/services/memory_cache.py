"""In-memory mirror of the record log.

The cache maps each key to the last record written for it. It is derived
entirely from replaying the log and is never persisted on its own.

Thread Safety:
    Not thread-safe. The storage engine only touches it while holding
    the client's reader-writer lock in the matching mode.
"""

from __future__ import annotations

from datetime import datetime

from quickkv.domain.entities import Record


class MemoryCache:
    """Key to latest-record map serving all reads without file I/O.

    Entries are never evicted; the cache grows with the number of
    distinct keys.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Record] = {}

    def lookup(self, key: str, now: datetime | None = None) -> Record | None:
        """Return the latest record for ``key``.

        Args:
            key: The key to look up.
            now: If given, a record that expired at or before this instant
                is reported as absent.

        Returns:
            The record, or None if the key is absent or expired.
        """
        record = self._entries.get(key)
        if record is None:
            return None
        if now is not None and record.is_expired(now):
            return None
        return record

    def upsert(self, record: Record) -> None:
        """Insert or replace the entry for ``record.key``."""
        self._entries[record.key] = record

    def keys(self, now: datetime | None = None) -> list[str]:
        """Return cached keys in first-insertion order, skipping those expired at ``now``."""
        if now is None:
            return list(self._entries)
        return [key for key, record in self._entries.items() if not record.is_expired(now)]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
