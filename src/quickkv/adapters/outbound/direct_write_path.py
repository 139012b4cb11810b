"""Default write path: append each record straight to the log.

Every write is appended as soon as it is accepted. ``flush`` syncs the log,
so a single ``set`` costs one append and one sync while ``set_many`` pays
for one sync per batch.
"""

from __future__ import annotations

from quickkv.domain.entities import Record
from quickkv.ports.outbound.record_log import RecordLog


class DirectWritePath:
    """WritePath that hands records to the log without queuing.

    Attributes:
        log: The record log receiving the appends.
    """

    def __init__(self, log: RecordLog) -> None:
        self._log = log
        self._pending = 0

    @property
    def log(self) -> RecordLog:
        return self._log

    @property
    def pending(self) -> int:
        """Return the number of records appended since the last flush."""
        return self._pending

    def write(self, record: Record) -> int:
        written = self._log.append(record)
        self._pending += 1
        return written

    def flush(self) -> None:
        if self._pending == 0:
            return
        self._log.sync()
        self._pending = 0

    def close(self) -> None:
        self.flush()
