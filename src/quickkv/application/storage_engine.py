"""Storage Engine - the guarded pairing of record log and memory cache.

The engine owns everything behind one client: the record log, the cache
rebuilt from it, the reader-writer lock serializing access to both and the
write path that carries new records into the log.

Usage:
    log = FileRecordLog("data/db.qkv")
    engine = StorageEngine(log)          # replays the log into the cache

    engine.put(Record.of("user:1", StringValue("Alice")))
    record = engine.get_record("user:1")

    engine.close()

Invariants:
    - No code path touches the cache or the log without holding the lock
      (shared for reads, exclusive for writes).
    - A write reaches the write path before the cache is updated, so the
      cache never holds a record the log has not accepted.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from quickkv.adapters.outbound.direct_write_path import DirectWritePath
from quickkv.domain.entities import Record
from quickkv.domain.exceptions import QuickKVError, StorageIOError
from quickkv.domain.services import LockMode, MemoryCache, ReadWriteLock
from quickkv.infrastructure.logging import build_logger
from quickkv.infrastructure.metrics import MetricsRegistry, get_metrics
from quickkv.infrastructure.tracing import trace_span
from quickkv.ports.outbound.record_log import RecordLog
from quickkv.ports.outbound.write_path import WritePath


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class StorageEngine:
    """Cache + log pair behind a single reader-writer lock.

    Opening the engine replays the whole log synchronously; the engine is
    ready for reads and writes as soon as the constructor returns.

    Thread Safety:
        All public methods are safe to call from multiple threads.
    """

    def __init__(
        self,
        log: RecordLog,
        write_path: WritePath | None = None,
        logger: Any | None = None,
        metrics: MetricsRegistry | None = None,
        name: str = "memory",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Open the engine over an already opened log.

        Args:
            log: The record log to replay and append to.
            write_path: How writes reach the log (default: DirectWritePath).
            logger: Bound structlog logger (silent if omitted).
            metrics: Metrics registry (default: the process-wide one).
            name: Label identifying this store in logs and metrics.
            clock: Source of the current time for expiry checks.

        Raises:
            CodecError: If the log holds a corrupt record.
            StorageIOError: If the log cannot be read.
        """
        self._log = log
        self._write_path = write_path if write_path is not None else DirectWritePath(log)
        self._logger = logger if logger is not None else build_logger(enabled=False)
        self._metrics = metrics if metrics is not None else get_metrics()
        self._name = name
        self._clock = clock
        self._cache = MemoryCache()
        self._lock = ReadWriteLock(on_wait=self._observe_lock_wait)
        self._closed = False

        self._load()

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def log(self) -> RecordLog:
        return self._log

    def _observe_lock_wait(self, mode: LockMode, seconds: float) -> None:
        self._metrics.lock_wait_seconds.labels(mode=mode.value).observe(seconds)

    def _load(self) -> None:
        """Rebuild the cache by replaying the log from the start."""
        start = time.perf_counter()
        count = 0

        with trace_span("quickkv.replay", {"quickkv.store": self._name}) as span:
            try:
                for record in self._log.replay():
                    self._cache.upsert(record)
                    count += 1
            except QuickKVError as exc:
                self._logger.error(
                    "replay_failed", records=count, error=str(exc), error_type=type(exc).__name__
                )
                raise
            span.set_attribute("quickkv.records", count)

        duration = time.perf_counter() - start
        self._metrics.records_replayed_total.inc(count)
        self._metrics.replay_duration_seconds.set(duration)
        self._update_cache_gauge()
        self._logger.info(
            "replay_completed",
            records=count,
            keys=len(self._cache),
            duration_ms=round(duration * 1000, 3),
        )

    def _update_cache_gauge(self) -> None:
        self._metrics.cache_keys.labels(path=self._name).set(len(self._cache))

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageIOError(f"Store {self._name} is closed")

    def get_record(self, key: str) -> Record | None:
        """Return the live record for ``key``, or None if absent or expired."""
        with self._lock.shared():
            self._ensure_open()
            return self._cache.lookup(key, now=self._clock())

    def get_records(self, keys: Iterable[str]) -> list[Record]:
        """Return the live records for ``keys`` under a single shared hold.

        Records come back in request order; absent or expired keys are
        omitted.
        """
        with self._lock.shared():
            self._ensure_open()
            now = self._clock()
            records = []
            for key in keys:
                record = self._cache.lookup(key, now=now)
                if record is not None:
                    records.append(record)
            return records

    def put(self, record: Record) -> None:
        """Persist one record and make it visible.

        Raises:
            StorageIOError: If the log rejects the record, or if the flush
                fails. A flush failure leaves the record applied: it is in
                the log and visible to readers although the call raised.
        """
        self.put_many([record])

    def put_many(self, records: Iterable[Record]) -> int:
        """Persist records in order under a single exclusive hold.

        Records applied before a failure stay applied; the failure
        propagates. The write path is flushed once, whether or not every
        record made it. When a record was rejected, that error is the one
        raised even if the flush fails too.

        Returns:
            Number of records applied.

        Raises:
            StorageIOError: If the log rejects a record or the flush fails.
                Records appended before a failed flush remain applied.
        """
        with self._lock.exclusive():
            self._ensure_open()
            applied = 0
            try:
                for record in records:
                    self._apply(record)
                    applied += 1
            except BaseException:
                self._flush_after_failure()
                raise
            else:
                self._write_path.flush()
            finally:
                self._update_cache_gauge()
            return applied

    def _flush_after_failure(self) -> None:
        try:
            self._write_path.flush()
        except QuickKVError as exc:
            self._logger.error(
                "flush_failed", error=str(exc), error_type=type(exc).__name__
            )

    def _apply(self, record: Record) -> None:
        try:
            written = self._write_path.write(record)
        except QuickKVError as exc:
            self._logger.error(
                "append_failed", key=record.key, error=str(exc), error_type=type(exc).__name__
            )
            raise
        self._cache.upsert(record)
        self._metrics.records_appended_total.inc()
        self._metrics.bytes_written_total.inc(written)

    def keys(self) -> list[str]:
        """Return the live keys in first-write order."""
        with self._lock.shared():
            self._ensure_open()
            return self._cache.keys(now=self._clock())

    def close(self) -> None:
        """Flush pending writes and close the log. Closing twice is a no-op."""
        with self._lock.exclusive():
            if self._closed:
                return
            self._closed = True
            try:
                self._write_path.close()
            finally:
                self._log.close()
            self._logger.info("store_closed", keys=len(self._cache))
