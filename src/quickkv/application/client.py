"""Client facade - the public entry point of the store.

Usage:
    from quickkv import QuickClient, QuickConfiguration

    with QuickClient(QuickConfiguration(path="data/")) as client:
        client.set("user:1", "Alice")
        client.get("user:1", str)              # 'Alice'

        client.set_many([("a", 1), ("b", 2)])
        client.get_many(["a", "missing", "b"], int)
        # [KeyValue(key='a', value=1), KeyValue(key='b', value=2)]

        users = client.typed(dict)
        users.set("user:2", {"name": "Bob"})

Values are converted to the tagged ``Value`` union on the way in and back
into the requested shape on the way out (see conversion.py). Reading a key
as the wrong shape raises ``TypeMismatchError``; a missing key is ``None``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from quickkv.adapters.outbound.file_record_log import FileRecordLog
from quickkv.adapters.outbound.memory_record_log import MemoryRecordLog
from quickkv.application.storage_engine import StorageEngine, utc_now
from quickkv.domain.entities import Record
from quickkv.domain.exceptions import TypeMismatchError
from quickkv.domain.value_objects import KeyValue, Value, adapter_for, to_value
from quickkv.infrastructure.config import QuickConfiguration
from quickkv.infrastructure.logging import build_logger
from quickkv.infrastructure.metrics import MetricsRegistry, get_metrics
from quickkv.infrastructure.tracing import trace_span
from quickkv.ports.outbound.record_log import RecordLog, SyncMode
from quickkv.ports.outbound.write_path import WritePath

T = TypeVar("T")


class QuickClient:
    """Thread-safe handle on one store.

    The constructor opens (or creates) the database file and loads every
    record into memory before returning. Share one client between threads
    rather than opening the same file twice: separate clients on one file
    do not coordinate.

    Thread Safety:
        Reads run concurrently; writes are serialized and exclude reads.
    """

    def __init__(
        self,
        config: QuickConfiguration | None = None,
        *,
        metrics: MetricsRegistry | None = None,
        write_path_factory: Callable[[RecordLog], WritePath] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Open the store.

        Args:
            config: Client options (defaults: ``db.qkv``, logging off).
            metrics: Metrics registry (default: the process-wide one).
            write_path_factory: Builds the write path from the opened log
                (default: append and sync immediately).
            clock: Source of the current time for expiry.

        Raises:
            StorageIOError: If the file cannot be opened or read.
            CodecError: If the file is not a store or holds a corrupt record.
        """
        self._config = config if config is not None else QuickConfiguration()
        self._metrics = metrics if metrics is not None else get_metrics()
        self._clock = clock

        name = "memory" if self._config.runtime == "memory" else str(self._config.path)
        self._logger = build_logger(
            enabled=self._config.logs,
            level=self._config.log_level,
            log_format=self._config.log_format,
            store=name,
        )

        with trace_span(
            "quickkv.open", {"quickkv.store": name, "quickkv.runtime": self._config.runtime}
        ):
            log = self._open_log()
            try:
                write_path = write_path_factory(log) if write_path_factory else None
                self._engine = StorageEngine(
                    log,
                    write_path=write_path,
                    logger=self._logger,
                    metrics=self._metrics,
                    name=name,
                    clock=clock,
                )
            except BaseException:
                log.close()
                raise

    def _open_log(self) -> RecordLog:
        if self._config.runtime == "memory":
            return MemoryRecordLog()
        return FileRecordLog(
            self._config.path,
            sync_mode=SyncMode(self._config.sync_mode),
            logger=self._logger,
            metrics=self._metrics,
        )

    @property
    def config(self) -> QuickConfiguration:
        return self._config

    @property
    def closed(self) -> bool:
        return self._engine.closed

    @contextmanager
    def _observe(self, operation: str) -> Generator[None, None, None]:
        """Count and time one client operation."""
        start = time.perf_counter()
        status = "error"
        try:
            yield
            status = "ok"
        finally:
            self._metrics.operations_total.labels(operation=operation, status=status).inc()
            self._metrics.operation_latency_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )

    def _expiry(self, ttl: timedelta | None) -> datetime | None:
        if ttl is None:
            ttl = self._config.default_ttl
        if ttl is None:
            return None
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        return self._clock() + ttl

    def get(self, key: str, as_type: type[T] = Value) -> T | None:  # type: ignore[assignment]
        """Return the value stored under ``key``.

        Args:
            key: The key to read.
            as_type: Shape to return: ``Value`` (default), a built-in such
                as ``str`` or ``dict``, or a ``Storable`` class.

        Returns:
            The value, or None if the key is absent or expired.

        Raises:
            TypeMismatchError: If the stored value has another shape.
            StorageIOError: If the client is closed.
        """
        with self._observe("get"):
            adapter = adapter_for(as_type)
            record = self._engine.get_record(key)
            if record is None:
                return None
            return adapter.from_value(record.decode())

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        The record is on disk (per the sync mode) before this returns.

        Args:
            key: The key to write.
            value: A ``Value``, a supported built-in or a ``Storable``.
            ttl: Time to live; falls back to ``default_ttl``.

        Raises:
            TypeMismatchError: If ``value`` has no conversion.
            StorageIOError: If the write fails or the client is closed. If
                only the sync to disk fails, the value is already stored and
                readable when this raises.
        """
        with self._observe("set"):
            record = Record.of(key, to_value(value), expires_at=self._expiry(ttl))
            self._engine.put(record)
            self._logger.debug("key_set", key=key, value_type=type(value).__name__)

    def get_many(
        self, keys: Iterable[str], as_type: type[T] = Value  # type: ignore[assignment]
    ) -> list[KeyValue[T]]:
        """Return the present keys with their values, in request order.

        Missing and expired keys are left out of the result. All lookups
        happen under one shared lock hold.
        """
        with self._observe("get_many"):
            adapter = adapter_for(as_type)
            records = self._engine.get_records(list(keys))
            return [KeyValue(record.key, adapter.from_value(record.decode())) for record in records]

    def set_many(
        self,
        records: Iterable[KeyValue[Any] | tuple[str, Any]],
        ttl: timedelta | None = None,
    ) -> None:
        """Store several records in order under one exclusive lock hold.

        Every value is converted before anything is written. If the log
        fails partway, the records already written stay written and the
        error propagates.

        Args:
            records: ``KeyValue`` items or ``(key, value)`` pairs.
            ttl: Time to live applied to every record in the batch.
        """
        with self._observe("set_many"):
            expires_at = self._expiry(ttl)
            batch = [
                Record.of(key, to_value(value), expires_at=expires_at)
                for key, value in _pairs(records)
            ]
            with trace_span("quickkv.set_many", {"quickkv.records": len(batch)}):
                self._engine.put_many(batch)
            self._logger.debug("batch_set", records=len(batch))

    def exists(self, key: str) -> bool:
        """Check whether ``key`` holds a live value."""
        return self._engine.get_record(key) is not None

    def keys(self) -> list[str]:
        """Return the live keys in first-write order."""
        return self._engine.keys()

    def __len__(self) -> int:
        return len(self._engine.keys())

    def typed(self, as_type: type[T]) -> TypedClient[T]:
        """Return a view of this client bound to one value shape.

        Raises:
            TypeMismatchError: If ``as_type`` has no conversion.
        """
        return TypedClient(self, as_type)

    def close(self) -> None:
        """Flush and close the store. Later operations raise StorageIOError."""
        self._engine.close()

    def __enter__(self) -> QuickClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"QuickClient(path={str(self._config.path)!r}, runtime={self._config.runtime!r})"


class TypedClient(Generic[T]):
    """Client view that reads and writes a single value shape.

    Writes are checked against the shape, so a ``TypedClient[str]`` refuses
    to store an ``int``. The view shares its parent's store and lock.
    """

    def __init__(self, client: QuickClient, as_type: type[T]) -> None:
        self._client = client
        self._as_type = as_type
        self._adapter = adapter_for(as_type)

    @property
    def as_type(self) -> type[T]:
        return self._as_type

    def get(self, key: str) -> T | None:
        return self._client.get(key, self._as_type)

    def set(self, key: str, value: T, ttl: timedelta | None = None) -> None:
        self._client.set(key, self._adapter.to_value(value), ttl=ttl)

    def get_many(self, keys: Iterable[str]) -> list[KeyValue[T]]:
        return self._client.get_many(keys, self._as_type)

    def set_many(
        self,
        records: Iterable[KeyValue[T] | tuple[str, T]],
        ttl: timedelta | None = None,
    ) -> None:
        converted = [(key, self._adapter.to_value(value)) for key, value in _pairs(records)]
        self._client.set_many(converted, ttl=ttl)


def _pairs(records: Iterable[KeyValue[Any] | tuple[str, Any]]) -> list[tuple[str, Any]]:
    pairs = []
    for item in records:
        if isinstance(item, KeyValue):
            pairs.append((item.key, item.value))
        elif isinstance(item, tuple) and len(item) == 2:
            pairs.append((item[0], item[1]))
        else:
            raise TypeMismatchError(
                expected="KeyValue or (key, value) pair", actual=type(item).__name__
            )
    return pairs
