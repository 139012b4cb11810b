"""Reader-writer lock guarding the cache and log of one client.

Lock Modes:
    - SHARED: Many readers at once (get, get_many)
    - EXCLUSIVE: One writer, no readers (set, set_many)

Writers are preferred: once a writer is waiting, newly arriving readers
queue behind it, so a steady stream of readers cannot starve writes.
Waiting has no timeout; a caller either gets the lock or stays blocked.

The lock is not reentrant. A thread holding it in either mode must not
acquire it again.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from enum import Enum


class LockMode(Enum):
    """Acquisition modes of the reader-writer lock."""

    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class ReadWriteLock:
    """Writer-preferring reader-writer lock built on ``threading.Condition``.

    Example:
        >>> lock = ReadWriteLock()
        >>> with lock.shared():
        ...     pass
        >>> with lock.exclusive():
        ...     pass
    """

    def __init__(self, on_wait: Callable[[LockMode, float], None] | None = None) -> None:
        """Initialize the lock.

        Args:
            on_wait: Optional callback receiving the mode and the seconds
                spent waiting, invoked after each acquisition.
        """
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0
        self._on_wait = on_wait

    @property
    def readers(self) -> int:
        """Return the number of threads holding the lock in shared mode."""
        with self._cond:
            return self._readers

    @property
    def writer_active(self) -> bool:
        """Return True if a thread holds the lock in exclusive mode."""
        with self._cond:
            return self._writer_active

    @property
    def writers_waiting(self) -> int:
        """Return the number of threads queued for exclusive mode."""
        with self._cond:
            return self._writers_waiting

    def acquire_shared(self) -> None:
        start = time.perf_counter()
        with self._cond:
            while self._writer_active or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        self._report(LockMode.SHARED, start)

    def release_shared(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_shared() called without a shared hold")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_exclusive(self) -> None:
        start = time.perf_counter()
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        self._report(LockMode.EXCLUSIVE, start)

    def release_exclusive(self) -> None:
        with self._cond:
            if not self._writer_active:
                raise RuntimeError("release_exclusive() called without an exclusive hold")
            self._writer_active = False
            self._cond.notify_all()

    @contextmanager
    def shared(self) -> Generator[None, None, None]:
        """Hold the lock in shared mode for the duration of the block."""
        self.acquire_shared()
        try:
            yield
        finally:
            self.release_shared()

    @contextmanager
    def exclusive(self) -> Generator[None, None, None]:
        """Hold the lock in exclusive mode for the duration of the block."""
        self.acquire_exclusive()
        try:
            yield
        finally:
            self.release_exclusive()

    def _report(self, mode: LockMode, start: float) -> None:
        if self._on_wait is not None:
            self._on_wait(mode, time.perf_counter() - start)
