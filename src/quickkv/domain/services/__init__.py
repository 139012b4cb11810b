"""Domain services for the key-value store.

Exports:
    - MemoryCache: Key to latest-record mirror of the log
    - ReadWriteLock: Writer-preferring guard over cache and log
    - LockMode: Shared or exclusive acquisition
"""

from quickkv.domain.services.memory_cache import MemoryCache
from quickkv.domain.services.rw_lock import LockMode, ReadWriteLock

__all__ = [
    "MemoryCache",
    "ReadWriteLock",
    "LockMode",
]
