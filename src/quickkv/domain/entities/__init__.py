"""Domain entities for the key-value store.

Exports:
    - Record: Persisted key + encoded value with its metadata slot
    - FLAG_EXPIRES: Record flag marking a stored expiry instant
"""

from quickkv.domain.entities.record import FLAG_EXPIRES, Record

__all__ = [
    "Record",
    "FLAG_EXPIRES",
]
