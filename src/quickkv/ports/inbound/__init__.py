"""Inbound ports - interfaces the store offers to its callers."""

from quickkv.ports.inbound.key_value_store import KeyValueStore

__all__ = [
    "KeyValueStore",
]
