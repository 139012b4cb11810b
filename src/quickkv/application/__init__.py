"""Application layer for the key-value store.

The application layer wires the domain services to the record log and
exposes the operations callers use.

Exports:
    Client:
        - QuickClient: Thread-safe handle on one store
        - TypedClient: View of a client bound to one value shape
    Engine:
        - StorageEngine: Record log + memory cache behind one lock
"""

from quickkv.application.client import QuickClient, TypedClient
from quickkv.application.storage_engine import StorageEngine

__all__ = [
    "QuickClient",
    "TypedClient",
    "StorageEngine",
]
