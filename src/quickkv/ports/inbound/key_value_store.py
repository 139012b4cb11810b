"""Key-Value Store port: the command surface offered to callers.

Front-ends such as the command-line tool program against this protocol.
Every operation either returns its result or raises a ``QuickKVError``
subclass; a missing key is reported as ``None`` (or omission in batches),
never as an error.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable
from datetime import timedelta
from typing import Any, Protocol, TypeVar

from quickkv.domain.value_objects import KeyValue, Value

T = TypeVar("T")


class KeyValueStore(Protocol):
    """Protocol for point and batched typed access to the store."""

    @abstractmethod
    def get(self, key: str, as_type: type[T] = Value) -> T | None:  # type: ignore[assignment]
        """Return the value stored under ``key`` in shape ``as_type``.

        Returns:
            The value, or None if the key is absent.

        Raises:
            TypeMismatchError: If the stored value has another shape.
        """
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def get_many(
        self, keys: Iterable[str], as_type: type[T] = Value  # type: ignore[assignment]
    ) -> list[KeyValue[T]]:
        """Return the present keys, in request order, with their values."""
        ...

    @abstractmethod
    def set_many(
        self,
        records: Iterable[KeyValue[Any] | tuple[str, Any]],
        ttl: timedelta | None = None,
    ) -> None:
        """Store several records under one lock acquisition."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """Return the live keys in first-write order."""
        ...
