"""Typed conversion between Python objects and stored values.

The client is generic over the shape of the value it reads and writes. A
shape qualifies by having a ``ValueAdapter``: an explicit pair of
conversions to and from ``Value``. Adapters exist for ``Value`` itself, the
built-in scalars, ``dict`` (as a Hash), ``list`` (as a Sequence) and any
class implementing the ``Storable`` protocol.

Example:
    >>> adapter = adapter_for(str)
    >>> adapter.from_value(adapter.to_value("hello"))
    'hello'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from quickkv.domain.exceptions import TypeMismatchError
from quickkv.domain.value_objects.value import (
    BooleanValue,
    BytesValue,
    FloatValue,
    HashValue,
    IntegerValue,
    NullValue,
    SequenceValue,
    StringValue,
    Value,
    ValueType,
)

T = TypeVar("T")
S = TypeVar("S", bound="Storable")


class Storable(Protocol):
    """Protocol for user types that know how to become a ``Value``.

    Implement both methods explicitly; the store never inspects
    attributes to guess an encoding.
    """

    def to_value(self) -> Value:
        ...

    @classmethod
    def from_value(cls: type[S], value: Value) -> S:
        ...


class ValueAdapter(Protocol[T]):
    """Conversion interface between a Python type and ``Value``."""

    def to_value(self, obj: T) -> Value:
        ...

    def from_value(self, value: Value) -> T:
        ...


@dataclass(frozen=True)
class KeyValue(Generic[T]):
    """A key paired with a typed value, as used by the batch operations.

    Attributes:
        key: The record key.
        value: The value, in whatever shape the caller works with.
    """

    key: str
    value: T


class _ValueAdapter:
    """Pass-through for ``Value`` and its variant classes."""

    def __init__(self, cls: type[Value]) -> None:
        self._cls = cls

    def _check(self, value: Any) -> Value:
        if not isinstance(value, self._cls):
            actual = value.value_type.name if isinstance(value, Value) else type(value).__name__
            expected = getattr(self._cls, "TYPE", None)
            raise TypeMismatchError(
                expected=expected.name if expected is not None else "Value", actual=actual
            )
        return value

    def to_value(self, obj: Value) -> Value:
        return self._check(obj)

    def from_value(self, value: Value) -> Value:
        return self._check(value)


class _StrAdapter:
    def to_value(self, obj: str) -> Value:
        return StringValue(obj)

    def from_value(self, value: Value) -> str:
        return value.as_str()


class _IntAdapter:
    def to_value(self, obj: int) -> Value:
        return IntegerValue(obj)

    def from_value(self, value: Value) -> int:
        return value.as_int()


class _FloatAdapter:
    def to_value(self, obj: float) -> Value:
        return FloatValue(obj)

    def from_value(self, value: Value) -> float:
        return value.as_float()


class _BoolAdapter:
    def to_value(self, obj: bool) -> Value:
        return BooleanValue(obj)

    def from_value(self, value: Value) -> bool:
        return value.as_bool()


class _BytesAdapter:
    def to_value(self, obj: bytes) -> Value:
        return BytesValue(obj)

    def from_value(self, value: Value) -> bytes:
        return value.as_bytes()


class _HashAdapter:
    def to_value(self, obj: dict[str, str]) -> Value:
        return HashValue(obj)

    def from_value(self, value: Value) -> dict[str, str]:
        return value.as_hash()


class _ListAdapter:
    """Sequences of natively adapted elements.

    All elements must share one Python type. An empty list is stored as a
    Sequence of NULL elements.
    """

    def to_value(self, obj: list[Any]) -> Value:
        if not isinstance(obj, (list, tuple)):
            raise TypeMismatchError(expected="SEQUENCE", actual=type(obj).__name__)
        items = [to_value(item) for item in obj]
        element_type = items[0].value_type if items else ValueType.NULL
        return SequenceValue(element_type, tuple(items))

    def from_value(self, value: Value) -> list[Any]:
        return [to_native(item) for item in value.as_sequence()]


class _TupleAdapter(_ListAdapter):
    def from_value(self, value: Value) -> tuple[Any, ...]:
        return tuple(super().from_value(value))


class _StorableAdapter(Generic[S]):
    def __init__(self, cls: type[S]) -> None:
        self._cls = cls

    def to_value(self, obj: S) -> Value:
        if not isinstance(obj, self._cls):
            raise TypeMismatchError(expected=self._cls.__name__, actual=type(obj).__name__)
        value = obj.to_value()
        if not isinstance(value, Value):
            raise TypeMismatchError(expected="Value", actual=type(value).__name__)
        return value

    def from_value(self, value: Value) -> S:
        return self._cls.from_value(value)


_ADAPTERS: dict[type, ValueAdapter[Any]] = {
    str: _StrAdapter(),
    int: _IntAdapter(),
    float: _FloatAdapter(),
    bool: _BoolAdapter(),
    bytes: _BytesAdapter(),
    dict: _HashAdapter(),
    list: _ListAdapter(),
    tuple: _TupleAdapter(),
}


def adapter_for(cls: type[T]) -> ValueAdapter[T]:
    """Return the adapter for a Python type.

    Args:
        cls: The requested shape.

    Returns:
        The adapter converting between ``cls`` and ``Value``.

    Raises:
        TypeMismatchError: If ``cls`` is neither a built-in shape, a
            ``Value`` subclass nor a ``Storable``.
    """
    if isinstance(cls, type) and issubclass(cls, Value):
        return _ValueAdapter(cls)  # type: ignore[return-value]
    adapter = _ADAPTERS.get(cls)
    if adapter is not None:
        return adapter
    if isinstance(cls, type) and callable(getattr(cls, "from_value", None)) and callable(
        getattr(cls, "to_value", None)
    ):
        return _StorableAdapter(cls)  # type: ignore[arg-type]
    raise TypeMismatchError(expected="storable type", actual=getattr(cls, "__name__", repr(cls)))


def to_value(obj: Any) -> Value:
    """Convert any supported object to a ``Value``.

    ``None`` becomes ``NullValue``; everything else is dispatched on its
    exact type, so ``True`` stays a Boolean rather than an Integer.
    """
    if obj is None:
        return NullValue()
    if isinstance(obj, Value):
        return obj
    return adapter_for(type(obj)).to_value(obj)


def to_native(value: Value) -> Any:
    """Convert a ``Value`` to the closest built-in Python object."""
    if value.value_type == ValueType.NULL:
        return None
    if value.value_type == ValueType.SEQUENCE:
        return _ADAPTERS[list].from_value(value)
    native = {
        ValueType.STRING: str,
        ValueType.INTEGER: int,
        ValueType.FLOAT: float,
        ValueType.BOOLEAN: bool,
        ValueType.BYTES: bytes,
        ValueType.HASH: dict,
    }[value.value_type]
    return _ADAPTERS[native].from_value(value)


def from_value(value: Value, cls: type[T]) -> T:
    """Convert a stored ``Value`` into the requested shape."""
    return adapter_for(cls).from_value(value)
