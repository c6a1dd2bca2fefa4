"""
statecheck — Queries and Values

Query[T] is the typed address a Validator checks; Value[T] is what a client
returns for it on each fetch: either present with a T, or absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from statecheck.paths import StatePath

T = TypeVar("T")

_MISSING: Any = object()


class Query(Generic[T]):
    """
    An immutable, typed address into the state tree.

    value_type is informational; clients may use it to decode raw updates.
    """

    __slots__ = ("_path", "_value_type")

    def __init__(self, path: StatePath | str, value_type: type[T] | None = None) -> None:
        if isinstance(path, str):
            path = StatePath.lazy(path)
        self._path = path
        self._value_type = value_type

    @property
    def path(self) -> StatePath:
        return self._path

    @property
    def value_type(self) -> type[T] | None:
        return self._value_type

    def __repr__(self) -> str:
        from statecheck.format import format_path

        return f"Query({format_path(self)!r})"


@dataclass(frozen=True, eq=False)
class Value(Generic[T]):
    """
    One observation of a query's value.

    Build with Value.of() / Value.absent(); never mutated after creation.
    """

    path: StatePath | None = None
    _val: Any = _MISSING
    timestamp: datetime | None = None

    @classmethod
    def of(
        cls,
        val: T,
        path: StatePath | None = None,
        timestamp: datetime | None = None,
    ) -> Value[T]:
        return cls(path=path, _val=val, timestamp=timestamp or datetime.now(timezone.utc))

    @classmethod
    def absent(
        cls,
        path: StatePath | None = None,
        timestamp: datetime | None = None,
    ) -> Value[T]:
        return cls(path=path, timestamp=timestamp or datetime.now(timezone.utc))

    def val(self) -> tuple[T | None, bool]:
        """Return (value, present). value is None when absent."""
        if self._val is _MISSING:
            return None, False
        return self._val, True

    def is_present(self) -> bool:
        return self._val is not _MISSING

    def __repr__(self) -> str:
        if self._val is _MISSING:
            return "Value(<absent>)"
        return f"Value({self._val!r})"
