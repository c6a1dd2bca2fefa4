"""
statecheck — State Client Interface

The validation core never talks to a device directly. It consumes two
capabilities from whatever owns the state source: a one-shot lookup and a
continuous watch.

Transport failures should be raised as FetchError tagged with a
FetchErrorKind. TimeoutError and OSError raised by a client are also treated
as transport failures; anything else propagates as a defect.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, TypeVar, runtime_checkable

from statecheck.errors import FetchError
from statecheck.query import Query, Value

T = TypeVar("T")

# Exceptions a client may raise that mean "couldn't get a value".
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (FetchError, TimeoutError, OSError)


@runtime_checkable
class StateClient(Protocol):
    """A session against a path-addressed state source."""

    async def lookup(self, query: Query[T]) -> Value[T]:
        """Fetch the query's current value once."""
        ...

    def watch(self, query: Query[T]) -> AsyncIterator[Value[T]]:
        """
        Deliver successive observations of the query's value.

        The stream may end by raising (a transport failure) or by returning
        (the source closed it). Deadlines and cancellation are applied by
        the caller; clients need not implement them.
        """
        ...


def describe_client(client: Any) -> str:
    """Short client label for log fields."""
    name = getattr(client, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(client).__name__
