"""
statecheck — Validator Factories

Shorthands for the common comparison policies. Each produces errors of the
form "got <value>, <want>", which ValidationError prefixes with the path:

    /system/state/hostname: got 'wrongname', want 'node1'
    /interfaces/interface[name=eth0]/state/mtu: got no value, want 9000
    /some/other/path: got 100, want no value

Policy note: every factory built on predicate() requires the value to be
present. That includes not_equal(): an absent value is a failure, not
"anything but want_not".
"""

from __future__ import annotations

import functools
import operator
from typing import Any, Callable, Sequence, TypeVar

from statecheck.errors import StatecheckError
from statecheck.format import format_value
from statecheck.query import Query, Value
from statecheck.validator import ValidationFn, Validator

T = TypeVar("T")

Equality = Callable[[Any, Any], bool]


class PredicateFailure(StatecheckError):
    """The validation-function error produced by the stock factories."""


def validate(query: Query[T], validation_fn: ValidationFn[T]) -> Validator[T]:
    """Expect validation_fn to return no error on the query's value."""
    return Validator(query, validation_fn)


def predicate(
    query: Query[T],
    want_msg: str,
    predicate_fn: Callable[[T], bool],
) -> Validator[T]:
    """
    Expect the query to have a value for which predicate_fn returns True.
    want_msg is included in any failure, e.g. with "want a multiple of 4":

        /some/path: got 13, want a multiple of 4
    """

    def _check(vgot: Value[T]) -> BaseException | None:
        got, present = vgot.val()
        if not present or not predicate_fn(got):  # type: ignore[arg-type]
            return PredicateFailure(f"got {format_value(vgot)}, {want_msg}")
        return None

    return validate(query, _check)


def equal(query: Query[T], want: T, *, eq: Equality = operator.eq) -> Validator[T]:
    """Expect the query's value to be want."""
    return predicate(query, f"want {want!r}", lambda got: bool(eq(got, want)))


def not_equal(query: Query[T], want_not: T, *, eq: Equality = operator.eq) -> Validator[T]:
    """Expect the query to have a value other than want_not."""
    return predicate(
        query,
        f"want anything but {want_not!r}",
        lambda got: not eq(got, want_not),
    )


def equal_or_nil(query: Query[T], want: T, *, eq: Equality = operator.eq) -> Validator[T]:
    """Expect the query to be unset or have value want."""

    def _check(vgot: Value[T]) -> BaseException | None:
        got, present = vgot.val()
        if present and not eq(got, want):
            return PredicateFailure(f"got {format_value(vgot)}, want {want!r} or no value")
        return None

    return validate(query, _check)


def present(query: Query[T]) -> Validator[T]:
    """Expect the query to have any value."""
    return predicate(query, "want any value", lambda _got: True)


def not_present(query: Query[T]) -> Validator[T]:
    """Expect the query to not have a value set."""

    def _check(vgot: Value[T]) -> BaseException | None:
        if vgot.is_present():
            return PredicateFailure(f"got {format_value(vgot)}, want no value")
        return None

    return validate(query, _check)


def unordered_equal(
    query: Query[Sequence[T]],
    want: Sequence[T],
    less: Callable[[T, T], bool] | None = None,
    *,
    key: Callable[[T], Any] | None = None,
) -> Validator[Sequence[T]]:
    """
    Expect the query's sequence to equal want, ignoring order.

    Both sides are sorted before comparing: by less (a strict "a < b"
    function), else by key, else by natural ordering.
    """
    if less is not None and key is not None:
        raise ValueError("pass either less or key, not both")
    if less is not None:
        key = functools.cmp_to_key(_comparator(less))

    def _sorted(items: Sequence[T]) -> list[T]:
        return sorted(items, key=key)  # type: ignore[arg-type]

    want_sorted = _sorted(want)

    def _matches(got: Sequence[T]) -> bool:
        if len(got) != len(want_sorted):
            return False
        return _sorted(got) == want_sorted

    return predicate(query, f"want {want!r}", _matches)


def _comparator(less: Callable[[T, T], bool]) -> Callable[[T, T], int]:
    def _cmp(a: T, b: T) -> int:
        if less(a, b):
            return -1
        if less(b, a):
            return 1
        return 0

    return _cmp
