"""
Tests for the error model.

Covers:
  - Timeout classification
  - ValidationError message priority
  - Failure kind taxonomy
"""

from __future__ import annotations

import pytest

from statecheck.errors import (
    FailureKind,
    FetchError,
    FetchErrorKind,
    StatecheckError,
    ValidationError,
    is_timeout_cause,
)
from statecheck.paths import PathElem, StatePath
from statecheck.predicates import PredicateFailure
from statecheck.query import Query

_Q = Query("/system/state/hostname", str)


def _deadline() -> FetchError:
    return FetchError(FetchErrorKind.DEADLINE_EXCEEDED, "context deadline exceeded")


class TestIsTimeoutCause:
    def test_none(self):
        assert is_timeout_cause(None) is False

    def test_deadline_exceeded(self):
        assert is_timeout_cause(_deadline()) is True

    def test_builtin_timeout_error(self):
        assert is_timeout_cause(TimeoutError()) is True

    @pytest.mark.parametrize(
        "kind",
        [k for k in FetchErrorKind if k != FetchErrorKind.DEADLINE_EXCEEDED],
    )
    def test_other_fetch_kinds(self, kind):
        assert is_timeout_cause(FetchError(kind)) is False

    def test_unrelated_exception(self):
        assert is_timeout_cause(ValueError("deadline exceeded")) is False


class TestValidationErrorMessage:
    def test_timeout_with_validation_err(self):
        err = ValidationError(
            _Q,
            validation_err=PredicateFailure("got 'x', want 'node1'"),
            failure_cause=_deadline(),
        )
        assert str(err) == "/system/state/hostname: got 'x', want 'node1' (deadline exceeded)"

    def test_timeout_without_validation_err(self):
        err = ValidationError(_Q, failure_cause=_deadline())
        assert str(err) == "/system/state/hostname: deadline exceeded before any values were fetched"

    def test_transport_failure_hides_validation_err(self):
        err = ValidationError(
            _Q,
            validation_err=PredicateFailure("got 'x', want 'node1'"),
            failure_cause=FetchError(FetchErrorKind.UNAVAILABLE, "session reset"),
        )
        assert str(err) == "/system/state/hostname: session reset"

    def test_validation_err_only(self):
        err = ValidationError(_Q, validation_err=PredicateFailure("got no value, want any value"))
        assert str(err) == "/system/state/hostname: got no value, want any value"

    def test_neither_cause(self):
        assert str(ValidationError(_Q)) == "/system/state/hostname: unknown error"

    def test_unprintable_path_still_renders(self):
        err = ValidationError(Query("/a/b["), validation_err=PredicateFailure("got 1, want 2"))
        assert str(err).startswith("<Unprintable path: ")
        assert str(err).endswith(": got 1, want 2")

    def test_non_string_key_value_still_renders(self):
        q = Query(StatePath([PathElem("interface", {"index": 1})]))
        err = ValidationError(q, validation_err=PredicateFailure("got 1, want 2"))
        assert str(err).startswith("<Unprintable path: ")
        assert str(err).endswith(": got 1, want 2")

    def test_default_fetch_error_message(self):
        assert str(FetchError(FetchErrorKind.STREAM_CLOSED)) == "stream closed"


class TestFailureKind:
    def test_transport(self):
        err = ValidationError(_Q, failure_cause=_deadline(), validation_err=PredicateFailure("x"))
        assert err.kind == FailureKind.TRANSPORT
        assert err.timed_out is True

    def test_validation(self):
        err = ValidationError(_Q, validation_err=PredicateFailure("x"))
        assert err.kind == FailureKind.VALIDATION
        assert err.timed_out is False

    def test_unknown(self):
        assert ValidationError(_Q).kind == FailureKind.UNKNOWN

    def test_is_raisable(self):
        err = ValidationError(_Q, validation_err=PredicateFailure("got 1, want 2"))
        with pytest.raises(StatecheckError, match="got 1, want 2"):
            raise err
