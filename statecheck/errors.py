"""
statecheck — Error Hierarchy

All exceptions produced by the validation core.

Two failure families must never be mixed:
  FetchError       -> the state source could not deliver a value
                      (surfaced as ValidationError.failure_cause)
  validation error -> a value arrived but the validation function rejected it
                      (surfaced as ValidationError.validation_err)

ValidationError is *returned* by Validator operations rather than raised, so
that table-driven tests can report every failing path. It is still an
exception and may be raised by the caller.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from statecheck.query import Query


class StatecheckError(RuntimeError):
    """Base for all statecheck errors."""


class PathResolutionError(StatecheckError):
    """A path could not be parsed or resolved into elements."""


# ─── Transport Failures ──────────────────────────────────────────


class FetchErrorKind(enum.StrEnum):
    """Why the state source failed to deliver a value."""

    DEADLINE_EXCEEDED = "deadline_exceeded"
    CANCELLED = "cancelled"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    STREAM_CLOSED = "stream_closed"  # Watch ended without a terminal error
    INTERNAL = "internal"


class FetchError(StatecheckError):
    """
    A lookup or watch could not obtain a value.

    Clients tag every failure with a FetchErrorKind so the core can tell a
    deadline from any other transport problem without inspecting the
    client's own exception types.
    """

    def __init__(self, kind: FetchErrorKind, message: str = "") -> None:
        self.kind = kind
        self.message = message or kind.value.replace("_", " ")
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"FetchError({self.kind.value!r}, {self.message!r})"


def is_timeout_cause(err: BaseException | None) -> bool:
    """True iff err represents the fetch mechanism's deadline expiring."""
    if err is None:
        return False
    if isinstance(err, FetchError):
        return err.kind == FetchErrorKind.DEADLINE_EXCEEDED
    return isinstance(err, TimeoutError)


# ─── Validation Failures ─────────────────────────────────────────


class FailureKind(enum.StrEnum):
    """Which cause a ValidationError carries."""

    TRANSPORT = "transport"  # failure_cause set
    VALIDATION = "validation"  # only validation_err set
    UNKNOWN = "unknown"  # neither; indicates a defect


class ValidationError(StatecheckError):
    """
    A Validator operation did not pass.

    validation_err is set when a value was fetched and the validation function
    rejected it. failure_cause is set when something else went wrong, such as
    a network error. check() errors carry exactly one of the two; await errors
    always carry failure_cause (most commonly the deadline that ended the
    wait) and frequently also the most recent validation_err.
    """

    def __init__(
        self,
        query: Query[Any] | None,
        *,
        validation_err: BaseException | None = None,
        failure_cause: BaseException | None = None,
    ) -> None:
        self.query = query
        self.validation_err = validation_err
        self.failure_cause = failure_cause
        super().__init__(self._render())

    @property
    def kind(self) -> FailureKind:
        if self.failure_cause is not None:
            return FailureKind.TRANSPORT
        if self.validation_err is not None:
            return FailureKind.VALIDATION
        return FailureKind.UNKNOWN

    @property
    def timed_out(self) -> bool:
        return is_timeout_cause(self.failure_cause)

    def _path_str(self) -> str:
        from statecheck.format import format_path

        return format_path(self.query)

    def _render(self) -> str:
        path = self._path_str()
        if self.timed_out:
            # The common case for a failed await: report what we last saw.
            if self.validation_err is not None:
                return f"{path}: {self.validation_err} (deadline exceeded)"
            return f"{path}: deadline exceeded before any values were fetched"
        if self.failure_cause is not None:
            return f"{path}: {self.failure_cause}"
        if self.validation_err is not None:
            return f"{path}: {self.validation_err}"
        return f"{path}: unknown error"

    def __str__(self) -> str:
        return self._render()

    def __repr__(self) -> str:
        return (
            f"ValidationError(path={self._path_str()!r}, "
            f"validation_err={self.validation_err!r}, "
            f"failure_cause={self.failure_cause!r})"
        )
