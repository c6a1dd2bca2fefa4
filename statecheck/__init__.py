"""
statecheck — Validation Helpers for Path-Addressed State

Declare *what* you expect at *which* path; statecheck handles *when*:
once (check), or repeatedly within a time budget (await_, await_for,
await_until) until the expectation holds or the budget runs out.

    validators = [
        statecheck.equal(Query("/system/state/hostname"), "node1"),
        statecheck.present(Query("/system/state/boot-time")),
        statecheck.not_equal(Query("/interfaces/interface[name=eth0]/state/oper-status"), "DOWN"),
    ]
    deadline = datetime.now(timezone.utc) + timedelta(seconds=1)
    for vd in validators:
        if (err := await vd.await_until(deadline, client)) is not None:
            pytest.fail(str(err))  # e.g. "/system/state/hostname: got 'x', want 'node1'"

Prefer one shared deadline with await_until (or runner.await_all) over
await_for per validator: on a failing device, await_for would spend the
full timeout once per validator.
"""

from statecheck.client import StateClient
from statecheck.config import StatecheckConfig, load_config
from statecheck.context import WaitContext
from statecheck.errors import (
    FailureKind,
    FetchError,
    FetchErrorKind,
    PathResolutionError,
    StatecheckError,
    ValidationError,
    is_timeout_cause,
)
from statecheck.format import format_path, format_relative_path, format_value
from statecheck.paths import PathElem, StatePath
from statecheck.predicates import (
    PredicateFailure,
    equal,
    equal_or_nil,
    not_equal,
    not_present,
    predicate,
    present,
    unordered_equal,
    validate,
)
from statecheck.query import Query, Value
from statecheck.report import ValidationOutcome, ValidationReport
from statecheck.runner import await_all, check_all
from statecheck.validator import Validator

__all__ = [
    "FailureKind",
    "FetchError",
    "FetchErrorKind",
    "PathElem",
    "PathResolutionError",
    "PredicateFailure",
    "Query",
    "StateClient",
    "StatePath",
    "StatecheckConfig",
    "StatecheckError",
    "ValidationError",
    "ValidationOutcome",
    "ValidationReport",
    "Validator",
    "Value",
    "WaitContext",
    "await_all",
    "check_all",
    "equal",
    "equal_or_nil",
    "format_path",
    "format_relative_path",
    "format_value",
    "is_timeout_cause",
    "load_config",
    "not_equal",
    "not_present",
    "predicate",
    "present",
    "unordered_equal",
    "validate",
]
