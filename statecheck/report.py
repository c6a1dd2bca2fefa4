"""
statecheck — Validation Reports

Serializable summary of a batch of validator runs, one outcome per path.
"""

from __future__ import annotations

from pydantic import Field

from statecheck.common import Identified, StatecheckModel, Timestamped
from statecheck.errors import FailureKind, ValidationError


class ValidationOutcome(StatecheckModel):
    path: str
    passed: bool
    message: str = ""
    failure_kind: FailureKind | None = None
    timed_out: bool = False

    @classmethod
    def from_result(cls, path: str, err: ValidationError | None) -> ValidationOutcome:
        if err is None:
            return cls(path=path, passed=True)
        return cls(
            path=path,
            passed=False,
            message=str(err),
            failure_kind=err.kind,
            timed_out=err.timed_out,
        )


class ValidationReport(Identified, Timestamped):
    """Outcomes of one check_all()/await_all() run, in validator order."""

    results: list[ValidationOutcome] = Field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    def failures(self) -> list[ValidationOutcome]:
        return [r for r in self.results if not r.passed]

    def summary(self) -> str:
        """One line per failure, or "all N validations passed"."""
        failed = self.failures()
        if not failed:
            return f"all {len(self.results)} validations passed"
        return "\n".join(r.message for r in failed)
