"""
statecheck — Shared-Deadline Runner

Checks a table of validators against one client. await_all() gives the whole
table ONE deadline: every validator must pass by the same instant, so a
failing device costs the budget once, not once per validator. Validators run
after the deadline has passed still get their single check, so one timeout
never hides the state of the remaining paths.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

import structlog

from statecheck.client import describe_client
from statecheck.config import AwaitConfig
from statecheck.context import to_seconds
from statecheck.report import ValidationOutcome, ValidationReport

if TYPE_CHECKING:
    from statecheck.client import StateClient
    from statecheck.errors import ValidationError
    from statecheck.query import Query
    from statecheck.validator import Validator

logger = structlog.get_logger().bind(system="statecheck.runner")


async def check_all(
    validators: Sequence[Validator[Any]],
    client: StateClient,
    *,
    base: Query[Any] | None = None,
    config: AwaitConfig | None = None,
) -> ValidationReport:
    """Run check() on every validator."""
    return await _run(
        validators,
        client,
        lambda vd: vd.check(client),
        base=base,
        config=config or AwaitConfig(),
        mode="check",
    )


async def await_all(
    validators: Sequence[Validator[Any]],
    client: StateClient,
    *,
    timeout: float | timedelta | None = None,
    deadline: datetime | None = None,
    base: Query[Any] | None = None,
    config: AwaitConfig | None = None,
) -> ValidationReport:
    """
    Run await_until() on every validator with a single shared deadline.

    The deadline is the explicit one if given, else now + timeout, else
    now + config.default_timeout_s.
    """
    if timeout is not None and deadline is not None:
        raise ValueError("pass either timeout or deadline, not both")
    config = config or AwaitConfig()
    if deadline is None:
        seconds = config.default_timeout_s if timeout is None else to_seconds(timeout)
        deadline = datetime.now(timezone.utc) + timedelta(seconds=seconds)
    shared = deadline

    return await _run(
        validators,
        client,
        lambda vd: vd.await_until(shared, client),
        base=base,
        config=config,
        mode="await",
    )


async def _run(
    validators: Sequence[Validator[Any]],
    client: StateClient,
    run_one: Callable[[Validator[Any]], Awaitable[ValidationError | None]],
    *,
    base: Query[Any] | None,
    config: AwaitConfig,
    mode: str,
) -> ValidationReport:
    start = time.monotonic()
    limit = asyncio.Semaphore(config.max_concurrency) if config.max_concurrency > 0 else None

    async def _one(vd: Validator[Any]) -> ValidationOutcome:
        path = vd.rel_path(base) if base is not None else vd.path()
        if limit is None:
            err = await run_one(vd)
        else:
            async with limit:
                err = await run_one(vd)
        return ValidationOutcome.from_result(path, err)

    outcomes = await asyncio.gather(*(_one(vd) for vd in validators))
    report = ValidationReport(
        results=list(outcomes),
        elapsed_ms=round((time.monotonic() - start) * 1000, 2),
    )

    failed = report.failures()
    log = logger.bind(
        mode=mode,
        client=describe_client(client),
        report_id=report.id,
        total=len(report.results),
        failed=len(failed),
        elapsed_ms=report.elapsed_ms,
    )
    if failed:
        log.warning("validation_batch_failed", paths=[r.path for r in failed])
    else:
        log.info("validation_batch_passed")
    return report
