"""
statecheck — Validator Core

A Validator pairs one Query with one validation function and decides *when*
to run it:

  check        -- fetch once, validate immediately
  await_       -- check, then watch until a value passes or the context ends
  await_for    -- await_ bounded by a timeout; <= 0 is exactly check
  await_until  -- await_ bounded by a deadline; a past deadline is exactly check

Every operation returns None on success or a ValidationError; nothing is
cached between calls, so each call re-fetches.

await_ always runs a plain check first. That avoids opening a watch when the
value is already correct, returns transport failures as-is instead of waiting
on them, and guarantees at least one fetch even if the context has already
expired. Cancelling the context only stops waiting for *new* values.
"""

from __future__ import annotations

from contextlib import aclosing
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

import structlog

from statecheck.client import TRANSPORT_ERRORS, describe_client
from statecheck.context import WaitContext, to_seconds
from statecheck.errors import FetchError, FetchErrorKind, ValidationError
from statecheck.format import format_path, format_relative_path
from statecheck.query import Value

if TYPE_CHECKING:
    from statecheck.client import StateClient
    from statecheck.query import Query

T = TypeVar("T")

ValidationFn = Callable[[Value[T]], BaseException | None]

logger = structlog.get_logger().bind(system="statecheck.validator")


class Validator(Generic[T]):
    """
    A (query, validation function) pair. Immutable and stateless; safe to
    share across concurrent tasks.
    """

    __slots__ = ("_query", "_validation_fn")

    def __init__(self, query: Query[T], validation_fn: ValidationFn[T]) -> None:
        self._query = query
        self._validation_fn = validation_fn

    @property
    def query(self) -> Query[T]:
        return self._query

    def path(self) -> str:
        """String form of the path being validated."""
        return format_path(self._query)

    def rel_path(self, base: Query[Any]) -> str:
        """String form of the path being validated, relative to base."""
        return format_relative_path(base, self._query)

    def __repr__(self) -> str:
        return f"Validator({self.path()!r})"

    # ─── Execution ───────────────────────────────────────────────

    async def check(self, client: StateClient) -> ValidationError | None:
        """Fetch the value once and validate it."""
        log = logger.bind(path=self.path(), client=describe_client(client))
        try:
            value = await client.lookup(self._query)
        except TRANSPORT_ERRORS as exc:
            log.debug("validation_fetch_failed", error=str(exc))
            return ValidationError(self._query, failure_cause=exc)

        if (err := self._validation_fn(value)) is not None:
            log.debug("validation_check_failed", error=str(err))
            return ValidationError(self._query, validation_err=err)
        return None

    async def await_(
        self,
        client: StateClient,
        ctx: WaitContext | None = None,
    ) -> ValidationError | None:
        """
        Wait for the validation to pass; None once it does, an error if the
        watch ends first. Without a ctx, waits until the stream ends or the
        calling task is cancelled.
        """
        checked = await self.check(client)
        if checked is None or checked.failure_cause is not None:
            # Either validation succeeded, or we couldn't fetch the value.
            return checked

        if ctx is None:
            ctx = WaitContext.background()
        log = logger.bind(path=self.path(), client=describe_client(client))
        log.debug("validation_watch_started", remaining_s=ctx.remaining())

        last_invalid: BaseException | None = checked.validation_err
        seen = 0
        try:
            async with aclosing(ctx.bound(client.watch(self._query))) as stream:
                async for value in stream:
                    seen += 1
                    last_invalid = self._validation_fn(value)
                    if last_invalid is None:
                        log.debug("validation_await_passed", values_seen=seen)
                        return None
            cause: BaseException = FetchError(
                FetchErrorKind.STREAM_CLOSED,
                "watch stream closed before a valid value was received",
            )
        except TRANSPORT_ERRORS as exc:
            cause = exc

        failed = ValidationError(self._query, validation_err=last_invalid, failure_cause=cause)
        log.info("validation_await_failed", values_seen=seen, error=str(failed))
        return failed

    async def await_for(
        self,
        timeout: float | timedelta,
        client: StateClient,
    ) -> ValidationError | None:
        """await_ with a deadline of now + timeout; <= 0 is exactly check()."""
        if to_seconds(timeout) <= 0:
            return await self.check(client)
        with WaitContext.background().with_timeout(timeout) as ctx:
            return await self.await_(client, ctx)

    async def await_until(
        self,
        deadline: datetime,
        client: StateClient,
    ) -> ValidationError | None:
        """await_ with the given deadline; a deadline not in the future is exactly check()."""
        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=timezone.utc)
        if deadline <= datetime.now(timezone.utc):
            return await self.check(client)
        with WaitContext.background().with_deadline(deadline) as ctx:
            return await self.await_(client, ctx)
