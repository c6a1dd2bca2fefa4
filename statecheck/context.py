"""
statecheck — Wait Contexts

A WaitContext bounds the waiting phase of Validator.await_(): it carries an
optional deadline and can be cancelled cooperatively. Contexts form a tree;
a derived context expires no later than its parent and is cancelled when its
parent is.

Derived contexts are context managers and cancel themselves on exit, so the
resources held by a bounded wait are released on every exit path:

    with WaitContext.background().with_timeout(5.0) as ctx:
        err = await validator.await_(client, ctx)

bound() applies a context to a raw async value stream; the bounded stream
raises FetchError(DEADLINE_EXCEEDED) or FetchError(CANCELLED) when the
context ends, and always closes the underlying stream.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import AsyncIterable, AsyncIterator, TypeVar

from statecheck.errors import FetchError, FetchErrorKind

T = TypeVar("T")


class WaitContext:
    """Cancellable deadline scope. Deadlines are time.monotonic() values."""

    def __init__(
        self,
        deadline: float | None = None,
        parent: WaitContext | None = None,
    ) -> None:
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline
        self._parent = parent
        self._cancelled = False
        self._waiters: list[asyncio.Event] = []
        self._children: list[WaitContext] = []
        if parent is not None:
            if parent.cancelled:
                self._cancelled = True
            else:
                parent._children.append(self)

    @classmethod
    def background(cls) -> WaitContext:
        """A root context that never expires on its own."""
        return cls()

    # ─── Derivation ──────────────────────────────────────────────

    def with_timeout(self, timeout: float | timedelta) -> WaitContext:
        seconds = to_seconds(timeout)
        return WaitContext(deadline=time.monotonic() + seconds, parent=self)

    def with_deadline(self, deadline: datetime) -> WaitContext:
        """Derive a context expiring at a wall-clock deadline."""
        return WaitContext(deadline=_to_monotonic(deadline), parent=self)

    def with_cancel(self) -> WaitContext:
        return WaitContext(parent=self)

    # ─── State ───────────────────────────────────────────────────

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline (clamped at 0), or None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def err(self) -> FetchError | None:
        """The error that ended this context, or None while it is live."""
        if self._cancelled:
            return FetchError(FetchErrorKind.CANCELLED, "context canceled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return FetchError(FetchErrorKind.DEADLINE_EXCEEDED, "context deadline exceeded")
        return None

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for event in self._waiters:
            event.set()
        for child in list(self._children):
            child.cancel()
        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)

    def __enter__(self) -> WaitContext:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()

    # ─── Bounded streams ─────────────────────────────────────────

    async def _until_cancelled(self) -> None:
        event = asyncio.Event()
        self._waiters.append(event)
        if self._cancelled:
            event.set()
        try:
            await event.wait()
        finally:
            self._waiters.remove(event)

    async def bound(self, stream: AsyncIterable[T]) -> AsyncIterator[T]:
        """
        Yield items from stream until it ends or this context does.

        Raises FetchError when the context's deadline passes or it is
        cancelled while waiting for the next item. Items already delivered
        are never retracted.
        """
        iterator = aiter(stream)
        try:
            while True:
                if (err := self.err()) is not None:
                    raise err
                step = asyncio.ensure_future(anext(iterator))
                stop = asyncio.ensure_future(self._until_cancelled())
                try:
                    await asyncio.wait(
                        {step, stop},
                        timeout=self.remaining(),
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    # The iterator can't be closed while a step is in flight.
                    for fut in (step, stop):
                        if not fut.done():
                            fut.cancel()
                    await asyncio.wait({step, stop})
                if step.cancelled():
                    raise self.err() or FetchError(
                        FetchErrorKind.DEADLINE_EXCEEDED, "context deadline exceeded"
                    )
                try:
                    item = step.result()
                except StopAsyncIteration:
                    return
                yield item
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()


def to_seconds(timeout: float | timedelta) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise TypeError(f"timeout must be seconds or a timedelta, got {type(timeout).__name__}")
    return float(timeout)


def _to_monotonic(deadline: datetime) -> float:
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    delta = (deadline - datetime.now(timezone.utc)).total_seconds()
    return time.monotonic() + delta
