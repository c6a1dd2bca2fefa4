"""
Tests for the Validator core.

Covers:
  - check(): validation vs. transport failures
  - await_(): short-circuiting, passing after bad values, deadline,
    cancellation, transport errors, stream closure, resource release
  - await_for() / await_until() degrading to check()
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

import pytest

from statecheck import predicates as check
from statecheck.context import WaitContext
from statecheck.errors import FailureKind, FetchError, FetchErrorKind
from statecheck.fake import FakeStateSource
from statecheck.paths import PathElem, StatePath
from statecheck.query import Query, Value

_Q = Query("/system/state/boot-time", int)


class _RecordingClient:
    """Wraps a FakeStateSource and counts the calls the core makes."""

    def __init__(self, source: FakeStateSource) -> None:
        self.source = source
        self.lookups = 0
        self.watches = 0

    async def lookup(self, query: Query[Any]) -> Value[Any]:
        self.lookups += 1
        return await self.source.lookup(query)

    def watch(self, query: Query[Any]) -> AsyncIterator[Value[Any]]:
        self.watches += 1
        return self.source.watch(query)


def _make_source(value: object | None = None) -> FakeStateSource:
    source = FakeStateSource()
    if value is not None:
        source.set(_Q, value)
    return source


async def _until_watching(source: FakeStateSource, query: Query[Any] = _Q) -> None:
    for _ in range(1000):
        if source.watcher_count(query):
            return
        await asyncio.sleep(0)
    raise AssertionError("watch was never opened")


class TestCheck:
    @pytest.mark.asyncio
    async def test_passes(self):
        assert await check.equal(_Q, 5).check(_make_source(5)) is None

    @pytest.mark.asyncio
    async def test_validation_failure_sets_only_validation_err(self):
        err = await check.equal(_Q, 6).check(_make_source(5))
        assert err.validation_err is not None
        assert err.failure_cause is None
        assert "got 5, want 6" in str(err)

    @pytest.mark.asyncio
    async def test_fetch_failure_sets_only_failure_cause(self):
        source = _make_source(5)
        source.fail_next_lookup()
        calls = []
        vd = check.validate(_Q, lambda v: calls.append(v))
        err = await vd.check(source)
        assert err.failure_cause is not None
        assert err.validation_err is None
        assert err.kind == FailureKind.TRANSPORT
        assert str(err) == "/system/state/boot-time: state source unavailable"
        assert calls == []

    @pytest.mark.asyncio
    async def test_unprintable_path_does_not_break_check(self):
        class _AbsentClient:
            async def lookup(self, query):
                return Value.absent(path=query.path)

        q = Query(StatePath([PathElem("interface", {"index": 1})]))
        err = await check.present(q).check(_AbsentClient())
        assert err.kind == FailureKind.VALIDATION
        assert str(err).startswith("<Unprintable path: ")

    @pytest.mark.asyncio
    async def test_client_timeout_is_a_deadline(self):
        source = _make_source(5)
        source.fail_next_lookup(TimeoutError())
        err = await check.equal(_Q, 5).check(source)
        assert str(err) == "/system/state/boot-time: deadline exceeded before any values were fetched"

    @pytest.mark.asyncio
    async def test_non_transport_errors_propagate(self):
        source = _make_source(5)
        source.fail_next_lookup(KeyError("bug"))
        with pytest.raises(KeyError):
            await check.equal(_Q, 5).check(source)

    @pytest.mark.asyncio
    async def test_each_call_refetches(self):
        source = _make_source(5)
        vd = check.equal(_Q, 6)
        assert await vd.check(source) is not None
        source.set(_Q, 6)
        assert await vd.check(source) is None
        assert source.lookups == 2


class TestAwait:
    @pytest.mark.asyncio
    async def test_already_valid_skips_watch(self):
        client = _RecordingClient(_make_source(5))
        assert await check.equal(_Q, 5).await_for(5.0, client) is None
        assert client.lookups == 1
        assert client.watches == 0

    @pytest.mark.asyncio
    async def test_fetch_failure_returned_without_waiting(self):
        source = _make_source(4)
        source.fail_next_lookup()
        client = _RecordingClient(source)
        err = await check.equal(_Q, 5).await_for(5.0, client)
        assert err.failure_cause.kind == FetchErrorKind.UNAVAILABLE
        assert client.watches == 0

    @pytest.mark.asyncio
    async def test_passes_after_bad_values(self):
        source = _make_source(4)
        task = asyncio.create_task(check.equal(_Q, 5).await_for(5.0, source))
        await _until_watching(source)
        source.set(_Q, 3)
        source.set(_Q, 5)
        assert await task is None
        assert source.watcher_count(_Q) == 0

    @pytest.mark.asyncio
    async def test_passes_after_value_appears(self):
        source = _make_source()
        task = asyncio.create_task(check.present(_Q).await_for(5.0, source))
        await _until_watching(source)
        source.set(_Q, 1700000000)
        assert await task is None

    @pytest.mark.asyncio
    async def test_deadline_reports_last_value(self):
        source = _make_source(4)
        err = await check.equal(_Q, 5).await_for(0.05, source)
        assert "deadline exceeded" in str(err)
        assert "got 4, want 5" in str(err)
        assert err.failure_cause.kind == FetchErrorKind.DEADLINE_EXCEEDED
        assert err.validation_err is not None
        assert source.watcher_count(_Q) == 0

    @pytest.mark.asyncio
    async def test_deadline_reports_most_recent_failure(self):
        source = _make_source(4)
        task = asyncio.create_task(check.equal(_Q, 5).await_for(0.2, source))
        await _until_watching(source)
        source.set(_Q, 7)
        err = await task
        assert str(err) == "/system/state/boot-time: got 7, want 5 (deadline exceeded)"

    @pytest.mark.asyncio
    async def test_expired_context_still_checks(self):
        source = _make_source(5)
        ctx = WaitContext.background().with_timeout(0)
        assert await check.equal(_Q, 5).await_(source, ctx) is None

        err = await check.equal(_Q, 6).await_(source, ctx)
        assert str(err) == "/system/state/boot-time: got 5, want 6 (deadline exceeded)"

    @pytest.mark.asyncio
    async def test_cancelled_context(self):
        source = _make_source(4)
        with WaitContext.background().with_cancel() as ctx:
            task = asyncio.create_task(check.equal(_Q, 5).await_(source, ctx))
            await _until_watching(source)
            ctx.cancel()
            err = await task
        assert err.failure_cause.kind == FetchErrorKind.CANCELLED
        assert str(err) == "/system/state/boot-time: context canceled"
        assert "got 4, want 5" in str(err.validation_err)
        assert source.watcher_count(_Q) == 0

    @pytest.mark.asyncio
    async def test_parent_cancellation_reaches_derived_context(self):
        source = _make_source(4)
        parent = WaitContext.background().with_cancel()
        with parent.with_timeout(10.0) as ctx:
            task = asyncio.create_task(check.equal(_Q, 5).await_(source, ctx))
            await _until_watching(source)
            parent.cancel()
            err = await task
        assert err.failure_cause.kind == FetchErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_watch_transport_error(self):
        source = _make_source(4)
        task = asyncio.create_task(check.equal(_Q, 5).await_for(5.0, source))
        await _until_watching(source)
        source.fail_watch(FetchError(FetchErrorKind.UNAVAILABLE, "session reset"))
        err = await task
        assert str(err) == "/system/state/boot-time: session reset"
        assert err.validation_err is not None

    @pytest.mark.asyncio
    async def test_watch_refused_at_open(self):
        source = _make_source(4)
        source.fail_watch(FetchError(FetchErrorKind.UNAVAILABLE, "subscribe refused"))
        err = await check.equal(_Q, 5).await_for(5.0, source)
        assert str(err) == "/system/state/boot-time: subscribe refused"

    @pytest.mark.asyncio
    async def test_stream_closed(self):
        source = _make_source(4)
        task = asyncio.create_task(check.equal(_Q, 5).await_for(5.0, source))
        await _until_watching(source)
        source.close_watchers(_Q)
        err = await task
        assert err.failure_cause.kind == FetchErrorKind.STREAM_CLOSED
        assert str(err) == (
            "/system/state/boot-time: watch stream closed before a valid value was received"
        )

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self):
        source = _make_source(4)
        task = asyncio.create_task(check.equal(_Q, 5).await_(source))
        await _until_watching(source)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert source.watcher_count(_Q) == 0

    @pytest.mark.asyncio
    async def test_concurrent_awaits_share_a_validator(self):
        source = _make_source(4)
        vd = check.equal(_Q, 5)
        tasks = [asyncio.create_task(vd.await_for(5.0, source)) for _ in range(3)]
        for _ in range(1000):
            if source.watcher_count(_Q) == 3:
                break
            await asyncio.sleep(0)
        source.set(_Q, 5)
        assert await asyncio.gather(*tasks) == [None, None, None]


class TestAwaitForUntil:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [0, -1.5, timedelta(0), timedelta(seconds=-3)])
    async def test_non_positive_timeout_is_check(self, timeout):
        client = _RecordingClient(_make_source(4))
        vd = check.equal(_Q, 5)
        awaited = await vd.await_for(timeout, client)
        checked = await vd.check(client)
        assert str(awaited) == str(checked)
        assert awaited.failure_cause is None
        assert client.watches == 0

    @pytest.mark.asyncio
    async def test_past_deadline_is_check(self):
        client = _RecordingClient(_make_source(4))
        vd = check.equal(_Q, 5)
        past = datetime.now(timezone.utc) - timedelta(seconds=1)
        awaited = await vd.await_until(past, client)
        assert str(awaited) == str(await vd.check(client))
        assert client.watches == 0

    @pytest.mark.asyncio
    async def test_naive_deadline_is_utc(self):
        client = _RecordingClient(_make_source(4))
        past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=1)
        err = await check.equal(_Q, 5).await_until(past, client)
        assert err.failure_cause is None
        assert client.watches == 0

    @pytest.mark.asyncio
    async def test_future_deadline_waits(self):
        source = _make_source(4)
        deadline = datetime.now(timezone.utc) + timedelta(seconds=5)
        task = asyncio.create_task(check.equal(_Q, 5).await_until(deadline, source))
        await _until_watching(source)
        source.set(_Q, 5)
        assert await task is None

    @pytest.mark.asyncio
    async def test_future_deadline_expires(self):
        source = _make_source(4)
        deadline = datetime.now(timezone.utc) + timedelta(milliseconds=50)
        err = await check.equal(_Q, 5).await_until(deadline, source)
        assert err.timed_out is True

    @pytest.mark.asyncio
    async def test_timeout_type_checked(self):
        with pytest.raises(TypeError):
            await check.equal(_Q, 5).await_for("5s", _make_source(5))


class TestPath:
    def test_path(self):
        assert check.present(_Q).path() == "/system/state/boot-time"

    def test_rel_path(self):
        base = Query("/system")
        assert check.present(_Q).rel_path(base) == "state/boot-time"

    def test_unprintable_path(self):
        assert check.present(Query("/system[")).path().startswith("<Unprintable path")
