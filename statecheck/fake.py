"""
statecheck — Fake State Source

An in-memory, path-addressed state tree that implements StateClient. Tests
drive it by setting and deleting values; every change is pushed to the
watchers of that path, the way a live subscription delivers updates.

    source = FakeStateSource()
    source.set("/system/state/hostname", "node1")
    assert await statecheck.equal(hostname, "node1").check(source) is None

Each watch stream first delivers the current value. Transport failures can
be scripted with fail_next_lookup() and fail_watch().
"""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Any, AsyncIterator, TypeVar

import structlog

from statecheck.config import FakeSourceConfig
from statecheck.errors import FetchError, FetchErrorKind
from statecheck.paths import StatePath
from statecheck.query import Query, Value

T = TypeVar("T")

logger = structlog.get_logger().bind(system="statecheck.fake")

_CLOSED = object()


class _Watcher:
    """One watch stream's buffered updates."""

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def push(self, item: Any) -> None:
        try:
            self.queue.put_nowait(item)
        except asyncio.QueueFull:
            # Watcher is too slow: drop the oldest update and retry
            self.queue.get_nowait()
            self.dropped += 1
            self.queue.put_nowait(item)


class FakeStateSource:
    """In-memory StateClient for tests."""

    def __init__(
        self,
        config: FakeSourceConfig | None = None,
        name: str = "fake",
    ) -> None:
        self._config = config or FakeSourceConfig()
        self.name = name
        self._state: dict[str, Any] = {}
        self._watchers: dict[str, list[_Watcher]] = defaultdict(list)
        self._lookup_failures: deque[BaseException] = deque()
        self._watch_failure: BaseException | None = None
        self.lookups = 0
        self._log = logger.bind(source=name)

    # ─── Mutation ────────────────────────────────────────────────

    def set(self, where: Query[Any] | StatePath | str, value: Any) -> None:
        """Set the value at a path and notify its watchers."""
        path = _key(where)
        self._state[path] = value
        self._publish(path, Value.of(value, path=StatePath.parse(path)))

    def delete(self, where: Query[Any] | StatePath | str) -> None:
        """Remove the value at a path; watchers observe an absent value."""
        path = _key(where)
        self._state.pop(path, None)
        self._publish(path, Value.absent(path=StatePath.parse(path)))

    def close_watchers(self, where: Query[Any] | StatePath | str) -> None:
        """End every open watch stream on a path, as a server hang-up would."""
        for watcher in self._watchers.get(_key(where), []):
            watcher.push(_CLOSED)

    def fail_next_lookup(self, error: BaseException | None = None) -> None:
        """Make the next lookup raise error (UNAVAILABLE by default)."""
        if error is None:
            error = FetchError(FetchErrorKind.UNAVAILABLE, "state source unavailable")
        self._lookup_failures.append(error)

    def fail_watch(self, error: BaseException | None = None) -> None:
        """
        Make open and future watch streams raise error. Pass None to clear a
        previous failure for future streams.
        """
        self._watch_failure = error
        if error is None:
            return
        for watchers in self._watchers.values():
            for watcher in watchers:
                watcher.push(error)

    def watcher_count(self, where: Query[Any] | StatePath | str) -> int:
        return len(self._watchers.get(_key(where), []))

    def _publish(self, path: str, value: Value[Any]) -> None:
        watchers = self._watchers.get(path, [])
        for watcher in watchers:
            watcher.push(value)
        self._log.debug("fake_state_published", path=path, watchers=len(watchers))

    # ─── StateClient ─────────────────────────────────────────────

    async def lookup(self, query: Query[T]) -> Value[T]:
        self.lookups += 1
        if self._lookup_failures:
            raise self._lookup_failures.popleft()
        path = _key(query)
        if path not in self._state:
            return Value.absent(path=query.path)
        return Value.of(self._state[path], path=query.path)

    async def watch(self, query: Query[T]) -> AsyncIterator[Value[T]]:
        path = _key(query)
        if self._watch_failure is not None:
            raise self._watch_failure
        watcher = _Watcher(self._config.watch_queue_size)
        # Like a streaming subscription, the current value is delivered first.
        if path in self._state:
            watcher.push(Value.of(self._state[path], path=query.path))
        else:
            watcher.push(Value.absent(path=query.path))
        self._watchers[path].append(watcher)
        self._log.debug("fake_watch_opened", path=path)
        try:
            while True:
                item = await watcher.queue.get()
                if item is _CLOSED:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self._watchers[path].remove(watcher)
            if not self._watchers[path]:
                del self._watchers[path]
            self._log.debug("fake_watch_closed", path=path, dropped=watcher.dropped)


def _key(where: Query[Any] | StatePath | str) -> str:
    if isinstance(where, Query):
        where = where.path
    if isinstance(where, str):
        where = StatePath.parse(where)
    return str(where)
