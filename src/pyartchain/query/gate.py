"""Conditional fetch gate.

Binds one logical query (a key source plus a loader) to the cache and
keeps it enabled only while every precondition holds.  Precondition
sources such as the session store push changes through ``watch``; the
gate recomputes and starts the load itself, so consumers never have to
re-trigger a fetch after logging in or after an identifier arrives.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Generic, Protocol, TypeVar

from pyartchain.query.cache import QueryCache
from pyartchain.query.entry import EntrySnapshot
from pyartchain.query.keys import QueryKey
from pyartchain.query.policy import all_conditions

_logger = logging.getLogger(__name__)

V = TypeVar("V")

KeySource = QueryKey | Callable[[], QueryKey | None] | None
Condition = Callable[[], object]


class Watchable(Protocol):
    """Anything that can push change notifications."""

    def subscribe(self, listener: Callable[..., None]) -> Callable[[], None]:
        ...


class ConditionalFetch(Generic[V]):
    """A cache query that runs only while its preconditions hold.

    Parameters
    ----------
    cache : QueryCache
        Cache the query reads from and loads into.
    key : QueryKey, callable or None
        The key, or a callable recomputed on every :meth:`refresh`.  A
        ``None`` key means an identifier is missing; the query stays idle.
    loader : callable
        ``loader(key)`` returning an awaitable value.
    conditions : sequence of callables
        Extra preconditions, all of which must be truthy.
    enabled : bool
        Explicit caller flag, AND-ed with the conditions.
    stale_time : float or None
        Freshness window forwarded to the cache.
    retry : int
        Extra loader attempts forwarded to the cache.
    """

    def __init__(
        self,
        cache: QueryCache,
        key: KeySource,
        loader: Callable[[QueryKey], Awaitable[V]],
        *,
        conditions: Sequence[Condition] = (),
        enabled: bool = True,
        stale_time: float | None = None,
        retry: int = 0,
    ) -> None:
        self._cache = cache
        self._key_source = key
        self._loader = loader
        self._conditions = tuple(conditions)
        self._explicit = enabled
        self._stale_time = stale_time
        self._retry = retry
        self._key: QueryKey | None = None
        self._enabled = False
        self._closed = False
        self._cache_unsubscribe: Callable[[], None] | None = None
        self._source_unsubscribes: list[Callable[[], None]] = []
        self._listeners: list[Callable[[EntrySnapshot[V]], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self.refresh()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def key(self) -> QueryKey | None:
        return self._key

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def snapshot(self) -> EntrySnapshot[V]:
        return self._cache.peek(self._key)

    def _resolve_key(self) -> QueryKey | None:
        source = self._key_source
        if source is None or isinstance(source, QueryKey):
            return source
        return source()

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def set_enabled(self, enabled: bool) -> None:
        self._explicit = enabled
        self.refresh()

    def watch(self, source: Watchable) -> ConditionalFetch[V]:
        """Recompute whenever *source* reports a change."""
        self._source_unsubscribes.append(source.subscribe(self._on_source_change))
        self.refresh()
        return self

    def _on_source_change(self, *_: Any) -> None:
        self.refresh()

    def refresh(self) -> None:
        """Recompute key and ``enabled``; start a load when one is due."""
        if self._closed:
            return
        key = self._resolve_key()
        enabled = self._explicit and key is not None and all_conditions(self._conditions)

        key_changed = key != self._key
        if key_changed:
            self._bind(key)
        enabled_changed = enabled != self._enabled
        self._enabled = enabled

        if enabled_changed or key_changed:
            _logger.debug("Query %r enabled=%s", key, enabled)
        if enabled:
            self._maybe_fetch()
        if enabled_changed or key_changed:
            self._emit(self.snapshot)

    def _bind(self, key: QueryKey | None) -> None:
        if self._cache_unsubscribe is not None:
            self._cache_unsubscribe()
            self._cache_unsubscribe = None
        self._key = key
        if key is not None:
            self._cache_unsubscribe = self._cache.subscribe(key, self._on_entry_change)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _maybe_fetch(self) -> None:
        key = self._key
        if key is None or not self._cache.needs_fetch(key, self._stale_time):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running loop; load for %r deferred to the next refresh", key)
            return
        task = loop.create_task(
            self._cache.fetch(
                key,
                functools.partial(self._loader, key),
                stale_time=self._stale_time,
                retry=self._retry,
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_entry_change(self, snapshot: EntrySnapshot[V]) -> None:
        if snapshot.key != self._key:
            return
        if snapshot.invalidated and self._enabled:
            self._maybe_fetch()
        self._emit(snapshot)

    async def wait(self) -> EntrySnapshot[V]:
        """Wait for loads started by this gate, then return the snapshot."""
        pending = [task for task in self._tasks if not task.done()]
        while pending:
            await asyncio.gather(*(asyncio.shield(task) for task in pending), return_exceptions=True)
            pending = [task for task in self._tasks if not task.done()]
        return self.snapshot

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[EntrySnapshot[V]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, snapshot: EntrySnapshot[V]) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Query consumer callback failed for %r", self._key, exc_info=True)

    def close(self) -> None:
        """Detach from the cache and sources.  Running loads are left alone."""
        self._closed = True
        if self._cache_unsubscribe is not None:
            self._cache_unsubscribe()
            self._cache_unsubscribe = None
        for unsubscribe in self._source_unsubscribes:
            unsubscribe()
        self._source_unsubscribes.clear()
        self._listeners.clear()
