"""Keyed fetch cache.

This is the only component allowed to mutate cache entries.  For every
key there is at most one entry and at most one running load; callers that
ask for a key while its load is running join that load and receive the
same snapshot.  Running loads are tracked per key, apart from the
entries, so evicting an entry never allows a second concurrent load.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from pyartchain.query.entry import CacheEntry, EntrySnapshot, ErrorInfo, FetchStatus
from pyartchain.query.keys import QueryKey
from pyartchain.query.policy import needs_fetch

_logger = logging.getLogger(__name__)

V = TypeVar("V")

Loader = Callable[[], Awaitable[V]]
Listener = Callable[[EntrySnapshot[Any]], None]
KeyPredicate = Callable[[QueryKey], bool]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QueryCache:
    """Process-wide table of fetched values keyed by :class:`QueryKey`.

    Parameters
    ----------
    clock : callable
        Returns the current time; ``fetched_at`` and staleness use it.
    default_stale_time : float or None
        Freshness window in seconds for fetches that do not pass one.
    retry_delay : float
        Seconds to sleep between retry attempts of a failing loader.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        default_stale_time: float | None = None,
        retry_delay: float = 0.0,
    ) -> None:
        self._clock = clock
        self._default_stale_time = default_stale_time
        self._retry_delay = retry_delay
        self._entries: dict[QueryKey, CacheEntry[Any]] = {}
        self._listeners: dict[QueryKey, list[Listener]] = {}
        self._inflight: dict[QueryKey, asyncio.Task[EntrySnapshot[Any]]] = {}

    def _entry(self, key: QueryKey) -> CacheEntry[Any]:
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
        return entry

    def _stale_time(self, stale_time: float | None) -> float | None:
        return self._default_stale_time if stale_time is None else stale_time

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def peek(self, key: QueryKey | None) -> EntrySnapshot[Any]:
        """Current snapshot for *key* without triggering a load."""
        if key is None:
            return EntrySnapshot(key=None)
        entry = self._entries.get(key)
        if entry is None:
            return EntrySnapshot(key=key)
        return entry.snapshot()

    def needs_fetch(self, key: QueryKey, stale_time: float | None = None) -> bool:
        return needs_fetch(self._entries.get(key), self._clock(), self._stale_time(stale_time))

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch(
        self,
        key: QueryKey | None,
        loader: Loader[V],
        *,
        enabled: bool = True,
        stale_time: float | None = None,
        retry: int = 0,
    ) -> EntrySnapshot[V]:
        """Return a fresh snapshot for *key*, loading it at most once.

        A ``None`` key or ``enabled=False`` never loads.  A running load is
        joined.  A fresh successful entry is returned as is.  Loader
        failures are recorded on the entry, not raised.
        """
        if key is None:
            return EntrySnapshot(key=None)

        entry = self._entry(key)
        if not enabled:
            return entry.snapshot()

        task = self._inflight.get(key)
        if task is not None:
            _logger.debug("Joining in-flight fetch for %r", key)
            if entry.status != FetchStatus.LOADING:
                # Re-created after eviction while the load kept running.
                entry.begin()
                self._notify(entry)
        elif needs_fetch(entry, self._clock(), self._stale_time(stale_time)):
            task = self._start(entry, loader, retry)
        else:
            return entry.snapshot()

        # Shielded: a joiner being cancelled must not abort the shared load.
        return await asyncio.shield(task)

    def _start(self, entry: CacheEntry[V], loader: Loader[V], retry: int) -> asyncio.Task[EntrySnapshot[V]]:
        entry.begin()
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(entry, loader, retry), name=f"pyartchain-query:{entry.key.resource}")
        self._inflight[entry.key] = task
        _logger.debug("Fetch started for %r", entry.key)
        self._notify(entry)
        return task

    def _target(self, entry: CacheEntry[V]) -> CacheEntry[V]:
        """The entry currently holding *entry*'s key, or *entry* when evicted."""
        return self._entries.get(entry.key, entry)

    async def _run(self, entry: CacheEntry[V], loader: Loader[V], retry: int) -> EntrySnapshot[V]:
        key = entry.key
        attempts = max(retry, 0) + 1
        try:
            for attempt in range(1, attempts + 1):
                try:
                    value = await loader()
                except Exception as exc:
                    _logger.debug("Fetch %r attempt=%d failed", key, attempt, exc_info=True)
                    if attempt == attempts:
                        self._target(entry).fail(ErrorInfo.from_exception(exc))
                    elif self._retry_delay > 0:
                        await asyncio.sleep(self._retry_delay)
                    continue
                self._target(entry).succeed(value, self._clock())
                break
        except asyncio.CancelledError:
            self._target(entry).fail(ErrorInfo(type="CancelledError", message="fetch cancelled"))
            raise
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]
            self._notify(self._target(entry))
        return self._target(entry).snapshot()

    # ------------------------------------------------------------------
    # Invalidation / eviction
    # ------------------------------------------------------------------

    def invalidate(self, key: QueryKey) -> bool:
        """Mark *key* stale so the next request reloads it."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.invalidated = True
        self._notify(entry)
        return True

    def invalidate_where(self, predicate: KeyPredicate) -> list[QueryKey]:
        matched = [key for key in self._entries if predicate(key)]
        for key in matched:
            self.invalidate(key)
        return matched

    def remove(self, key: QueryKey) -> bool:
        """Evict *key*.

        A running load keeps going; its result goes to the entry a later
        fetch re-creates for *key*, and is dropped when there is none.
        """
        return self._entries.pop(key, None) is not None

    def remove_where(self, predicate: KeyPredicate) -> list[QueryKey]:
        matched = [key for key in self._entries if predicate(key)]
        for key in matched:
            self.remove(key)
        return matched

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: QueryKey, listener: Listener) -> Callable[[], None]:
        """Register *listener* for every state change of *key*.

        Subscriptions belong to the key, not the entry: they survive
        eviction and see the entry created by the next fetch.
        """
        self._listeners.setdefault(key, []).append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners is None:
                return
            try:
                listeners.remove(listener)
            except ValueError:
                return
            if not listeners:
                del self._listeners[key]

        return _unsubscribe

    def _notify(self, entry: CacheEntry[Any]) -> None:
        if self._entries.get(entry.key) is not entry:
            return
        listeners = self._listeners.get(entry.key)
        if not listeners:
            return
        snapshot = entry.snapshot()
        for listener in list(listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Query listener failed for %r", entry.key, exc_info=True)
