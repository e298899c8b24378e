"""Fetch policy.

Pure decisions about when a key should be (re)loaded and whether a gated
fetch is allowed.  No state lives here.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from pyartchain.query.entry import CacheEntry, FetchStatus


def is_stale(fetched_at: datetime | None, now: datetime, stale_time: float | None) -> bool:
    """Whether a value fetched at *fetched_at* is past its freshness window.

    ``stale_time=None`` means the value never goes stale on its own.
    """
    if fetched_at is None:
        return True
    if stale_time is None:
        return False
    return now - fetched_at > timedelta(seconds=stale_time)


def needs_fetch(entry: CacheEntry[object] | None, now: datetime, stale_time: float | None) -> bool:
    """Decide whether a request for *entry* must start a load.

    - no entry or never loaded: yes
    - already loading: no, callers join the running load
    - failed: yes
    - loaded: only when invalidated or stale
    """
    if entry is None:
        return True
    if entry.status == FetchStatus.LOADING:
        return False
    if entry.status in (FetchStatus.IDLE, FetchStatus.ERROR):
        return True
    return entry.invalidated or is_stale(entry.fetched_at, now, stale_time)


def all_conditions(conditions: Iterable[Callable[[], object]]) -> bool:
    """Logical AND over precondition callables."""
    return all(bool(condition()) for condition in conditions)
