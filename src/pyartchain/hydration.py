"""Hydration gate and session bootstrap.

Output produced before the persisted session is available cannot agree
with output produced after it.  :class:`HydrationGate` therefore holds
back session-dependent content until the host environment has attached
*and* the session store has hydrated.  :class:`SessionInitializer` starts
the restore; the gate never waits on it and reads readiness from the
store directly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from pyartchain.session import SessionState, SessionStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F")


class SessionInitializer:
    """One-shot restore per mounted lifetime of the owning root.

    Parameters
    ----------
    store : SessionStore
        Store to restore.
    timeout : float or None
        Forwarded to :meth:`SessionStore.async_restore`.
    is_client : bool
        ``False`` for server-side contexts; mounting is then a no-op.
    """

    def __init__(self, store: SessionStore, *, timeout: float | None = None, is_client: bool = True) -> None:
        self._store = store
        self._timeout = timeout
        self._is_client = is_client
        self._task: asyncio.Task[None] | None = None

    @property
    def is_client(self) -> bool:
        return self._is_client

    @property
    def mounted(self) -> bool:
        return self._task is not None

    def mount(self) -> asyncio.Task[None] | None:
        """Schedule the restore and return without waiting for it."""
        if not self._is_client:
            return None
        if self._task is None:
            _logger.debug("Scheduling session restore")
            self._task = asyncio.get_running_loop().create_task(self._store.async_restore(self._timeout))
        return self._task

    def unmount(self) -> None:
        # The restore itself is not cancelled; the store may still hydrate.
        self._task = None

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.shield(task)


class HydrationGate:
    """Render guard that opens once, after attach and store hydration.

    Usage::

        gate = HydrationGate(store)
        gate.render(page, fallback=spinner)   # spinner
        gate.mark_attached()                  # after the first client pass
        gate.render(page, fallback=spinner)   # page, once hydrated
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._attached = False
        self._open = False
        self._opened = asyncio.Event()
        self._listeners: list[Callable[[bool], None]] = []
        self._unsubscribe: Callable[[], None] | None = store.subscribe(self._on_session_change)

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def is_open(self) -> bool:
        return self._open

    def mark_attached(self) -> None:
        """Record that the first client-side render pass has completed."""
        self._attached = True
        self._evaluate()

    def render(self, children: T, fallback: F | None = None) -> T | F | None:
        if self._open:
            return children
        self._evaluate()
        return children if self._open else fallback

    def _on_session_change(self, _state: SessionState) -> None:
        self._evaluate()

    def _evaluate(self) -> None:
        if self._open:
            return
        if not (self._attached and self._store.is_hydrated()):
            return
        self._open = True
        self._opened.set()
        _logger.debug("Hydration gate open")
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for listener in list(self._listeners):
            try:
                listener(True)
            except Exception:
                _logger.debug("Hydration listener failed", exc_info=True)

    async def wait_open(self, timeout: float | None = None) -> bool:
        """Wait until the gate opens; ``False`` if *timeout* elapses first."""
        if self._open:
            return True
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Call *listener* once the gate opens."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def __call__(self) -> bool:
        """Precondition form, for use in ``ConditionalFetch(conditions=...)``."""
        return self._open
