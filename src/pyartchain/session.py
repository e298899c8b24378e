"""Persisted session state.

The session store keeps the access token and signed-in user in memory and
mirrors them to durable storage.  Reads and writes of the in-memory state
are synchronous, so a read right after ``set_token`` always sees the new
value.  Storage failures are logged and never reach callers.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from pyartchain._constants import TOKEN_NAMESPACE, USER_NAMESPACE
from pyartchain.exceptions import StorageUnavailableError
from pyartchain.models.auth import WhoAmI
from pyartchain.storage import DurableStorage, MemoryStorage

_logger = logging.getLogger(__name__)

SessionListener = Callable[["SessionState"], None]


class SessionState(BaseModel):
    """Immutable snapshot of the session.

    Parameters
    ----------
    token : str or None
        Bearer access token, ``None`` when signed out.
    user : WhoAmI or None
        Profile of the signed-in user, when known.
    is_hydrated : bool
        ``True`` once the persisted session has been restored.  Never
        reverts to ``False``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    token: str | None = None
    user: WhoAmI | None = None
    is_hydrated: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


class SessionStore:
    """Token and user store backed by :class:`DurableStorage`.

    Usage::

        store = SessionStore(FileStorage("~/.artchain"))
        store.restore()
        store.set_token("...")
    """

    def __init__(
        self,
        storage: DurableStorage | None = None,
        *,
        token_namespace: str = TOKEN_NAMESPACE,
        user_namespace: str = USER_NAMESPACE,
    ) -> None:
        self._storage: DurableStorage = storage if storage is not None else MemoryStorage()
        self._token_namespace = token_namespace
        self._user_namespace = user_namespace
        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        self._restore_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> WhoAmI | None:
        return self._state.user

    def get_token(self) -> str | None:
        return self._state.token

    def is_hydrated(self) -> bool:
        return self._state.is_hydrated

    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_token(self, token: str | None) -> None:
        """Replace the token in memory, then persist (or clear) it."""
        self._update(token=token)
        if token:
            self._persist(self._token_namespace, token)
        else:
            self._erase(self._token_namespace)

    def set_user(self, user: WhoAmI | None) -> None:
        self._update(user=user)
        if user is not None:
            self._persist(self._user_namespace, user.model_dump_json(by_alias=True))
        else:
            self._erase(self._user_namespace)

    def logout(self) -> None:
        """Forget token and user, in memory and in storage."""
        self._update(token=None, user=None)
        self._erase(self._token_namespace)
        self._erase(self._user_namespace)

    def _update(self, **changes: object) -> None:
        self._state = self._state.model_copy(update=changes)
        self._notify()

    def _persist(self, namespace: str, value: str) -> None:
        try:
            self._storage.write(namespace, value)
        except StorageUnavailableError:
            _logger.warning("Could not persist %s; keeping it in memory only", namespace, exc_info=True)

    def _erase(self, namespace: str) -> None:
        try:
            self._storage.remove(namespace)
        except StorageUnavailableError:
            _logger.warning("Could not remove persisted %s", namespace, exc_info=True)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def _read_persisted(self) -> tuple[str | None, WhoAmI | None]:
        """Read token and user from storage.  May raise StorageUnavailableError."""
        token = self._storage.read(self._token_namespace)
        user_raw = self._storage.read(self._user_namespace)

        user: WhoAmI | None = None
        if user_raw:
            try:
                user = WhoAmI.model_validate(json.loads(user_raw))
            except (ValueError, ValidationError):
                _logger.error("Failed to parse stored user", exc_info=True)
        return token or None, user

    def _apply_restored(self, token: str | None, user: WhoAmI | None) -> None:
        if self._state.is_hydrated:
            return
        _logger.debug("Session restore: token=%s user=%s", token is not None, user is not None)
        changes: dict[str, object] = {"is_hydrated": True}
        # Durable state wins when present; otherwise keep what is in memory.
        if token is not None:
            changes["token"] = token
        if user is not None:
            changes["user"] = user
        self._update(**changes)

    def restore(self) -> None:
        """Load the persisted session and mark the store hydrated.

        Only the first call has an effect.  Missing data and unavailable
        storage both end in a hydrated store.
        """
        if self._state.is_hydrated:
            return
        try:
            token, user = self._read_persisted()
        except StorageUnavailableError:
            _logger.warning("Session storage unavailable; starting unauthenticated", exc_info=True)
            token, user = None, None
        self._apply_restored(token, user)

    async def async_restore(self, timeout: float | None = None) -> None:
        """Like :meth:`restore`, reading storage off the event loop.

        Concurrent callers share one restore.  When *timeout* seconds pass
        without a result the store hydrates unauthenticated and the late
        read is discarded.
        """
        if self._state.is_hydrated:
            return
        if self._restore_task is None:
            self._restore_task = asyncio.get_running_loop().create_task(self._restore_from_thread(timeout))
        await asyncio.shield(self._restore_task)

    async def _restore_from_thread(self, timeout: float | None) -> None:
        try:
            token, user = await asyncio.wait_for(asyncio.to_thread(self._read_persisted), timeout)
        except TimeoutError:
            _logger.warning("Session restore timed out after %.1fs; starting unauthenticated", timeout)
            token, user = None, None
        except StorageUnavailableError:
            _logger.warning("Session storage unavailable; starting unauthenticated", exc_info=True)
            token, user = None, None
        self._apply_restored(token, user)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with the new state after every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.debug("Session listener failed", exc_info=True)
