"""High-level async client for the ArtChain API."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pyartchain._api import auth as _auth_api
from pyartchain._api import contests as _contests_api
from pyartchain._api import users as _users_api
from pyartchain._constants import (
    RESOURCE_ACHIEVEMENTS,
    RESOURCE_CONTEST,
    RESOURCE_CONTESTS,
    RESOURCE_ME,
    RESOURCE_USER,
)
from pyartchain._redact import token_fingerprint
from pyartchain._transport import HttpTransport, Transport
from pyartchain.config import ArtchainConfig
from pyartchain.exceptions import ArtchainError
from pyartchain.hydration import HydrationGate, SessionInitializer
from pyartchain.models.achievement import UserAchievements
from pyartchain.models.auth import AuthResponse, LoginRequest, RegisterRequest, WhoAmI
from pyartchain.models.contest import Contest, ContestStatus
from pyartchain.query.cache import QueryCache
from pyartchain.query.gate import ConditionalFetch
from pyartchain.query.keys import QueryKey, optional_key, query_key
from pyartchain.session import SessionState, SessionStore
from pyartchain.storage import DurableStorage, open_storage

_logger = logging.getLogger(__name__)


class ArtchainClient:
    """Async client for the ArtChain API.

    The client is the root that owns the session store, the query cache
    and the transport.  Entering it schedules the session restore.

    Usage::

        async with ArtchainClient(config) as client:
            await client.wait_hydrated()
            me = client.me_query()
            snapshot = await me.wait()
    """

    def __init__(
        self,
        config: ArtchainConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        storage: DurableStorage | None = None,
        transport: Transport | None = None,
        cache: QueryCache | None = None,
        is_client: bool = True,
    ) -> None:
        self._config = config or ArtchainConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None
        self.session_store = SessionStore(storage if storage is not None else open_storage(self._config.storage_path))
        self.cache = cache or QueryCache(default_stale_time=self._config.default_stale_time)
        hydration_timeout = self._config.hydration_timeout or None
        self.initializer = SessionInitializer(self.session_store, timeout=hydration_timeout, is_client=is_client)
        self.gate = HydrationGate(self.session_store)

    @property
    def config(self) -> ArtchainConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ArtchainClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(
                self._config,
                self._http_session,
                token_provider=self.session_store.get_token,
            )
        self.initializer.mount()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.initializer.unmount()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise ArtchainError("Client not initialized. Use 'async with ArtchainClient(...) as client:'")
        return self._transport

    async def wait_hydrated(self, timeout: float | None = None) -> bool:
        """Wait for the session restore and open the hydration gate.

        Returns ``False`` without waiting in server mode, where the session
        is never restored and the gate never opens.
        """
        if not self.initializer.is_client:
            return False
        await self.initializer.wait()
        self.gate.mark_attached()
        return await self.gate.wait_open(timeout)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @property
    def session(self) -> SessionState:
        return self.session_store.state

    async def login(self, username: str, password: str) -> AuthResponse:
        """Sign in and store the token (and user, when returned)."""
        transport = self._require_transport()
        try:
            result = await _auth_api.login(transport, LoginRequest(username=username, password=password))
        except ArtchainError:
            self.session_store.logout()
            raise
        self.session_store.set_token(result.access_token)
        if result.user is not None:
            self.session_store.set_user(result.user)
        self.cache.invalidate_where(lambda key: key.resource == RESOURCE_ME)
        _logger.debug("Logged in as %s", username)
        return result

    async def register(self, request: RegisterRequest) -> None:
        """Create an account.  The session is left untouched; sign in afterwards."""
        await _auth_api.register(self._require_transport(), request)
        _logger.debug("Registered %s as %s", request.username, request.role.value)

    async def logout(self) -> None:
        """Sign out locally even when the server call fails."""
        transport = self._require_transport()
        try:
            await _auth_api.logout(transport)
        except ArtchainError:
            _logger.debug("Server logout failed; clearing local session anyway", exc_info=True)
        finally:
            self.session_store.logout()
            self.cache.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _me_key(self) -> QueryKey | None:
        return optional_key(RESOURCE_ME, token=token_fingerprint(self.session_store.get_token()))

    async def _load_me(self, _key: QueryKey) -> WhoAmI:
        user = await _auth_api.get_me(self._require_transport())
        self.session_store.set_user(user)
        return user

    def me_query(self) -> ConditionalFetch[WhoAmI]:
        """Current user; runs only after hydration and while signed in."""
        query = ConditionalFetch(
            self.cache,
            self._me_key,
            self._load_me,
            conditions=(self.session_store.is_hydrated, self.session_store.is_authenticated),
            stale_time=self._config.me_stale_time,
            retry=self._config.query_retry,
        )
        return query.watch(self.session_store)

    async def _load_user(self, key: QueryKey) -> WhoAmI:
        return await _users_api.get_user(self._require_transport(), key.parts[0])

    def user_query(self, user_id: str | None) -> ConditionalFetch[WhoAmI]:
        return ConditionalFetch(
            self.cache,
            optional_key(RESOURCE_USER, user_id),
            self._load_user,
            retry=self._config.query_retry,
        )

    async def _load_achievements(self, key: QueryKey) -> UserAchievements:
        return await _users_api.get_user_achievements(self._require_transport(), key.parts[0])

    def achievements_query(self, user_id: str | None, *, enabled: bool = True) -> ConditionalFetch[UserAchievements]:
        """Achievements of *user_id*; idle while the id is missing."""
        return ConditionalFetch(
            self.cache,
            optional_key(RESOURCE_ACHIEVEMENTS, user_id),
            self._load_achievements,
            enabled=enabled,
        )

    async def _load_contests(self, key: QueryKey) -> list[Contest]:
        status = key.params.get("status")
        return await _contests_api.get_contests(
            self._require_transport(),
            ContestStatus(status) if status is not None else None,
        )

    def contests_query(self, status: ContestStatus | None = None) -> ConditionalFetch[list[Contest]]:
        return ConditionalFetch(
            self.cache,
            query_key(RESOURCE_CONTESTS, status=status),
            self._load_contests,
            stale_time=self._config.contests_stale_time,
        )

    async def _load_contest(self, key: QueryKey) -> Contest:
        return await _contests_api.get_contest(self._require_transport(), key.parts[0])

    def contest_query(self, contest_id: int | None) -> ConditionalFetch[Contest]:
        return ConditionalFetch(
            self.cache,
            optional_key(RESOURCE_CONTEST, contest_id or None),
            self._load_contest,
            stale_time=self._config.contest_stale_time,
        )
