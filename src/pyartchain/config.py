"""Client configuration for pyartchain."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyartchain._constants import (
    BASE_URL,
    CONTEST_STALE_TIME,
    CONTESTS_STALE_TIME,
    ME_STALE_TIME,
    USER_AGENT,
)
from pyartchain.exceptions import ArtchainConfigError


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ArtchainConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ArtchainConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ArtchainConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        API base URL; request paths are appended to it.
    storage_path : str or None
        Directory used for durable session storage.  ``None`` keeps the
        session in memory only (server-side and test contexts).
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    hydration_timeout : float
        Seconds to wait for the persisted session to be read before
        hydrating with unauthenticated defaults.  ``0`` waits forever.
    default_stale_time : float or None
        Freshness window in seconds applied to queries that do not set
        their own.  ``None`` keeps results fresh until invalidated.
    me_stale_time : float
        Freshness window for the current-user query.
    contests_stale_time : float
        Freshness window for the contest list query.
    contest_stale_time : float
        Freshness window for single-contest queries.
    query_retry : int
        Extra attempts a query loader gets before the entry is marked failed.
    user_agent : str
        User-Agent header sent with every request.
    """

    base_url: str = BASE_URL
    storage_path: str | None = None
    request_timeout: float = 30.0
    hydration_timeout: float = 5.0
    default_stale_time: float | None = None
    me_stale_time: float = ME_STALE_TIME
    contests_stale_time: float = CONTESTS_STALE_TIME
    contest_stale_time: float = CONTEST_STALE_TIME
    query_retry: int = 1
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ArtchainConfigError("request_timeout must be positive")
        if self.hydration_timeout < 0:
            raise ArtchainConfigError("hydration_timeout must not be negative")
        if self.query_retry < 0:
            raise ArtchainConfigError("query_retry must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> ArtchainConfig:
        """Create configuration from environment variables.

        Reads ``ARTCHAIN_API_URL``, ``ARTCHAIN_STORAGE_PATH``,
        ``ARTCHAIN_REQUEST_TIMEOUT``, ``ARTCHAIN_HYDRATION_TIMEOUT`` and
        ``ARTCHAIN_QUERY_RETRY``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("ARTCHAIN_API_URL")
        if url:
            config_kwargs["base_url"] = url.rstrip("/")

        storage_path = env.get("ARTCHAIN_STORAGE_PATH")
        if storage_path:
            config_kwargs["storage_path"] = storage_path

        timeout_env = env.get("ARTCHAIN_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("ARTCHAIN_REQUEST_TIMEOUT", timeout_env)

        hydration_env = env.get("ARTCHAIN_HYDRATION_TIMEOUT")
        if hydration_env is not None and "hydration_timeout" not in overrides:
            config_kwargs["hydration_timeout"] = _env_float("ARTCHAIN_HYDRATION_TIMEOUT", hydration_env)

        retry_env = env.get("ARTCHAIN_QUERY_RETRY")
        if retry_env is not None and "query_retry" not in overrides:
            config_kwargs["query_retry"] = _env_int("ARTCHAIN_QUERY_RETRY", retry_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
