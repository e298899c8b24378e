"""Per-key fetch state machine.

Each cache entry moves ``IDLE → LOADING → {SUCCESS, ERROR}`` and back to
``LOADING`` on a refetch.  Only :class:`~pyartchain.query.cache.QueryCache`
drives the transitions; consumers see immutable :class:`EntrySnapshot`
values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from pyartchain.query.keys import QueryKey

V = TypeVar("V")


class FetchStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ErrorInfo(BaseModel):
    """Structured failure detail attached to an entry."""

    model_config = ConfigDict(frozen=True)

    type: str
    message: str
    status_code: int | None = None
    endpoint: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        status_code = getattr(exc, "status_code", None)
        endpoint = getattr(exc, "endpoint", "")
        return cls(
            type=type(exc).__name__,
            message=str(exc) or type(exc).__name__,
            status_code=status_code if isinstance(status_code, int) else None,
            endpoint=endpoint if isinstance(endpoint, str) else "",
        )


@dataclass(frozen=True, slots=True)
class EntrySnapshot(Generic[V]):
    """Immutable view of a cache entry at one point in time."""

    key: QueryKey | None
    status: FetchStatus = FetchStatus.IDLE
    value: V | None = None
    error: ErrorInfo | None = None
    fetched_at: datetime | None = None
    invalidated: bool = False
    failure_count: int = 0

    @property
    def is_loading(self) -> bool:
        return self.status == FetchStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == FetchStatus.ERROR

    @property
    def has_value(self) -> bool:
        return self.fetched_at is not None


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    """Mutable state for one key, owned by the cache."""

    key: QueryKey
    status: FetchStatus = FetchStatus.IDLE
    value: V | None = None
    error: ErrorInfo | None = None
    fetched_at: datetime | None = None
    invalidated: bool = False
    failure_count: int = 0

    def begin(self) -> None:
        if self.status == FetchStatus.LOADING:
            raise RuntimeError(f"fetch already in flight for {self.key!r}")
        self.status = FetchStatus.LOADING
        self.invalidated = False

    def succeed(self, value: V, now: datetime) -> None:
        self.status = FetchStatus.SUCCESS
        self.value = value
        self.fetched_at = now
        self.error = None
        self.failure_count = 0

    def fail(self, error: ErrorInfo) -> None:
        # The last good value stays available next to the error.
        self.status = FetchStatus.ERROR
        self.error = error
        self.failure_count += 1

    def snapshot(self) -> EntrySnapshot[V]:
        return EntrySnapshot(
            key=self.key,
            status=self.status,
            value=self.value,
            error=self.error,
            fetched_at=self.fetched_at,
            invalidated=self.invalidated,
            failure_count=self.failure_count,
        )
