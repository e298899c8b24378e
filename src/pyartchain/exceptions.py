"""Custom exception hierarchy for pyartchain."""

from __future__ import annotations


class ArtchainError(Exception):
    """Base exception for all pyartchain errors."""


class ArtchainConfigError(ArtchainError):
    """Invalid or missing configuration."""


class StorageUnavailableError(ArtchainError):
    """Durable storage cannot be read or written.

    Raised by storage implementations only.  The session store catches it
    at its boundary and degrades to in-memory state.
    """

    def __init__(self, message: str, *, namespace: str = "") -> None:
        self.namespace = namespace
        super().__init__(message)


class ArtchainTransportError(ArtchainError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ArtchainApiError(ArtchainError):
    """API answered but reported failure in its response envelope."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ArtchainAuthenticationError(ArtchainApiError):
    """Login failed or the access token was rejected."""
