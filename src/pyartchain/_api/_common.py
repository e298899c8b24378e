"""Shared helpers for ArtChain endpoint modules.

It is internal to pyartchain and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from pyartchain.exceptions import ArtchainApiError, ArtchainAuthenticationError, ArtchainTransportError
from pyartchain.models.api_response import ApiResponse

M = TypeVar("M", bound=BaseModel)


def unwrap_data(payload: Any, *, endpoint: str) -> Any:
    """Return ``payload["data"]`` for enveloped responses, else the payload.

    Raises :class:`ArtchainApiError` when the envelope reports failure.
    """
    if not ApiResponse.is_envelope(payload):
        return payload
    if payload.get("success") is False:
        message = payload.get("message") or f"{endpoint} reported failure"
        raise ArtchainApiError(str(message), endpoint=endpoint)
    return payload["data"]


def parse_model(model: type[M], data: Any, *, endpoint: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ArtchainApiError(f"Unexpected payload from {endpoint}: {exc}", endpoint=endpoint) from exc


def parse_list(model: type[M], data: Any, *, endpoint: str) -> list[M]:
    try:
        return TypeAdapter(list[model]).validate_python(data or [])  # type: ignore[valid-type]
    except ValidationError as exc:
        raise ArtchainApiError(f"Unexpected payload from {endpoint}: {exc}", endpoint=endpoint) from exc


def raise_for_auth(exc: ArtchainTransportError) -> None:
    """Re-raise 401/403 transport errors as authentication errors."""
    if exc.status_code in (401, 403):
        raise ArtchainAuthenticationError(
            str(exc),
            status_code=exc.status_code,
            endpoint=exc.endpoint,
        ) from exc
