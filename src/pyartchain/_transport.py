"""HTTP transport with bearer-token injection."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from pyartchain._redact import redact_for_log
from pyartchain.config import ArtchainConfig
from pyartchain.exceptions import ArtchainTransportError

_logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Decoded HTTP response."""

    status: int
    data: Any
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """Structural transport interface used by the endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        ...


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """Drop ``None`` values and stringify the rest for the query string."""
    if not params:
        return {}
    cleaned: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)
    return cleaned


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, list):
            return "; ".join(str(item) for item in message)
        if isinstance(message, str) and message:
            return message
    return fallback


class HttpTransport:
    """aiohttp transport adding ``Authorization: Bearer <token>`` when signed in."""

    def __init__(
        self,
        config: ArtchainConfig,
        http_session: aiohttp.ClientSession,
        *,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._token_provider = token_provider
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _build_headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": self._config.user_agent,
        }
        token = self._token_provider() if self._token_provider is not None else None
        if token is not None:
            headers["authorization"] = f"Bearer {token}"
        if extra:
            headers.update({key.lower(): value for key, value in extra.items()})
        return headers

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """Send a request and return the decoded JSON body.

        Raises :class:`ArtchainTransportError` on network failures,
        non-2xx statuses and bodies that are not JSON.
        """
        url = f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"
        request_headers = self._build_headers(headers)
        query = _clean_params(params)

        _logger.debug(
            "%s %s params=%s body=%s",
            method,
            url,
            query,
            redact_for_log(body),
        )

        try:
            async with self._http.request(
                method,
                url,
                params=query or None,
                json=body,
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
                response_headers = dict(resp.headers)
        except aiohttp.ClientError as exc:
            raise ArtchainTransportError(f"Request to {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise ArtchainTransportError(f"Request to {path} timed out", endpoint=path) from exc

        payload: Any = None
        if text.strip():
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as exc:
                if 200 <= status < 300:
                    raise ArtchainTransportError(
                        f"Invalid JSON from {path}: {text[:200]}",
                        status_code=status,
                        endpoint=path,
                    ) from exc

        if not 200 <= status < 300:
            _logger.debug("HTTP %d from %s: %s", status, path, redact_for_log(payload))
            raise ArtchainTransportError(
                _error_message(payload, f"HTTP {status} from {path}"),
                status_code=status,
                endpoint=path,
            )

        return TransportResponse(status=status, data=payload, headers=response_headers)
