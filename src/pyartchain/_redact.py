"""Helpers for safe debug logging.

Request and response bodies are plain JSON that may carry credentials
(login and register forms, token responses).  Tokens that need to show up
in cache keys or logs are replaced by a short fingerprint.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset({"password", "access_token", "accesstoken", "token", "authorization"})


def redact_for_log(value: Any) -> Any:
    """Return *value* with credential fields masked."""
    if isinstance(value, Mapping):
        return {
            key: "<redacted>" if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_for_log(item) for item in value]
    return value


def token_fingerprint(token: str | None) -> str | None:
    """Short SHA-256 prefix identifying *token* without exposing it."""
    if not token:
        return None
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
