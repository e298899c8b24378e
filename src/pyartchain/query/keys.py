"""Deterministic cache keys.

A key is a resource name, ordered positional parts and a parameter
mapping.  Equality and hashing use a canonical JSON encoding with sorted
mapping keys, so two parameter dicts holding the same items in a different
insertion order always produce the same key.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


def _encode(value: Any) -> Any:
    """``json.dumps`` fallback for values that are not JSON-native."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=lambda item: json.dumps(item, sort_keys=True, default=_encode))
    if isinstance(value, QueryKey):
        return value.canonical
    raise TypeError(f"Cannot use {type(value).__name__} in a query key")


def canonicalize(resource: str, parts: tuple[Any, ...], params: Mapping[str, Any]) -> str:
    return json.dumps(
        [resource, list(parts), dict(params)],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_encode,
    )


class QueryKey:
    """Identity of a cached resource."""

    __slots__ = ("_canonical", "_params", "_parts", "_resource")

    def __init__(self, resource: str, parts: tuple[Any, ...] = (), params: Mapping[str, Any] | None = None) -> None:
        if not resource:
            raise ValueError("resource must be non-empty")
        self._resource = resource
        self._parts = tuple(parts)
        self._params = dict(params or {})
        self._canonical = canonicalize(resource, self._parts, self._params)

    @property
    def resource(self) -> str:
        return self._resource

    @property
    def parts(self) -> tuple[Any, ...]:
        return self._parts

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    @property
    def canonical(self) -> str:
        return self._canonical

    def matches(self, resource: str, *parts: Any, **params: Any) -> bool:
        """Prefix match: same resource, leading *parts*, and every given param."""
        if resource != self._resource:
            return False
        if self._parts[: len(parts)] != parts:
            return False
        return all(name in self._params and self._params[name] == value for name, value in params.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryKey):
            return NotImplemented
        return self._canonical == other._canonical

    def __hash__(self) -> int:
        return hash(self._canonical)

    def __repr__(self) -> str:
        return f"QueryKey({self._canonical})"


def query_key(resource: str, *parts: Any, **params: Any) -> QueryKey:
    """Build a key from a resource name, positional parts and parameters."""
    return QueryKey(resource, parts, params)


def optional_key(resource: str, *parts: Any, **params: Any) -> QueryKey | None:
    """Like :func:`query_key`, but ``None`` while any part or param is missing.

    A missing identifier makes the key undefined, which suppresses the
    fetch instead of requesting ``/users/None``.
    """
    values = [*parts, *params.values()]
    if any(value is None or value == "" for value in values):
        return None
    return QueryKey(resource, parts, params)
