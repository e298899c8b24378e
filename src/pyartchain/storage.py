"""Durable storage capability used by the session store.

Storage is a flat namespace → string map, the shape of browser
``localStorage``.  Implementations raise
:class:`~pyartchain.exceptions.StorageUnavailableError` when the backing
medium cannot be used; callers decide whether that is fatal.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

from pyartchain.exceptions import StorageUnavailableError

_logger = logging.getLogger(__name__)

_SAFE_NAMESPACE = re.compile(r"^[A-Za-z0-9._-]+$")


class DurableStorage(Protocol):
    """Structural storage interface consumed by :class:`SessionStore`."""

    def read(self, namespace: str) -> str | None:
        ...

    def write(self, namespace: str, value: str) -> None:
        ...

    def remove(self, namespace: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage.  Also the fallback when nothing durable exists."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def read(self, namespace: str) -> str | None:
        return self._values.get(namespace)

    def write(self, namespace: str, value: str) -> None:
        self._values[namespace] = value

    def remove(self, namespace: str) -> None:
        self._values.pop(namespace, None)


class FileStorage:
    """One UTF-8 file per namespace inside *directory*."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, namespace: str) -> Path:
        if not _SAFE_NAMESPACE.match(namespace):
            raise ValueError(f"invalid storage namespace: {namespace!r}")
        return self._directory / namespace

    def read(self, namespace: str) -> str | None:
        path = self._path(namespace)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot read {path}: {exc}", namespace=namespace) from exc

    def write(self, namespace: str, value: str) -> None:
        path = self._path(namespace)
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write {path}: {exc}", namespace=namespace) from exc

    def remove(self, namespace: str) -> None:
        path = self._path(namespace)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot remove {path}: {exc}", namespace=namespace) from exc


def open_storage(path: str | Path | None) -> DurableStorage:
    """Return file storage at *path*, or memory storage when unusable."""
    if path is None:
        return MemoryStorage()
    directory = Path(path).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        _logger.warning("Session storage %s unavailable; keeping session in memory", directory, exc_info=True)
        return MemoryStorage()
    return FileStorage(directory)
