"""
storage/backend.py -- Key-value blob backend contract and the in-memory backend.

Every entity store persists through this narrow interface: opaque string
values addressed by string keys. Stores never know whether the bytes land in
a dict, a SQLite file or PostgreSQL.

Failure contract: implementations raise StorageError (and only StorageError)
when the underlying medium fails. The store engine catches it, logs it and
keeps its in-memory state authoritative.

Usage:
    backend = open_backend("memory://")
    backend.set("audits_data", "[]")
    backend.get("audits_data")      # "[]"
    backend.delete("audits_data")
"""

from __future__ import annotations

from typing import Optional, Protocol

MEMORY_URL = "memory://"


class StorageError(Exception):
    """Raised by a backend when a read, write or delete cannot complete."""


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def close(self) -> None: ...


class MemoryBackend:
    """Dict-backed backend. Used by tests and by STORAGE_URL=memory://."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def close(self) -> None:
        pass


def open_backend(url: str) -> KeyValueBackend:
    """Build the backend named by a storage URL.

    "memory://" gives a fresh MemoryBackend; anything else is treated as a
    SQLAlchemy database URL.
    """
    if url == MEMORY_URL:
        return MemoryBackend()
    from storage.sql import SQLBackend

    return SQLBackend(url)
