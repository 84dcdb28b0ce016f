"""Preference store for picker, locale and domain choices.

The store plays the role of the browser cookie jar: a flat key/value map,
atomic per key, last write wins. Widgets never touch the store directly;
they receive a ``Preference`` bound to the one key they own.
"""

from __future__ import annotations

from threading import Lock
from typing import Protocol

from redis import Redis

from docsfront.logging import get_logger

logger = get_logger(__name__)


class PreferenceStore(Protocol):
    """Key/value store shared by all widgets of a browsing session."""

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key`` or None."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""


class MemoryPreferenceStore:
    """In-process cookie jar."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every stored key."""
        with self._lock:
            return dict(self._data)


class RedisPreferenceStore:
    """Preference store backed by Redis, one prefixed key per preference."""

    def __init__(self, redis: Redis, prefix: str = "docsfront:prefs") -> None:
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "docsfront:prefs") -> RedisPreferenceStore:
        return cls(Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> str | None:
        value = self.redis.get(self._key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def set(self, key: str, value: str) -> None:
        self.redis.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self.redis.delete(self._key(key))


class Preference:
    """Read/write capability for a single preference key.

    Reads that fail return None and writes that fail return False; both are
    logged. A failed write never propagates to the widget that asked for it.
    """

    def __init__(self, store: PreferenceStore, key: str) -> None:
        self._store = store
        self.key = key

    def read(self) -> str | None:
        try:
            return self._store.get(self.key)
        except Exception as exc:
            logger.warning("preference_read_failed", key=self.key, error=str(exc))
            return None

    def write(self, value: str) -> bool:
        try:
            self._store.set(self.key, value)
            return True
        except Exception as exc:
            logger.warning("preference_write_failed", key=self.key, error=str(exc))
            return False

    def clear(self) -> bool:
        try:
            self._store.delete(self.key)
            return True
        except Exception as exc:
            logger.warning("preference_clear_failed", key=self.key, error=str(exc))
            return False
