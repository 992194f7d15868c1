"""In-process stores for tests, scripts and single-process hosts."""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable
from typing import Any

from settings_encryption.storage.base import UNHANDLED, PreReadHooks


class MemoryStore(PreReadHooks):
    """Dict-backed key-value store with pre-read hooks."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        value = self._run_pre_read(key, default)
        if value is not UNHANDLED:
            return value
        return self.raw_get(key, default)

    def raw_get(self, key: str, default: Any = None) -> Any:
        """Read without running hooks."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class MemoryExpiringStore:
    """Key-value store whose entries lapse after a TTL in seconds.

    ``ttl=0`` stores the value without expiry. *clock* defaults to
    :func:`time.monotonic` and can be replaced in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[Any, float | None]] = {}

    def get(self, key: str) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        if ttl < 0:
            return False
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class MemoryOwnerStore:
    """Per-owner key-value store; ``set`` returns the record id."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._data: dict[tuple[int, str], tuple[int, Any]] = {}

    def get(self, owner_id: int, key: str) -> Any:
        entry = self._data.get((owner_id, key))
        return entry[1] if entry is not None else None

    def set(self, owner_id: int, key: str, value: Any) -> int | bool:
        if owner_id <= 0:
            return False
        existing = self._data.get((owner_id, key))
        record_id = existing[0] if existing is not None else next(self._ids)
        self._data[(owner_id, key)] = (record_id, value)
        return record_id
