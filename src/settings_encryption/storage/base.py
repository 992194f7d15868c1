"""Collaborator interfaces the resolver needs from its host storage.

Three storage kinds are supported: plain key-value (settings), key-value
with expiry (cache entries), and owner-scoped key-value (per-user or
per-record attributes). Stores that want transparent decryption for
legacy readers also act as a :class:`HookRegistry`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()


class _Unhandled:
    def __repr__(self) -> str:
        return "UNHANDLED"


UNHANDLED: Any = _Unhandled()
"""Returned by a pre-read hook to let the read fall through to storage."""

PreReadHook = Callable[[str, Any], Any]


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: str) -> bool: ...


class ExpiringStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: str, ttl: int = 0) -> bool: ...


class OwnerScopedStore(Protocol):
    def get(self, owner_id: int, key: str) -> Any: ...

    def set(self, owner_id: int, key: str, value: str) -> int | bool: ...


@runtime_checkable
class HookRegistry(Protocol):
    def install_pre_read(self, key: str, hook: PreReadHook) -> None: ...

    def remove_pre_read(self, key: str, hook: PreReadHook) -> None: ...


class PreReadHooks:
    """Mixin giving a store a per-key pre-read hook table.

    Subclasses call :meth:`_run_pre_read` at the top of their generic
    ``get``; the first hook returning something other than
    :data:`UNHANDLED` supplies the value.
    """

    def __init__(self) -> None:
        self._pre_read: dict[str, list[PreReadHook]] = {}

    def install_pre_read(self, key: str, hook: PreReadHook) -> None:
        hooks = self._pre_read.setdefault(key, [])
        if hook not in hooks:
            hooks.append(hook)

    def remove_pre_read(self, key: str, hook: PreReadHook) -> None:
        hooks = self._pre_read.get(key)
        if not hooks or hook not in hooks:
            return
        hooks.remove(hook)
        if not hooks:
            del self._pre_read[key]

    def has_pre_read(self, key: str) -> bool:
        return bool(self._pre_read.get(key))

    def _run_pre_read(self, key: str, default: Any) -> Any:
        for hook in list(self._pre_read.get(key, ())):
            value = hook(key, default)
            if value is not UNHANDLED:
                return value
        return UNHANDLED
