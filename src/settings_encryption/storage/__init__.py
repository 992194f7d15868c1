"""Storage collaborators: protocols plus in-memory and SQLAlchemy hosts."""

from .base import (
    UNHANDLED,
    ExpiringStore,
    HookRegistry,
    KeyValueStore,
    OwnerScopedStore,
    PreReadHook,
    PreReadHooks,
)
from .memory import MemoryExpiringStore, MemoryOwnerStore, MemoryStore

__all__ = [
    "UNHANDLED",
    "ExpiringStore",
    "HookRegistry",
    "KeyValueStore",
    "MemoryExpiringStore",
    "MemoryOwnerStore",
    "MemoryStore",
    "OwnerScopedStore",
    "PreReadHook",
    "PreReadHooks",
]
