"""Process default resolver and free-function helpers.

Hosts that prefer plain functions over passing a :class:`ValueResolver`
around call :func:`init_default` once at startup. Every helper fails loudly
with :class:`NotInitializedError` until then; nothing is built lazily.
"""

from __future__ import annotations

from typing import Any

import structlog

from settings_encryption.config.settings import Settings, get_settings
from settings_encryption.crypto.engine import CipherEngine
from settings_encryption.overrides import EnvironmentOverrides, OverrideSource
from settings_encryption.resolver import ValueResolver, WriteResult
from settings_encryption.storage.base import ExpiringStore, KeyValueStore, OwnerScopedStore

logger = structlog.get_logger()

_default: ValueResolver | None = None


class AlreadyInitializedError(RuntimeError):
    """``init_default`` was called twice without ``replace=True``."""


class NotInitializedError(RuntimeError):
    """A helper was used before ``init_default``."""


def init_default(
    store: KeyValueStore,
    *,
    key: str | bytes | None = None,
    expiring_store: ExpiringStore | None = None,
    owner_store: OwnerScopedStore | None = None,
    overrides: OverrideSource | None = None,
    settings: Settings | None = None,
    replace: bool = False,
) -> ValueResolver:
    """Build the default resolver from *settings* and the given stores.

    Raises:
        AlreadyInitializedError: if a default exists and *replace* is false.
        ConfigurationError: if no encryption key can be derived.
    """
    global _default
    if _default is not None and not replace:
        raise AlreadyInitializedError("Default resolver is already initialized")

    settings = settings or get_settings()
    engine = CipherEngine(
        key,
        settings.token_prefix,
        key_material=settings.key_material(),
    )
    _default = ValueResolver(
        engine,
        store,
        expiring_store=expiring_store,
        owner_store=owner_store,
        overrides=overrides if overrides is not None else EnvironmentOverrides(),
        namespace=settings.namespace,
    )
    logger.info("default_resolver_initialized", namespace=settings.namespace)
    return _default


def get_default() -> ValueResolver:
    if _default is None:
        raise NotInitializedError(
            "Call settings_encryption.default.init_default() at startup first"
        )
    return _default


def reset_default() -> None:
    global _default
    _default = None


def encrypt_value(value: str) -> str:
    return get_default().engine.encrypt(value)


def decrypt_value(value: str) -> str:
    return get_default().engine.decrypt(value)


def is_value_encrypted(value: str) -> bool:
    return get_default().is_encrypted(value)


def update_encrypted_option(name: str, value: str) -> WriteResult:
    return get_default().set(name, value)


def get_encrypted_option(name: str, default: Any = "") -> Any:
    return get_default().get(name, default)


def set_encrypted_transient(name: str, value: str, ttl: int = 0) -> WriteResult:
    return get_default().set_expiring(name, value, ttl)


def get_encrypted_transient(name: str, default: Any = None) -> Any:
    return get_default().get_expiring(name, default)


def update_encrypted_owner_value(owner_id: int, name: str, value: str) -> WriteResult:
    return get_default().set_for_owner(owner_id, name, value)


def get_encrypted_owner_value(owner_id: int, name: str, default: Any = "") -> Any:
    return get_default().get_for_owner(owner_id, name, default)
