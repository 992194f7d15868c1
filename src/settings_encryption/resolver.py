"""Logical-name based encrypted reads and writes with override precedence.

A logical name such as ``api_key`` maps to exactly one full storage key
(``myapp_api_key`` with namespace ``myapp``) and one override identifier
(``MYAPP_API_KEY``). For every accessor an override, when present, wins:
reads return it without touching storage and writes are suppressed.

Reads never raise cipher or format errors; they degrade to the caller's
default and log a warning. Writes report failure through
:class:`WriteResult` so callers can alert on a secret that was not saved.

With interception enabled, tracked names are also decrypted for legacy code
that reads the store's generic ``get`` directly.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from settings_encryption.crypto.engine import CipherEngine
from settings_encryption.crypto.errors import EncryptionError
from settings_encryption.overrides import NoOverrides, OverrideSource
from settings_encryption.storage.base import (
    UNHANDLED,
    ExpiringStore,
    HookRegistry,
    KeyValueStore,
    OwnerScopedStore,
    PreReadHook,
)

logger = structlog.get_logger()


class WriteStatus(str, Enum):
    STORED = "stored"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class ValueSource(str, Enum):
    OVERRIDE = "override"
    DATABASE = "database"
    DEFAULT = "default"


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an encrypted write.

    ``SUPPRESSED`` means an override exists and nothing was written.
    ``FAILED`` carries the encryption error, or no error when the store
    itself refused the write.
    """

    status: WriteStatus
    error: EncryptionError | None = None
    record_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is WriteStatus.STORED

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class ValueProvenance:
    """A resolved value plus the path that produced it."""

    value: Any
    source: ValueSource
    identifier: str
    was_encrypted: bool = False


class ValueResolver:
    """Policy layer between callers, the cipher engine and host storage.

    Args:
        engine: Cipher engine used for every token.
        store: Plain key-value store for settings.
        expiring_store: Optional store for values with a TTL.
        owner_store: Optional store for owner-scoped values.
        overrides: Out-of-band override source; defaults to none.
        namespace: Prefix joined to logical names with ``_``.
    """

    def __init__(
        self,
        engine: CipherEngine,
        store: KeyValueStore,
        *,
        expiring_store: ExpiringStore | None = None,
        owner_store: OwnerScopedStore | None = None,
        overrides: OverrideSource | None = None,
        namespace: str = "",
    ) -> None:
        self.engine = engine
        self.store = store
        self.expiring_store = expiring_store
        self.owner_store = owner_store
        self.overrides = overrides if overrides is not None else NoOverrides()
        self.namespace = namespace

        self._tracked: set[str] = set()
        self._hooks: dict[str, PreReadHook] = {}
        self._resolving: set[str] = set()
        self._intercepting = False

    # -- naming ---------------------------------------------------------

    def resolve_full_name(self, name: str) -> str:
        if not self.namespace:
            return name
        if self.namespace.endswith("_"):
            return f"{self.namespace}{name}"
        return f"{self.namespace}_{name}"

    def resolve_override_id(self, name: str) -> str:
        return self.resolve_full_name(name).upper()

    # -- overrides ------------------------------------------------------

    def has_override(self, name: str) -> bool:
        return self.get_override(name) is not None

    def get_override(self, name: str) -> str | None:
        """Return the override for *name*, treating ``""`` as absent."""
        return self.overrides.get(self.resolve_override_id(name)) or None

    # -- plain key-value ------------------------------------------------

    def set(self, name: str, plaintext: str) -> WriteResult:
        """Encrypt *plaintext* and store it under the full name."""
        full_name = self.resolve_full_name(name)
        suppressed = self._check_suppressed(name, full_name)
        if suppressed is not None:
            return suppressed

        token, failed = self._encrypt(plaintext, full_name)
        if failed is not None:
            return failed

        if not self.store.set(full_name, token):
            logger.warning("encrypted_write_rejected", full_name=full_name)
            return WriteResult(WriteStatus.FAILED)

        if self._intercepting:
            self.track(name)
        return WriteResult(WriteStatus.STORED)

    def get(self, name: str, default: Any = "") -> Any:
        """Return the override, the decrypted stored value, or *default*."""
        return self.get_with_provenance(name, default).value

    def get_with_provenance(self, name: str, default: Any = "") -> ValueProvenance:
        full_name = self.resolve_full_name(name)
        return self._resolve(
            name, full_name, default, lambda: self.store.get(full_name, None)
        )

    # -- expiring -------------------------------------------------------

    def set_expiring(self, name: str, plaintext: str, ttl: int = 0) -> WriteResult:
        """Encrypt and store a value that lapses after *ttl* seconds.

        ``ttl=0`` means no expiry.
        """
        store = self._require(self.expiring_store, "expiring_store")
        full_name = self.resolve_full_name(name)
        suppressed = self._check_suppressed(name, full_name)
        if suppressed is not None:
            return suppressed

        token, failed = self._encrypt(plaintext, full_name)
        if failed is not None:
            return failed

        if not store.set(full_name, token, ttl):
            logger.warning("encrypted_write_rejected", full_name=full_name, ttl=ttl)
            return WriteResult(WriteStatus.FAILED)
        return WriteResult(WriteStatus.STORED)

    def get_expiring(self, name: str, default: Any = None) -> Any:
        store = self._require(self.expiring_store, "expiring_store")
        full_name = self.resolve_full_name(name)
        return self._resolve(name, full_name, default, lambda: store.get(full_name)).value

    # -- owner scoped ---------------------------------------------------

    def set_for_owner(self, owner_id: int, name: str, plaintext: str) -> WriteResult:
        """Encrypt and store a value for one owner.

        On success ``record_id`` holds the id the store assigned.
        """
        store = self._require(self.owner_store, "owner_store")
        full_name = self.resolve_full_name(name)
        suppressed = self._check_suppressed(name, full_name)
        if suppressed is not None:
            return suppressed

        token, failed = self._encrypt(plaintext, full_name)
        if failed is not None:
            return failed

        record_id = store.set(owner_id, full_name, token)
        if record_id is False:
            logger.warning(
                "encrypted_write_rejected", full_name=full_name, owner_id=owner_id
            )
            return WriteResult(WriteStatus.FAILED)
        # Stores may report success with a bare True and no id.
        if type(record_id) is not int:
            record_id = None
        return WriteResult(WriteStatus.STORED, record_id=record_id)

    def get_for_owner(self, owner_id: int, name: str, default: Any = "") -> Any:
        store = self._require(self.owner_store, "owner_store")
        full_name = self.resolve_full_name(name)
        return self._resolve(
            name, full_name, default, lambda: store.get(owner_id, full_name)
        ).value

    # -- engine passthrough ---------------------------------------------

    def is_encrypted(self, value: str) -> bool:
        return self.engine.is_encrypted(value)

    def change_key(self, key: str | bytes | None = None) -> None:
        self.engine.change_key(key)

    # -- interception ---------------------------------------------------

    @property
    def tracked_names(self) -> frozenset[str]:
        return frozenset(self._tracked)

    @property
    def interception_enabled(self) -> bool:
        return self._intercepting

    def is_intercepting(self, name: str) -> bool:
        return name in self._hooks

    def track(self, name: str) -> None:
        """Add *name* to the tracked set; hook it now if interception is on."""
        self._tracked.add(name)
        if self._intercepting:
            self._install_hook(name)

    def enable_interception(self) -> None:
        """Hook the store's generic read for every tracked name."""
        self._hook_registry()
        self._intercepting = True
        for name in sorted(self._tracked):
            if name not in self._hooks:
                self._install_hook(name)
        logger.info("interception_enabled", tracked=len(self._tracked))

    def disable_interception(self) -> None:
        """Remove every installed hook; the tracked set is kept."""
        if self._intercepting or self._hooks:
            registry = self._hook_registry()
            for name, hook in list(self._hooks.items()):
                registry.remove_pre_read(self.resolve_full_name(name), hook)
            self._hooks.clear()
        self._intercepting = False
        logger.info("interception_disabled", tracked=len(self._tracked))

    def _hook_registry(self) -> HookRegistry:
        if not isinstance(self.store, HookRegistry):
            raise TypeError(
                f"{type(self.store).__name__} does not support pre-read hooks"
            )
        return self.store

    def _install_hook(self, name: str) -> None:
        registry = self._hook_registry()
        full_name = self.resolve_full_name(name)
        previous = self._hooks.pop(name, None)
        if previous is not None:
            registry.remove_pre_read(full_name, previous)
        hook = self._make_hook(name)
        registry.install_pre_read(full_name, hook)
        self._hooks[name] = hook

    def _make_hook(self, name: str) -> PreReadHook:
        def substitute(key: str, default: Any) -> Any:
            # Our own read of the same key comes back through this hook.
            if name in self._resolving:
                return UNHANDLED
            return self.get(name, default)

        return substitute

    def _read_raw(self, name: str, read: Callable[[], Any]) -> Any:
        """Run *read* with the hook for *name* passing through."""
        if name in self._resolving:
            return read()
        self._resolving.add(name)
        try:
            return read()
        finally:
            self._resolving.discard(name)

    # -- internals ------------------------------------------------------

    def _check_suppressed(self, name: str, full_name: str) -> WriteResult | None:
        if not self.has_override(name):
            return None
        logger.info(
            "encrypted_write_suppressed",
            full_name=full_name,
            identifier=self.resolve_override_id(name),
        )
        return WriteResult(WriteStatus.SUPPRESSED)

    def _encrypt(
        self, plaintext: str, full_name: str
    ) -> tuple[str, WriteResult | None]:
        try:
            return self.engine.encrypt(plaintext), None
        except EncryptionError as e:
            logger.error(
                "encryption_failed",
                full_name=full_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return "", WriteResult(WriteStatus.FAILED, error=e)

    def _resolve(
        self,
        name: str,
        full_name: str,
        default: Any,
        read: Callable[[], Any],
    ) -> ValueProvenance:
        override = self.get_override(name)
        if override is not None:
            return ValueProvenance(
                value=override,
                source=ValueSource.OVERRIDE,
                identifier=self.resolve_override_id(name),
            )

        raw = self._read_raw(name, read)
        if raw is None or not isinstance(raw, str):
            return ValueProvenance(
                value=default, source=ValueSource.DEFAULT, identifier=full_name
            )

        was_encrypted = self.engine.is_encrypted(raw)
        try:
            plaintext = self.engine.decrypt(raw)
        except EncryptionError as e:
            logger.warning(
                "stored_value_undecryptable",
                full_name=full_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ValueProvenance(
                value=default,
                source=ValueSource.DEFAULT,
                identifier=full_name,
                was_encrypted=was_encrypted,
            )

        return ValueProvenance(
            value=plaintext,
            source=ValueSource.DATABASE,
            identifier=full_name,
            was_encrypted=was_encrypted,
        )

    @staticmethod
    def _require(store: Any, role: str) -> Any:
        if store is None:
            raise RuntimeError(f"ValueResolver was built without an {role}")
        return store
