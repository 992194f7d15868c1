"""Tests for the value resolver: naming, overrides, reads and writes."""

import pytest

from settings_encryption.crypto.engine import DEFAULT_PREFIX, CipherEngine
from settings_encryption.crypto.errors import CipherError
from settings_encryption.overrides import CallableOverrides, NoOverrides
from settings_encryption.resolver import (
    ValueResolver,
    ValueSource,
    WriteResult,
    WriteStatus,
)
from settings_encryption.storage.memory import MemoryStore


class TestNaming:
    def test_full_name_with_namespace(self, resolver: ValueResolver) -> None:
        assert resolver.resolve_full_name("api_key") == "myapp_api_key"

    def test_override_id_is_uppercased_full_name(self, resolver: ValueResolver) -> None:
        assert resolver.resolve_override_id("api_key") == "MYAPP_API_KEY"

    def test_without_namespace(self, engine: CipherEngine, store: MemoryStore) -> None:
        plain = ValueResolver(engine, store)
        assert plain.resolve_full_name("api_key") == "api_key"
        assert plain.resolve_override_id("api_key") == "API_KEY"

    def test_namespace_with_trailing_separator(self, engine: CipherEngine, store: MemoryStore) -> None:
        r = ValueResolver(engine, store, namespace="myapp_")
        assert r.resolve_full_name("api_key") == "myapp_api_key"


class TestSetAndGet:
    def test_end_to_end_encrypted_storage(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        result = resolver.set("api_key", "sk_live_123")

        assert result.status is WriteStatus.STORED
        assert result
        raw = store.raw_get("myapp_api_key")
        assert raw.startswith("__ENCRYPTED__")
        assert resolver.is_encrypted(raw)
        assert resolver.get("api_key", "") == "sk_live_123"

    def test_legacy_plaintext_passes_through(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        store.set("myapp_api_key", "legacy")
        assert resolver.get("api_key", "") == "legacy"

    def test_corrupted_token_returns_default(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        store.set("myapp_api_key", "__ENCRYPTED__!!!notbase64!!!")
        assert resolver.get("api_key", "fallback") == "fallback"

    def test_missing_value_returns_default(self, resolver: ValueResolver) -> None:
        assert resolver.get("api_key", "fallback") == "fallback"
        assert resolver.get("api_key") == ""

    def test_non_string_value_returns_default(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        store.set("myapp_api_key", ["not", "a", "string"])
        assert resolver.get("api_key", "fallback") == "fallback"

    def test_foreign_key_token_returns_default(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        store.set("myapp_api_key", CipherEngine("other-key").encrypt("sk_live_123"))
        assert resolver.get("api_key", "fallback") == "fallback"

    def test_empty_plaintext_stored_as_empty(
        self, resolver: ValueResolver, store: MemoryStore
    ) -> None:
        assert resolver.set("api_key", "").ok
        assert store.raw_get("myapp_api_key") == ""
        assert resolver.get("api_key", "fallback") == ""

    def test_encryption_failure_writes_nothing(
        self, resolver: ValueResolver, store: MemoryStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fail(plaintext: str) -> str:
            raise CipherError("Encryption failed: boom")

        monkeypatch.setattr(resolver.engine, "encrypt", fail)
        result = resolver.set("api_key", "sk_live_123")

        assert result.status is WriteStatus.FAILED
        assert isinstance(result.error, CipherError)
        assert not result
        assert store.raw_get("myapp_api_key") is None

    def test_store_rejection_reported(self, engine: CipherEngine) -> None:
        class ReadOnlyStore(MemoryStore):
            def set(self, key, value):
                return False

        r = ValueResolver(engine, ReadOnlyStore())
        result = r.set("api_key", "v")
        assert result.status is WriteStatus.FAILED
        assert result.error is None


class TestOverrides:
    def test_override_wins_on_read(
        self, resolver: ValueResolver, store: MemoryStore, override_values: dict
    ) -> None:
        resolver.set("api_key", "stored")
        override_values["MYAPP_API_KEY"] = "X"
        assert resolver.has_override("api_key")
        assert resolver.get("api_key", "fallback") == "X"

    def test_override_read_skips_storage(
        self, engine: CipherEngine, override_values: dict, overrides
    ) -> None:
        class ExplodingStore(MemoryStore):
            def get(self, key, default=None):
                raise AssertionError("storage must not be read")

        r = ValueResolver(engine, ExplodingStore(), overrides=overrides, namespace="myapp")
        override_values["MYAPP_API_KEY"] = "X"
        assert r.get("api_key") == "X"

    def test_override_suppresses_write(
        self, resolver: ValueResolver, store: MemoryStore, override_values: dict
    ) -> None:
        override_values["MYAPP_API_KEY"] = "X"
        result = resolver.set("api_key", "Y")
        assert result.status is WriteStatus.SUPPRESSED
        assert store.raw_get("myapp_api_key") is None

    def test_empty_override_falls_through(
        self, resolver: ValueResolver, override_values: dict
    ) -> None:
        override_values["MYAPP_API_KEY"] = ""
        assert not resolver.has_override("api_key")
        assert resolver.get_override("api_key") is None
        assert resolver.get("api_key", "fallback") == "fallback"
        assert resolver.set("api_key", "stored").ok
        assert resolver.get("api_key", "fallback") == "stored"

    def test_default_override_source_is_empty(self, engine: CipherEngine, store: MemoryStore) -> None:
        r = ValueResolver(engine, store)
        assert isinstance(r.overrides, NoOverrides)
        assert not r.has_override("api_key")


class TestProvenance:
    def test_override_source(self, resolver: ValueResolver, override_values: dict) -> None:
        override_values["MYAPP_API_KEY"] = "X"
        info = resolver.get_with_provenance("api_key", "fallback")
        assert info.value == "X"
        assert info.source is ValueSource.OVERRIDE
        assert info.identifier == "MYAPP_API_KEY"
        assert info.was_encrypted is False

    def test_database_source_encrypted(self, resolver: ValueResolver) -> None:
        resolver.set("api_key", "sk_live_123")
        info = resolver.get_with_provenance("api_key")
        assert info.value == "sk_live_123"
        assert info.source is ValueSource.DATABASE
        assert info.identifier == "myapp_api_key"
        assert info.was_encrypted is True

    def test_database_source_plaintext(self, resolver: ValueResolver, store: MemoryStore) -> None:
        store.set("myapp_api_key", "legacy")
        info = resolver.get_with_provenance("api_key")
        assert info.source is ValueSource.DATABASE
        assert info.was_encrypted is False

    def test_default_source(self, resolver: ValueResolver) -> None:
        info = resolver.get_with_provenance("api_key", "fallback")
        assert info.value == "fallback"
        assert info.source is ValueSource.DEFAULT

    def test_undecryptable_reports_default(self, resolver: ValueResolver, store: MemoryStore) -> None:
        store.set("myapp_api_key", "__ENCRYPTED__!!!notbase64!!!")
        info = resolver.get_with_provenance("api_key", "fallback")
        assert info.value == "fallback"
        assert info.source is ValueSource.DEFAULT
        assert info.was_encrypted is True


class TestExpiring:
    def test_round_trip(self, resolver: ValueResolver, expiring_store) -> None:
        assert resolver.set_expiring("token", "temp", ttl=60).ok
        assert expiring_store.get("myapp_token").startswith(DEFAULT_PREFIX)
        assert resolver.get_expiring("token") == "temp"

    def test_expired_returns_default(self, resolver: ValueResolver, clock) -> None:
        resolver.set_expiring("token", "temp", ttl=60)
        clock.advance(61)
        assert resolver.get_expiring("token") is None
        assert resolver.get_expiring("token", "gone") == "gone"

    def test_zero_ttl_never_expires(self, resolver: ValueResolver, clock) -> None:
        resolver.set_expiring("token", "forever")
        clock.advance(10**9)
        assert resolver.get_expiring("token") == "forever"

    def test_override_applies(self, resolver: ValueResolver, expiring_store, override_values: dict) -> None:
        override_values["MYAPP_TOKEN"] = "env-token"
        assert resolver.set_expiring("token", "temp", 60).status is WriteStatus.SUPPRESSED
        assert expiring_store.get("myapp_token") is None
        assert resolver.get_expiring("token") == "env-token"

    def test_negative_ttl_rejected_by_store(self, resolver: ValueResolver) -> None:
        assert resolver.set_expiring("token", "temp", ttl=-1).status is WriteStatus.FAILED

    def test_requires_store(self, engine: CipherEngine, store: MemoryStore) -> None:
        with pytest.raises(RuntimeError, match="expiring_store"):
            ValueResolver(engine, store).get_expiring("token")


class TestOwnerScoped:
    def test_round_trip_and_record_id(self, resolver: ValueResolver, owner_store) -> None:
        result = resolver.set_for_owner(7, "secret", "per-user")
        assert result.ok
        assert result.record_id == 1
        assert owner_store.get(7, "myapp_secret").startswith(DEFAULT_PREFIX)
        assert resolver.get_for_owner(7, "secret") == "per-user"

    def test_owners_are_isolated(self, resolver: ValueResolver) -> None:
        resolver.set_for_owner(1, "secret", "one")
        resolver.set_for_owner(2, "secret", "two")
        assert resolver.get_for_owner(1, "secret") == "one"
        assert resolver.get_for_owner(2, "secret") == "two"
        assert resolver.get_for_owner(3, "secret", "none") == "none"

    def test_update_keeps_record_id(self, resolver: ValueResolver) -> None:
        first = resolver.set_for_owner(7, "secret", "a")
        second = resolver.set_for_owner(7, "secret", "b")
        assert first.record_id == second.record_id
        assert resolver.get_for_owner(7, "secret") == "b"

    def test_invalid_owner_fails(self, resolver: ValueResolver) -> None:
        result = resolver.set_for_owner(0, "secret", "a")
        assert result.status is WriteStatus.FAILED
        assert result.record_id is None


class TestOwnerScopedPolicy:
    def test_override_suppresses_owner_write(
        self, resolver: ValueResolver, owner_store, override_values: dict
    ) -> None:
        override_values["MYAPP_SECRET"] = "from-env"
        result = resolver.set_for_owner(7, "secret", "per-user")
        assert result.status is WriteStatus.SUPPRESSED
        assert result.record_id is None
        assert owner_store.get(7, "myapp_secret") is None
        assert resolver.get_for_owner(7, "secret", "d") == "from-env"

    @pytest.mark.parametrize(
        "raw",
        ["__ENCRYPTED__!!!", CipherEngine("other-key").encrypt("per-user")],
        ids=["malformed", "foreign_key"],
    )
    def test_undecryptable_owner_value_returns_default(
        self, resolver: ValueResolver, owner_store, raw: str
    ) -> None:
        owner_store.set(7, "myapp_secret", raw)
        assert resolver.get_for_owner(7, "secret", "fallback") == "fallback"

    @pytest.mark.parametrize(
        "raw",
        ["__ENCRYPTED__!!!", CipherEngine("other-key").encrypt("temp")],
        ids=["malformed", "foreign_key"],
    )
    def test_undecryptable_expiring_value_returns_default(
        self, resolver: ValueResolver, expiring_store, raw: str
    ) -> None:
        expiring_store.set("myapp_token", raw, ttl=60)
        assert resolver.get_expiring("token", "fallback") == "fallback"

    def test_store_without_record_id(self, engine: CipherEngine, store: MemoryStore) -> None:
        class FlagOwnerStore:
            def __init__(self):
                self.data = {}

            def get(self, owner_id, key):
                return self.data.get((owner_id, key))

            def set(self, owner_id, key, value):
                self.data[(owner_id, key)] = value
                return True

        r = ValueResolver(engine, store, owner_store=FlagOwnerStore())
        result = r.set_for_owner(7, "secret", "per-user")
        assert result.ok
        assert result.record_id is None
        assert r.get_for_owner(7, "secret") == "per-user"


class TestOverrideLookups:
    def test_lookup_runs_once_per_read(self, engine: CipherEngine, store: MemoryStore) -> None:
        calls: list[str] = []

        def lookup() -> str:
            calls.append("MYAPP_API_KEY")
            return "X"

        r = ValueResolver(
            engine,
            store,
            overrides=CallableOverrides({"MYAPP_API_KEY": lookup}),
            namespace="myapp",
        )
        assert r.get("api_key") == "X"
        assert len(calls) == 1


class TestWriteResult:
    def test_truthiness(self) -> None:
        assert WriteResult(WriteStatus.STORED)
        assert not WriteResult(WriteStatus.SUPPRESSED)
        assert not WriteResult(WriteStatus.FAILED)


class TestChangeKey:
    def test_rotation_makes_old_values_default(self, resolver: ValueResolver) -> None:
        resolver.set("api_key", "sk_live_123")
        resolver.change_key("rotated")
        assert resolver.get("api_key", "fallback") == "fallback"
        resolver.set("api_key", "sk_live_456")
        assert resolver.get("api_key", "fallback") == "sk_live_456"
