"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from settings_encryption.crypto.engine import CipherEngine
from settings_encryption.models.base import Base
from settings_encryption.overrides import CallableOverrides
from settings_encryption.resolver import ValueResolver
from settings_encryption.storage.memory import (
    MemoryExpiringStore,
    MemoryOwnerStore,
    MemoryStore,
)

TEST_KEY = "test-encryption-key"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine() -> CipherEngine:
    """Cipher engine with a fixed explicit key and the default prefix."""
    return CipherEngine(TEST_KEY)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def expiring_store(clock: FakeClock) -> MemoryExpiringStore:
    return MemoryExpiringStore(clock=clock)


@pytest.fixture
def owner_store() -> MemoryOwnerStore:
    return MemoryOwnerStore()


@pytest.fixture
def override_values() -> dict[str, str]:
    """Mutable backing dict for the resolver's overrides."""
    return {}


@pytest.fixture
def overrides(override_values: dict[str, str]) -> CallableOverrides:
    lookups = {
        identifier: (lambda identifier=identifier: override_values.get(identifier))
        for identifier in ("MYAPP_API_KEY", "MYAPP_TOKEN", "MYAPP_SECRET")
    }
    return CallableOverrides(lookups)


@pytest.fixture
def resolver(
    engine: CipherEngine,
    store: MemoryStore,
    expiring_store: MemoryExpiringStore,
    owner_store: MemoryOwnerStore,
    overrides: CallableOverrides,
) -> ValueResolver:
    """Resolver over in-memory stores with namespace ``myapp``."""
    return ValueResolver(
        engine,
        store,
        expiring_store=expiring_store,
        owner_store=owner_store,
        overrides=overrides,
        namespace="myapp",
    )


@pytest.fixture
def sql_session_factory():
    """Session factory over a fresh SQLite in-memory database."""
    sql_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(sql_engine)
    yield sessionmaker(sql_engine, expire_on_commit=False, class_=Session)
    sql_engine.dispose()
