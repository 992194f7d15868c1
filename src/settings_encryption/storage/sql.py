"""SQLAlchemy-backed stores for the three storage kinds.

Each store takes a session factory and opens one short session per call,
committing writes immediately.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from settings_encryption.models.stored_value import ExpiringValue, OwnerValue, StoredValue
from settings_encryption.storage.base import UNHANDLED, PreReadHooks

logger = structlog.get_logger()


def _utcnow() -> datetime:
    # Naive UTC, matching what sa.DateTime round-trips on SQLite.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlStore(PreReadHooks):
    """Global settings table with pre-read hooks on :meth:`get`."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        value = self._run_pre_read(key, default)
        if value is not UNHANDLED:
            return value
        return self.raw_get(key, default)

    def raw_get(self, key: str, default: Any = None) -> Any:
        """Read without running hooks."""
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            return row.value if row is not None else default

    def set(self, key: str, value: str) -> bool:
        with self._session_factory() as session, session.begin():
            row = session.get(StoredValue, key)
            if row is None:
                session.add(StoredValue(key=key, value=value))
            else:
                row.value = value
                row.updated_at = _utcnow()
        return True

    def delete(self, key: str) -> bool:
        with self._session_factory() as session, session.begin():
            row = session.get(StoredValue, key)
            if row is None:
                return False
            session.delete(row)
        return True


class SqlExpiringStore:
    """Cache table; expired rows are removed lazily on read."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def get(self, key: str) -> Any:
        with self._session_factory() as session, session.begin():
            row = session.get(ExpiringValue, key)
            if row is None:
                return None
            if row.expires_at is not None and self._clock() >= row.expires_at:
                session.delete(row)
                logger.debug("expiring_value_lapsed", full_name=key)
                return None
            return row.value

    def set(self, key: str, value: str, ttl: int = 0) -> bool:
        if ttl < 0:
            return False
        expires_at = self._clock() + timedelta(seconds=ttl) if ttl else None
        with self._session_factory() as session, session.begin():
            row = session.get(ExpiringValue, key)
            if row is None:
                session.add(ExpiringValue(key=key, value=value, expires_at=expires_at))
            else:
                row.value = value
                row.expires_at = expires_at
        return True


class SqlOwnerStore:
    """Owner-scoped attribute table; ``set`` returns the row id."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def _find(self, session: Session, owner_id: int, key: str) -> OwnerValue | None:
        stmt = select(OwnerValue).where(
            OwnerValue.owner_id == owner_id, OwnerValue.key == key
        )
        return session.execute(stmt).scalar_one_or_none()

    def get(self, owner_id: int, key: str) -> Any:
        with self._session_factory() as session:
            row = self._find(session, owner_id, key)
            return row.value if row is not None else None

    def set(self, owner_id: int, key: str, value: str) -> int | bool:
        if owner_id <= 0:
            return False
        with self._session_factory() as session, session.begin():
            row = self._find(session, owner_id, key)
            if row is None:
                row = OwnerValue(owner_id=owner_id, key=key, value=value)
                session.add(row)
            else:
                row.value = value
            session.flush()
            record_id = row.id
        return record_id
