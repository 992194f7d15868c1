from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from settings_encryption.db.engine import get_engine
from settings_encryption.models.base import Base

_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Return a cached session factory bound to the engine."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = sessionmaker(engine, expire_on_commit=False)
    return _session_factory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session. Caller controls commit/rollback."""
    factory = get_session_factory()
    with factory() as session:
        yield session


def create_tables(engine: Engine | None = None) -> None:
    """Create the storage tables if they do not exist yet."""
    Base.metadata.create_all(engine or get_engine())
