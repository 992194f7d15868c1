from sqlalchemy import Engine, create_engine as sa_create_engine

from settings_encryption.config.settings import get_settings

_engine: Engine | None = None


def get_engine(echo: bool = False) -> Engine:
    """Return a cached engine instance."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = sa_create_engine(settings.database_url, echo=echo)
    return _engine
