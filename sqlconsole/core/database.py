from sqlalchemy.ext.asyncio import create_async_engine

from sqlconsole.core.config import settings
from sqlconsole.core.console.session import SessionConfig
from sqlconsole.core.console.store import PostgresStore, Store

# One pool for the whole process; every session borrows from it.
# AUTOCOMMIT: each console statement stands alone, as typed.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    pool_size=settings.POOL_SIZE,
    max_overflow=settings.MAX_OVERFLOW,
    pool_timeout=settings.POOL_TIMEOUT,
    pool_recycle=settings.POOL_RECYCLE,
    isolation_level="AUTOCOMMIT",
)

store = PostgresStore(engine, max_overflow=settings.MAX_OVERFLOW)


# This is the "Bridge" that gives the console access to postgres
def get_store() -> Store:
    return store


def get_session_config() -> SessionConfig:
    return SessionConfig.from_settings(settings)
