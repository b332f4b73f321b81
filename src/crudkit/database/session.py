from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from crudkit.config.settings import Settings, get_settings


def _connect_args(settings: Settings) -> dict:
    """Driver-specific connect args (statement timeout for PostgreSQL drivers)."""
    timeout = settings.DB_STATEMENT_TIMEOUT_MS
    if not timeout or settings.DB_DIALECT != "postgresql":
        return {}
    if settings.DB_DRIVER == "asyncpg":
        return {"server_settings": {"statement_timeout": str(timeout)}}
    # psycopg / psycopg2 accept libpq options
    return {"options": f"-c statement_timeout={timeout}"}


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLite honour SAVEPOINT properly.

    The sqlite3 driver issues BEGIN lazily, which breaks nested transactions.
    Disable its transaction handling and emit BEGIN ourselves, as the
    SQLAlchemy docs recommend for pysqlite/aiosqlite. Repositories rely on
    SAVEPOINTs to undo only the failed write.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: Settings, url: str | None = None) -> AsyncEngine:
    """Create the AsyncEngine for `settings` (or an explicit `url`)."""
    engine = create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,   # Set to False in production
        pool_pre_ping=True,              # Enables connection health checks
        connect_args=_connect_args(settings),
    )
    if engine.dialect.name == "sqlite":
        enable_sqlite_savepoints(engine)
    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps returned entities readable after the service commits
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache()
def get_engine() -> AsyncEngine:
    return build_engine(get_settings())


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return make_session_factory(get_engine())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency. Yields a session and ensures it's closed after the request.

    Usage:
        async def endpoint(db: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with get_session_factory()() as session:
        yield session
