from sqlalchemy import text

from crudkit.config.settings import Settings, get_settings
from crudkit.database.session import (
    _connect_args,
    build_engine,
    get_async_session,
    get_engine,
    get_session_factory,
)


def test_statement_timeout_for_asyncpg():
    settings = Settings(DB_DIALECT="postgresql", DB_DRIVER="asyncpg", DB_STATEMENT_TIMEOUT_MS=500)
    assert _connect_args(settings) == {"server_settings": {"statement_timeout": "500"}}


def test_statement_timeout_for_psycopg():
    settings = Settings(DB_DIALECT="postgresql", DB_DRIVER="psycopg", DB_STATEMENT_TIMEOUT_MS=500)
    assert _connect_args(settings) == {"options": "-c statement_timeout=500"}


def test_no_timeout_outside_postgres():
    settings = Settings(DB_DIALECT="sqlite", DB_DRIVER="aiosqlite", DB_STATEMENT_TIMEOUT_MS=500)
    assert _connect_args(settings) == {}


async def test_sqlite_engine_supports_savepoints(tmp_path):
    settings = Settings(DB_DIALECT="sqlite", DB_DRIVER="aiosqlite", DB_STATEMENT_TIMEOUT_MS=None)
    engine = build_engine(settings, url=f"sqlite+aiosqlite:///{tmp_path / 'sp.db'}")
    try:
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE t (x INTEGER UNIQUE)"))
            await conn.execute(text("INSERT INTO t VALUES (1)"))
            nested = await conn.begin_nested()
            await conn.execute(text("INSERT INTO t VALUES (2)"))
            await nested.rollback()
            rows = (await conn.execute(text("SELECT x FROM t"))).scalars().all()
        assert rows == [1]
    finally:
        await engine.dispose()


async def test_get_async_session_uses_configured_database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL_OVERRIDE", f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    monkeypatch.delenv("DB_STATEMENT_TIMEOUT_MS", raising=False)
    cached = (get_settings, get_engine, get_session_factory)
    for fn in cached:
        fn.cache_clear()
    try:
        sessions = get_async_session()
        session = await sessions.__anext__()
        assert (await session.execute(text("SELECT 1"))).scalar_one() == 1
        await sessions.aclose()
        await get_engine().dispose()
    finally:
        for fn in cached:
            fn.cache_clear()
