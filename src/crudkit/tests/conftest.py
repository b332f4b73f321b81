"""
Core pytest configuration for the entire test suite.

Only the database and logging setup shared by ALL tests lives here.
Domain-specific fixtures are located in:
- tests/test_fixtures/repository_fixtures.py

Each database test gets its own SQLite file under pytest's tmp_path (through
aiosqlite), so tests never share rows or auto-increment counters. Set
TEST_DATABASE_URL to run the same tests against PostgreSQL or MySQL.
"""

# -------------------------------
# Standard library imports
# -------------------------------
import os
import logging
from typing import AsyncGenerator
from urllib.parse import urlparse

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Keep this block above the crudkit imports so model registration and engine
# creation do not spam the test output.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from crudkit.config.settings import Settings
from crudkit.core.logging.builder import setup_logging
from crudkit.database.base import Base
from crudkit.database.session import build_engine, make_session_factory
from crudkit.models import user  # noqa: F401 - registers the users table with Base.metadata

logger = logging.getLogger(__name__)

# Explicit values win over the environment / .env file
TEST_SETTINGS = Settings(
    ENV="testing",
    LOG_LEVEL="INFO",
    LOG_FORMAT="text",
    LOG_TO_STDOUT=True,
    SQLALCHEMY_ECHO=False,
    ENABLE_SQL_LOGGING=False,
    DB_STATEMENT_TIMEOUT_MS=None,
)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install crudkit logging once for the session.

    pytest re-attaches its caplog handler for every test phase, so
    `caplog.records` keeps working after dictConfig replaces the root handlers.
    """
    setup_logging(TEST_SETTINGS)
    yield


# ------------------------------------------------------------------------------------------------
# Test database URL
# ------------------------------------------------------------------------------------------------


def safe_log_db_url(db_url: str) -> str:
    """Strip credentials from a database URL before logging it."""
    parsed = urlparse(db_url)
    if parsed.hostname is None:
        return f"{parsed.scheme}://{parsed.path}"
    return f"{parsed.scheme}://{parsed.hostname}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url(tmp_path) -> str:
    """
    1. TEST_DATABASE_URL (CI override)
    2. a fresh SQLite file for this test
    """
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url
    return f"sqlite+aiosqlite:///{tmp_path / 'crudkit_test.db'}"


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


@pytest.fixture()
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = get_test_database_url(tmp_path)
    logger.debug("tests.db_url", extra={"url": safe_log_db_url(url)})

    # build_engine installs the SQLite SAVEPOINT hooks the repositories rely on
    engine = build_engine(TEST_SETTINGS, url=url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine):
    return make_session_factory(async_engine)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    A plain session on the per-test database.

    Repositories only flush; whatever a test leaves uncommitted is rolled back
    here, and committed rows disappear with the database file.
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# Repository test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402,F401
    user_repo,
    user_service,
    sample_user_data,
    create_user,
    created_user,
    multiple_users,
)
