from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment (and an optional .env file).
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    DB_DIALECT: Literal["postgresql", "mysql", "sqlite"] = "postgresql"
    DB_DRIVER: str = "asyncpg"
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int | None = None
    DB_NAME: str = "crudkit"

    # Full URL override, e.g. "sqlite+aiosqlite:///./crudkit.db"
    DATABASE_URL_OVERRIDE: str | None = None

    # Per-statement timeout pushed to the server (PostgreSQL drivers only)
    DB_STATEMENT_TIMEOUT_MS: int | None = None

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # Pagination defaults (documented; the request model carries the same values)
    PAGINATION_DEFAULT_PAGE: int = 1
    PAGINATION_DEFAULT_LIMIT: int = 10

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/crudkit")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> str:
        """
        Return the SQLAlchemy async URL.

        `DATABASE_URL_OVERRIDE` wins when set; otherwise the URL is assembled
        from the DB_* parts. SQLite uses DB_NAME as the file path.
        """
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        scheme = f"{self.DB_DIALECT}+{self.DB_DRIVER}"
        if self.DB_DIALECT == "sqlite":
            return f"{scheme}:///{self.DB_NAME}"

        credentials = self.DB_USER
        if self.DB_PASSWORD:
            credentials = f"{credentials}:{self.DB_PASSWORD}"
        host = f"{self.DB_HOST}:{self.DB_PORT}" if self.DB_PORT else self.DB_HOST
        return f"{scheme}://{credentials}@{host}/{self.DB_NAME}"

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str | None:
        """Logging level names are uppercase ("debug" -> "DEBUG")."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("LOG_FORMAT", "DB_DIALECT", mode="before")
    @classmethod
    def normalize_lowercase(cls, v: str | None) -> str | None:
        return v.lower() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() always returns the same settings from the environment,
# so caching it with @lru_cache() avoids re-reading .env on every call.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
