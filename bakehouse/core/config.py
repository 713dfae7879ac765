# bakehouse/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Global application settings (environment variables or .env).
    """

    # runtime environment
    ENV: str = Field(default="dev")
    DEBUG: bool = Field(default=True)

    # database: a single local store; PostgreSQL works too with the `postgres` extra
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./bakehouse.db",
        description="SQLAlchemy DSN, e.g. sqlite+aiosqlite:///./bakehouse.db",
    )
    SQL_ECHO: bool = Field(default=False)
    CREATE_TABLES_ON_STARTUP: bool = Field(default=True)

    # logging
    LOG_LEVEL: str = Field(default="INFO")

    # order intake: reject orders that do not fit a slot's remaining capacity
    ENFORCE_SLOT_CAPACITY: bool = Field(default=True)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> AppSettings:
    """Cached settings singleton."""
    return AppSettings()
