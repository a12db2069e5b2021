from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from resource_registry.core.errors import ConfigurationError


class Settings(BaseSettings):
    """
    Master ("DefaultConnection") database settings.

    DATABASE_URL wins when set; otherwise a PostgreSQL URL is assembled from
    the POSTGRES_* variables. Tenant databases are not configured here: their
    connection strings are read from the master's Tenants table.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: Optional[str] = Field(None, description="Master connection URL (any SQLAlchemy URL)")
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    SQL_ECHO: bool = Field(False, description="Log every SQL statement issued by the cached engines")

    @property
    def database_url(self) -> str:
        """
        Raises:
          ConfigurationError: neither DATABASE_URL nor the POSTGRES_* credentials are set.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        missing = [
            name
            for name in ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Master connection string is not configured: set DATABASE_URL or {', '.join(missing)}."
            )
        url = URL.create(
            "postgresql",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )
        return url.render_as_string(hide_password=False)

    @property
    def async_database_url(self) -> str:
        return to_async_url(self.database_url)


# PUBLIC_INTERFACE
def to_async_url(url: str) -> str:
    """
    Normalize a connection URL to an async SQLAlchemy driver.

    postgresql[+driver]:// becomes postgresql+asyncpg:// and sqlite[+driver]://
    becomes sqlite+aiosqlite://. Other schemes are returned unchanged.
    """
    if url.startswith("postgresql+asyncpg://") or url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    url = re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)
    return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)


# PUBLIC_INTERFACE
def mask_url(url: str) -> str:
    """Render a connection URL for logs with the password hidden."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable connection string>"


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Read the master database settings from the environment (and .env)."""
    return Settings()
