from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


RepositoryMode = Literal["orm", "core", "text"]


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated setting into trimmed, non-empty parts."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class AppSettings(BaseSettings):
    """
    Service-level settings: store selection, startup initialization and CORS.

    The master connection string lives in resource_registry.db.config.Settings.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = Field(default="Resource Registry")

    REPOSITORY_MODE: RepositoryMode = Field(
        default="orm",
        description="Resource store implementation: orm, core or text.",
    )

    RESOURCES_INIT_ENABLED: bool = Field(
        default=True,
        description="Reconcile the Resources table and seed the catalog at startup.",
    )
    RESOURCES_INIT_TENANTS: bool = Field(
        default=False,
        description="Also reconcile the Resources table in every tenant database.",
    )
    RESOURCES_SEED_APP_NAMES: Optional[str] = Field(
        default=None,
        description="Comma-separated applications to seed. Empty seeds the whole catalog.",
    )
    RESOURCES_SEED_CATALOG: Optional[str] = Field(
        default=None,
        description="Path to an alternate seed catalog JSON file.",
    )

    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated allowed origins. Credentials are only allowed without '*'.",
    )

    @property
    def cors_origins(self) -> List[str]:
        return split_csv(self.CORS_ORIGINS) or ["*"]

    @property
    def seed_app_names(self) -> List[str]:
        """Seed allow-list (empty means the whole catalog)."""
        return split_csv(self.RESOURCES_SEED_APP_NAMES)


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Read AppSettings from the environment (and .env)."""
    return AppSettings()
