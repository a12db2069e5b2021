from __future__ import annotations

from fastapi import Depends

from resource_registry.core.settings import AppSettings, get_app_settings
from resource_registry.repositories import ResourceRepository, create_resource_repository


# PUBLIC_INTERFACE
def get_settings_dep() -> AppSettings:
    """Application settings for request handlers."""
    return get_app_settings()


# PUBLIC_INTERFACE
def get_resource_repository(settings: AppSettings = Depends(get_settings_dep)) -> ResourceRepository:
    """
    Resource store selected by REPOSITORY_MODE, bound to the master database.
    """
    return create_resource_repository(settings.REPOSITORY_MODE)
