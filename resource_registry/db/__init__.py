"""
Persistence layer: settings and engines for the master and tenant databases,
the Resources/Tenants mappings, schema reconciliation and catalog seeding.
"""

from . import models  # noqa: F401  (registers the mappings on Base.metadata)
from .base import Base
from .config import Settings, get_settings, mask_url, to_async_url
from .session import dispose_engines, get_engine, get_session_maker, target_connection

__all__ = [
    "Base",
    "Settings",
    "dispose_engines",
    "get_engine",
    "get_session_maker",
    "get_settings",
    "mask_url",
    "target_connection",
    "to_async_url",
]
