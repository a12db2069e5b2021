"""
ORM models for the resource registry.

Importing this package ensures model classes are registered with the Base
metadata.
"""

from .resource import Resource, DEFAULT_APP_NAME  # noqa: F401
from .tenant import Tenant  # noqa: F401
