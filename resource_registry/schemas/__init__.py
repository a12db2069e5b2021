"""
Public Pydantic schemas used by the store, the reconcilers, FastAPI routes and tests.

Includes the resource models (create/update/read/page), the seed catalog entry
and common reusable models such as standard responses.
"""

from .common import MessageResponse  # noqa: F401
from .resource import (  # noqa: F401
    MoveResult,
    ResourceCreate,
    ResourcePage,
    ResourceRead,
    ResourceUpdate,
    SeedEntry,
)
