"""
Repository layer for the Resources table.

Three interchangeable stores implement the ResourceRepository contract:
- TextResourceRepository: literal SQL through sqlalchemy.text()
- CoreResourceRepository: SQLAlchemy Core expressions
- OrmResourceRepository: ORM sessions and change tracking

create_resource_repository picks one by name (REPOSITORY_MODE setting).
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from .base import MoveDirection, ResourceRepository, StaleOrderError
from .orm import OrmResourceRepository
from .sql_core import CoreResourceRepository
from .sql_text import TextResourceRepository

REPOSITORY_CLASSES: Dict[str, Type[ResourceRepository]] = {
    "orm": OrmResourceRepository,
    "core": CoreResourceRepository,
    "text": TextResourceRepository,
}


# PUBLIC_INTERFACE
def create_resource_repository(mode: str = "orm", connection_string: Optional[str] = None) -> ResourceRepository:
    """
    Build the resource store for a mode name ("orm", "core" or "text").

    Raises:
      ValueError: for an unknown mode.
    """
    try:
        cls = REPOSITORY_CLASSES[mode.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown repository mode {mode!r}; expected one of {', '.join(REPOSITORY_CLASSES)}"
        ) from None
    return cls(connection_string)


__all__ = [
    "CoreResourceRepository",
    "MoveDirection",
    "OrmResourceRepository",
    "REPOSITORY_CLASSES",
    "ResourceRepository",
    "StaleOrderError",
    "TextResourceRepository",
    "create_resource_repository",
]
