from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from resource_registry.db.models import Resource
from resource_registry.db.session import get_engine, get_session_maker
from resource_registry.schemas.resource import (
    ResourceCreate,
    ResourcePage,
    ResourceRead,
    ResourceUpdate,
)

# ORM attribute name -> persisted column name (e.g. "app_name" -> "AppName").
FIELD_TO_COLUMN: Dict[str, str] = {
    attr.key: attr.columns[0].name for attr in inspect(Resource).column_attrs
}

LIKE_ESCAPE = "/"


class MoveDirection(str, enum.Enum):
    """Reorder direction within an application's DisplayOrder sequence."""
    UP = "up"
    DOWN = "down"


class StaleOrderError(Exception):
    """A conditional DisplayOrder update did not match the value read earlier."""


def ensure_orders_unchanged(locked: Iterable[Tuple[int, Optional[int]]], seen: Dict[int, int]) -> None:
    """
    Compare (Id, DisplayOrder) pairs read under lock with the values read before locking.

    Raises:
      StaleOrderError: if a row disappeared or its DisplayOrder changed meanwhile.
    """
    if {row_id: order for row_id, order in locked} != seen:
        raise StaleOrderError(sorted(seen))


def utcnow() -> datetime:
    """Timezone-aware current time used for audit columns."""
    return datetime.now(tz=timezone.utc)


def like_pattern(query: str) -> str:
    """
    Build a LIKE pattern matching `query` as a literal substring.

    LIKE wildcards in the query are escaped with LIKE_ESCAPE. The pattern is
    lower-cased; callers compare it against lower(column) so matching is
    case-insensitive.
    """
    escaped = (
        query.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def page_bounds(page_index: int, page_size: int) -> Tuple[int, int]:
    """
    Translate a 0-based page index and page size into (offset, limit).

    Raises:
      ValueError: for a negative page index or a non-positive page size.
    """
    if page_index < 0:
        raise ValueError("page_index must be >= 0")
    if page_size <= 0:
        raise ValueError("page_size must be > 0")
    return page_index * page_size, page_size


def create_values(model: ResourceCreate) -> Dict[str, Any]:
    """
    Column-name -> value mapping for an insert (Created defaults to now).

    None values are written as NULL by every store; server defaults never replace them.
    """
    values = {FIELD_TO_COLUMN[k]: v for k, v in model.model_dump().items()}
    if values.get("Created") is None:
        values["Created"] = utcnow()
    return values


def update_values(model: ResourceUpdate) -> Dict[str, Any]:
    """Column-name -> value mapping replacing every mutable column (Modified defaults to now)."""
    values = {FIELD_TO_COLUMN[k]: v for k, v in model.model_dump().items()}
    if values.get("Modified") is None:
        values["Modified"] = utcnow()
    return values


class ResourceRepository(ABC):
    """
    Behavioral contract of the resource store.

    Implementations differ only in how they reach the database (literal SQL,
    Core expressions, ORM unit of work); for identical data and inputs they
    must return identical results.

    Every operation opens and fully consumes its own connection or session.
    The optional `connection_string` argument targets another (tenant) database
    for a single call; otherwise the repository's default database is used.

    Outcomes:
      - not found: None / False, never an exception;
      - move at the boundary, unmovable row, or concurrent conflict: False;
      - database failures (SQLAlchemyError) propagate to the caller.
    """

    def __init__(self, connection_string: Optional[str] = None) -> None:
        self.connection_string = connection_string

    def engine(self, connection_string: Optional[str] = None) -> AsyncEngine:
        """Engine for the call's target database."""
        return get_engine(connection_string or self.connection_string)

    def sessions(self, connection_string: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
        """Session factory for the call's target database."""
        return get_session_maker(connection_string or self.connection_string)

    @abstractmethod
    async def add(self, model: ResourceCreate, connection_string: Optional[str] = None) -> ResourceRead:
        """Insert a resource and return it with its assigned id."""

    @abstractmethod
    async def get_all(self, connection_string: Optional[str] = None) -> List[ResourceRead]:
        """All resources, newest (highest id) first."""

    @abstractmethod
    async def get_by_id(self, resource_id: int, connection_string: Optional[str] = None) -> Optional[ResourceRead]:
        """A single resource, or None."""

    @abstractmethod
    async def update(
        self, resource_id: int, model: ResourceUpdate, connection_string: Optional[str] = None
    ) -> bool:
        """Replace every mutable field of a resource. False when the id does not exist."""

    @abstractmethod
    async def delete(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        """Hard-delete a resource. False when the id does not exist."""

    @abstractmethod
    async def get_articles(
        self,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        """
        One page of resources whose Title or Description contains search_query
        (case-insensitive), ordered by id descending, plus the total match count.
        """

    @abstractmethod
    async def get_by_app_name(self, app_name: str, connection_string: Optional[str] = None) -> List[ResourceRead]:
        """Resources of one application ordered by GroupOrder, Alias."""

    @abstractmethod
    async def get_articles_by_app_name(
        self,
        app_name: str,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        """Like get_articles, scoped to one application and ordered by GroupOrder, Alias."""

    async def get_all_by_app_name(self, app_name: str, connection_string: Optional[str] = None) -> List[ResourceRead]:
        """Every resource of one application (same ordering as get_by_app_name)."""
        return await self.get_by_app_name(app_name, connection_string)

    async def move_up(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        """Swap DisplayOrder with the nearest smaller value in the same application."""
        return await self._move(resource_id, MoveDirection.UP, connection_string)

    async def move_down(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        """Swap DisplayOrder with the nearest larger value in the same application."""
        return await self._move(resource_id, MoveDirection.DOWN, connection_string)

    @abstractmethod
    async def _move(
        self, resource_id: int, direction: MoveDirection, connection_string: Optional[str]
    ) -> bool:
        """
        Read the row and its neighbor and swap their DisplayOrder in one transaction.

        Neither read takes a lock. The pair is then locked in ascending Id order
        (FOR UPDATE where supported) and re-checked. Both writes are conditional
        on the values read; any mismatch rolls the transaction back and the move
        is declined.
        """
