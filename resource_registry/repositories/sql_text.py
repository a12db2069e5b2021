"""
Resource store issuing literal SQL statements through sqlalchemy.text().

Identifiers are double-quoted, which both PostgreSQL and SQLite accept.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import Boolean, DateTime, bindparam, text
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncConnection

from resource_registry.schemas.resource import (
    ResourceCreate,
    ResourcePage,
    ResourceRead,
    ResourceUpdate,
)
from .base import (
    LIKE_ESCAPE,
    MoveDirection,
    ResourceRepository,
    StaleOrderError,
    create_values,
    ensure_orders_unchanged,
    like_pattern,
    page_bounds,
    update_values,
)

logger = logging.getLogger(__name__)

_COLUMNS = (
    '"Id", "Alias", "Route", "Title", "Description", "SysopUserId", "IsPublic", '
    '"GroupName", "GroupOrder", "DisplayOrder", "MailEnable", "ShowList", "MainShowList", '
    '"HeaderHtml", "FooterHtml", "AppName", "Step", '
    '"CreatedBy", "Created", "ModifiedBy", "Modified"'
)

# Result typing so that booleans and timestamps are converted per dialect.
_RESULT_TYPES = dict(
    IsPublic=Boolean,
    MailEnable=Boolean,
    ShowList=Boolean,
    MainShowList=Boolean,
    Created=DateTime(timezone=True),
    Modified=DateTime(timezone=True),
)

_SEARCH_FILTER = (
    f"(lower(\"Title\") LIKE :pattern ESCAPE '{LIKE_ESCAPE}' "
    f"OR lower(\"Description\") LIKE :pattern ESCAPE '{LIKE_ESCAPE}')"
)

_INSERT_SQL = text(
    """
    INSERT INTO "Resources"
        ("Alias", "Route", "Title", "Description", "SysopUserId", "IsPublic",
         "GroupName", "GroupOrder", "DisplayOrder", "MailEnable", "ShowList", "MainShowList",
         "HeaderHtml", "FooterHtml", "AppName", "Step", "CreatedBy", "Created")
    VALUES
        (:Alias, :Route, :Title, :Description, :SysopUserId, :IsPublic,
         :GroupName, :GroupOrder, :DisplayOrder, :MailEnable, :ShowList, :MainShowList,
         :HeaderHtml, :FooterHtml, :AppName, :Step, :CreatedBy, :Created)
    RETURNING "Id"
    """
).bindparams(bindparam("Created", type_=DateTime(timezone=True)))

_UPDATE_SQL = text(
    """
    UPDATE "Resources"
    SET "Alias" = :Alias,
        "Route" = :Route,
        "Title" = :Title,
        "Description" = :Description,
        "SysopUserId" = :SysopUserId,
        "IsPublic" = :IsPublic,
        "GroupName" = :GroupName,
        "GroupOrder" = :GroupOrder,
        "DisplayOrder" = :DisplayOrder,
        "MailEnable" = :MailEnable,
        "ShowList" = :ShowList,
        "MainShowList" = :MainShowList,
        "HeaderHtml" = :HeaderHtml,
        "FooterHtml" = :FooterHtml,
        "AppName" = :AppName,
        "Step" = :Step,
        "ModifiedBy" = :ModifiedBy,
        "Modified" = :Modified
    WHERE "Id" = :Id
    """
).bindparams(bindparam("Modified", type_=DateTime(timezone=True)))

_DELETE_SQL = text('DELETE FROM "Resources" WHERE "Id" = :id')

_SET_ORDER_SQL = text(
    'UPDATE "Resources" SET "DisplayOrder" = :new_order '
    'WHERE "Id" = :id AND "DisplayOrder" = :seen_order'
)

_LOCK_PAIR_SQL = 'SELECT "Id", "DisplayOrder" FROM "Resources" WHERE "Id" IN (:first, :second) ORDER BY "Id"'


def _select(where: str = "", order_by: str = "", paged: bool = False):
    sql = f'SELECT {_COLUMNS} FROM "Resources"'
    if where:
        sql += f" WHERE {where}"
    if order_by:
        sql += f" ORDER BY {order_by}"
    if paged:
        sql += " LIMIT :limit OFFSET :offset"
    return text(sql).columns(**_RESULT_TYPES)


def _count(where: str = ""):
    sql = 'SELECT COUNT(*) FROM "Resources"'
    if where:
        sql += f" WHERE {where}"
    return text(sql)


def _to_read(row: Row) -> ResourceRead:
    return ResourceRead.model_validate(dict(row._mapping))


class TextResourceRepository(ResourceRepository):
    """Resource store built on hand-written SQL statements."""

    async def add(self, model: ResourceCreate, connection_string: Optional[str] = None) -> ResourceRead:
        async with self.engine(connection_string).begin() as conn:
            new_id = (await conn.execute(_INSERT_SQL, create_values(model))).scalar_one()
            row = (await conn.execute(_select('"Id" = :id'), {"id": new_id})).one()
        return _to_read(row)

    async def get_all(self, connection_string: Optional[str] = None) -> List[ResourceRead]:
        async with self.engine(connection_string).connect() as conn:
            rows = (await conn.execute(_select(order_by='"Id" DESC'))).all()
        return [_to_read(r) for r in rows]

    async def get_by_id(self, resource_id: int, connection_string: Optional[str] = None) -> Optional[ResourceRead]:
        async with self.engine(connection_string).connect() as conn:
            row = (await conn.execute(_select('"Id" = :id'), {"id": resource_id})).first()
        return _to_read(row) if row is not None else None

    async def update(
        self, resource_id: int, model: ResourceUpdate, connection_string: Optional[str] = None
    ) -> bool:
        params = update_values(model)
        params["Id"] = resource_id
        async with self.engine(connection_string).begin() as conn:
            result = await conn.execute(_UPDATE_SQL, params)
        return (result.rowcount or 0) > 0

    async def delete(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        async with self.engine(connection_string).begin() as conn:
            result = await conn.execute(_DELETE_SQL, {"id": resource_id})
        return (result.rowcount or 0) > 0

    async def get_articles(
        self,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        return await self._page(None, page_index, page_size, search_query, connection_string)

    async def get_by_app_name(self, app_name: str, connection_string: Optional[str] = None) -> List[ResourceRead]:
        async with self.engine(connection_string).connect() as conn:
            rows = (
                await conn.execute(
                    _select('"AppName" = :app_name', order_by='"GroupOrder", "Alias", "Id"'),
                    {"app_name": app_name},
                )
            ).all()
        return [_to_read(r) for r in rows]

    async def get_articles_by_app_name(
        self,
        app_name: str,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        return await self._page(app_name, page_index, page_size, search_query, connection_string)

    async def _page(
        self,
        app_name: Optional[str],
        page_index: int,
        page_size: int,
        search_query: Optional[str],
        connection_string: Optional[str],
    ) -> ResourcePage:
        offset, limit = page_bounds(page_index, page_size)
        clauses: List[str] = []
        params: dict = {}
        if app_name is not None:
            clauses.append('"AppName" = :app_name')
            params["app_name"] = app_name
        if search_query:
            clauses.append(_SEARCH_FILTER)
            params["pattern"] = like_pattern(search_query)
        where = " AND ".join(clauses)
        order_by = '"GroupOrder", "Alias", "Id"' if app_name is not None else '"Id" DESC'

        async with self.engine(connection_string).connect() as conn:
            total = (await conn.execute(_count(where), params)).scalar_one()
            rows = (
                await conn.execute(
                    _select(where, order_by=order_by, paged=True),
                    {**params, "limit": limit, "offset": offset},
                )
            ).all()
        return ResourcePage(items=[_to_read(r) for r in rows], total_count=total)

    async def _move(
        self, resource_id: int, direction: MoveDirection, connection_string: Optional[str]
    ) -> bool:
        try:
            async with self.engine(connection_string).begin() as conn:
                current = (await conn.execute(_select('"Id" = :id'), {"id": resource_id})).first()
                if current is None or current.DisplayOrder is None:
                    return False

                neighbor = await self._neighbor(conn, current, direction)
                if neighbor is None:
                    return False

                await self._lock_pair(conn, {current.Id: current.DisplayOrder, neighbor.Id: neighbor.DisplayOrder})
                await self._set_order(conn, current.Id, current.DisplayOrder, neighbor.DisplayOrder)
                await self._set_order(conn, neighbor.Id, neighbor.DisplayOrder, current.DisplayOrder)
        except StaleOrderError:
            logger.warning("Move %s of resource %s declined: concurrent reorder detected", direction.value, resource_id)
            return False
        return True

    @staticmethod
    async def _neighbor(conn: AsyncConnection, current: Row, direction: MoveDirection) -> Optional[Row]:
        if direction is MoveDirection.UP:
            comparison, order_by = "<", '"DisplayOrder" DESC, "Id" DESC'
        else:
            comparison, order_by = ">", '"DisplayOrder" ASC, "Id" ASC'

        params = {"order": current.DisplayOrder}
        if current.AppName is None:
            partition = '"AppName" IS NULL'
        else:
            partition = '"AppName" = :app_name'
            params["app_name"] = current.AppName

        sql = (
            f'SELECT "Id", "DisplayOrder" FROM "Resources" '
            f'WHERE {partition} AND "DisplayOrder" IS NOT NULL AND "DisplayOrder" {comparison} :order '
            f"ORDER BY {order_by} LIMIT 1"
        )
        return (await conn.execute(text(sql), params)).first()

    @staticmethod
    async def _lock_pair(conn: AsyncConnection, seen: Dict[int, int]) -> None:
        sql = _LOCK_PAIR_SQL
        if conn.dialect.name == "postgresql":
            sql += " FOR UPDATE"
        first, second = sorted(seen)
        rows = (await conn.execute(text(sql), {"first": first, "second": second})).all()
        ensure_orders_unchanged(rows, seen)

    @staticmethod
    async def _set_order(conn: AsyncConnection, resource_id: int, seen: int, new: int) -> None:
        result = await conn.execute(
            _SET_ORDER_SQL, {"id": resource_id, "seen_order": seen, "new_order": new}
        )
        if result.rowcount != 1:
            raise StaleOrderError(resource_id)
