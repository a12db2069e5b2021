"""
Resource store built on SQLAlchemy Core expressions over the Resources table.

Rows are mapped straight into pydantic read models; no identity map or unit of
work is involved.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import Select, delete, func, insert, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncConnection

from resource_registry.db.models import Resource
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

resources = Resource.__table__


def _to_read(row: Row) -> ResourceRead:
    return ResourceRead.model_validate(dict(row._mapping))


def _filtered(stmt: Select, app_name: Optional[str], search_query: Optional[str]) -> Select:
    if app_name is not None:
        stmt = stmt.where(resources.c.AppName == app_name)
    if search_query:
        pattern = like_pattern(search_query)
        stmt = stmt.where(
            or_(
                func.lower(resources.c.Title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(resources.c.Description).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def _app_order(stmt: Select) -> Select:
    return stmt.order_by(resources.c.GroupOrder, resources.c.Alias, resources.c.Id)


def lock_pair_statement(ids: Iterable[int]) -> Select:
    """Select (Id, DisplayOrder) of the given rows, locking them in ascending Id order."""
    return (
        select(resources.c.Id, resources.c.DisplayOrder)
        .where(resources.c.Id.in_(sorted(ids)))
        .order_by(resources.c.Id)
        .with_for_update()
    )


class CoreResourceRepository(ResourceRepository):
    """Resource store using Core select/insert/update/delete constructs."""

    async def add(self, model: ResourceCreate, connection_string: Optional[str] = None) -> ResourceRead:
        async with self.engine(connection_string).begin() as conn:
            new_id = (
                await conn.execute(insert(resources).values(create_values(model)).returning(resources.c.Id))
            ).scalar_one()
            row = (await conn.execute(select(resources).where(resources.c.Id == new_id))).one()
        return _to_read(row)

    async def get_all(self, connection_string: Optional[str] = None) -> List[ResourceRead]:
        async with self.engine(connection_string).connect() as conn:
            rows = (await conn.execute(select(resources).order_by(resources.c.Id.desc()))).all()
        return [_to_read(r) for r in rows]

    async def get_by_id(self, resource_id: int, connection_string: Optional[str] = None) -> Optional[ResourceRead]:
        async with self.engine(connection_string).connect() as conn:
            row = (await conn.execute(select(resources).where(resources.c.Id == resource_id))).first()
        return _to_read(row) if row is not None else None

    async def update(
        self, resource_id: int, model: ResourceUpdate, connection_string: Optional[str] = None
    ) -> bool:
        stmt = update(resources).where(resources.c.Id == resource_id).values(update_values(model))
        async with self.engine(connection_string).begin() as conn:
            result = await conn.execute(stmt)
        return (result.rowcount or 0) > 0

    async def delete(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        async with self.engine(connection_string).begin() as conn:
            result = await conn.execute(delete(resources).where(resources.c.Id == resource_id))
        return (result.rowcount or 0) > 0

    async def get_articles(
        self,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        offset, limit = page_bounds(page_index, page_size)
        page_stmt = _filtered(select(resources), None, search_query).order_by(resources.c.Id.desc())
        return await self._page(page_stmt, None, search_query, offset, limit, connection_string)

    async def get_by_app_name(self, app_name: str, connection_string: Optional[str] = None) -> List[ResourceRead]:
        stmt = _app_order(select(resources).where(resources.c.AppName == app_name))
        async with self.engine(connection_string).connect() as conn:
            rows = (await conn.execute(stmt)).all()
        return [_to_read(r) for r in rows]

    async def get_articles_by_app_name(
        self,
        app_name: str,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        offset, limit = page_bounds(page_index, page_size)
        page_stmt = _app_order(_filtered(select(resources), app_name, search_query))
        return await self._page(page_stmt, app_name, search_query, offset, limit, connection_string)

    async def _page(
        self,
        page_stmt: Select,
        app_name: Optional[str],
        search_query: Optional[str],
        offset: int,
        limit: int,
        connection_string: Optional[str],
    ) -> ResourcePage:
        count_stmt = _filtered(select(func.count()).select_from(resources), app_name, search_query)
        async with self.engine(connection_string).connect() as conn:
            total = (await conn.execute(count_stmt)).scalar_one()
            rows = (await conn.execute(page_stmt.offset(offset).limit(limit))).all()
        return ResourcePage(items=[_to_read(r) for r in rows], total_count=total)

    async def _move(
        self, resource_id: int, direction: MoveDirection, connection_string: Optional[str]
    ) -> bool:
        try:
            async with self.engine(connection_string).begin() as conn:
                current = (
                    await conn.execute(
                        select(resources.c.Id, resources.c.AppName, resources.c.DisplayOrder)
                        .where(resources.c.Id == resource_id)
                    )
                ).first()
                if current is None or current.DisplayOrder is None:
                    return False

                neighbor = await self._neighbor(conn, current, direction)
                if neighbor is None:
                    return False

                seen = {current.Id: current.DisplayOrder, neighbor.Id: neighbor.DisplayOrder}
                ensure_orders_unchanged((await conn.execute(lock_pair_statement(seen))).all(), seen)
                await self._set_order(conn, current.Id, current.DisplayOrder, neighbor.DisplayOrder)
                await self._set_order(conn, neighbor.Id, neighbor.DisplayOrder, current.DisplayOrder)
        except StaleOrderError:
            logger.warning("Move %s of resource %s declined: concurrent reorder detected", direction.value, resource_id)
            return False
        return True

    @staticmethod
    async def _neighbor(conn: AsyncConnection, current: Row, direction: MoveDirection) -> Optional[Row]:
        order_col = resources.c.DisplayOrder
        stmt = select(resources.c.Id, resources.c.DisplayOrder).where(
            resources.c.AppName == current.AppName,
            order_col.is_not(None),
        )
        if direction is MoveDirection.UP:
            stmt = stmt.where(order_col < current.DisplayOrder).order_by(order_col.desc(), resources.c.Id.desc())
        else:
            stmt = stmt.where(order_col > current.DisplayOrder).order_by(order_col.asc(), resources.c.Id.asc())
        return (await conn.execute(stmt.limit(1))).first()

    @staticmethod
    async def _set_order(conn: AsyncConnection, resource_id: int, seen: int, new: int) -> None:
        result = await conn.execute(
            update(resources)
            .where(resources.c.Id == resource_id, resources.c.DisplayOrder == seen)
            .values(DisplayOrder=new)
        )
        if result.rowcount != 1:
            raise StaleOrderError(resource_id)
