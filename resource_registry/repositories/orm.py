from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import Select, func, null, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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
    ensure_orders_unchanged,
    like_pattern,
    page_bounds,
    utcnow,
)

logger = logging.getLogger(__name__)


def _filtered(stmt: Select, app_name: Optional[str], search_query: Optional[str]) -> Select:
    if app_name is not None:
        stmt = stmt.where(Resource.app_name == app_name)
    if search_query:
        pattern = like_pattern(search_query)
        stmt = stmt.where(
            or_(
                func.lower(Resource.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Resource.description).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def _app_order(stmt: Select) -> Select:
    return stmt.order_by(Resource.group_order, Resource.alias, Resource.id)


class OrmResourceRepository(ResourceRepository):
    """
    Resource store using ORM sessions and change tracking.

    CRUD goes through the unit of work; reordering issues ORM-enabled UPDATE
    statements so the swap can be made conditional on the values read.
    """

    async def add(self, model: ResourceCreate, connection_string: Optional[str] = None) -> ResourceRead:
        values = model.model_dump()
        if values["created"] is None:
            values["created"] = utcnow()
        # null() keeps explicit None as NULL; a plain None would let server defaults apply.
        entity = Resource(**{k: null() if v is None else v for k, v in values.items()})
        async with self.sessions(connection_string)() as session:
            async with session.begin():
                session.add(entity)
                await session.flush()
                await session.refresh(entity)
            return ResourceRead.model_validate(entity)

    async def get_all(self, connection_string: Optional[str] = None) -> List[ResourceRead]:
        async with self.sessions(connection_string)() as session:
            rows = (await session.scalars(select(Resource).order_by(Resource.id.desc()))).all()
            return [ResourceRead.model_validate(r) for r in rows]

    async def get_by_id(self, resource_id: int, connection_string: Optional[str] = None) -> Optional[ResourceRead]:
        async with self.sessions(connection_string)() as session:
            entity = await session.get(Resource, resource_id)
            return ResourceRead.model_validate(entity) if entity is not None else None

    async def update(
        self, resource_id: int, model: ResourceUpdate, connection_string: Optional[str] = None
    ) -> bool:
        async with self.sessions(connection_string)() as session:
            async with session.begin():
                entity = await session.get(Resource, resource_id)
                if entity is None:
                    return False
                for field, value in model.model_dump().items():
                    setattr(entity, field, value)
                if entity.modified is None:
                    entity.modified = utcnow()
        return True

    async def delete(self, resource_id: int, connection_string: Optional[str] = None) -> bool:
        async with self.sessions(connection_string)() as session:
            async with session.begin():
                entity = await session.get(Resource, resource_id)
                if entity is None:
                    return False
                await session.delete(entity)
        return True

    async def get_articles(
        self,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        offset, limit = page_bounds(page_index, page_size)
        page_stmt = _filtered(select(Resource), None, search_query).order_by(Resource.id.desc())
        return await self._page(page_stmt, None, search_query, offset, limit, connection_string)

    async def get_by_app_name(self, app_name: str, connection_string: Optional[str] = None) -> List[ResourceRead]:
        async with self.sessions(connection_string)() as session:
            rows = (await session.scalars(_app_order(select(Resource).where(Resource.app_name == app_name)))).all()
            return [ResourceRead.model_validate(r) for r in rows]

    async def get_articles_by_app_name(
        self,
        app_name: str,
        page_index: int,
        page_size: int,
        search_query: Optional[str] = None,
        connection_string: Optional[str] = None,
    ) -> ResourcePage:
        offset, limit = page_bounds(page_index, page_size)
        page_stmt = _app_order(_filtered(select(Resource), app_name, search_query))
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
        count_stmt = _filtered(select(func.count(Resource.id)), app_name, search_query)
        async with self.sessions(connection_string)() as session:
            total = (await session.execute(count_stmt)).scalar_one()
            rows = (await session.scalars(page_stmt.offset(offset).limit(limit))).all()
            return ResourcePage(items=[ResourceRead.model_validate(r) for r in rows], total_count=total)

    async def _move(
        self, resource_id: int, direction: MoveDirection, connection_string: Optional[str]
    ) -> bool:
        try:
            async with self.sessions(connection_string)() as session:
                async with session.begin():
                    current = (
                        await session.execute(
                            select(Resource.id, Resource.app_name, Resource.display_order)
                            .where(Resource.id == resource_id)
                        )
                    ).first()
                    if current is None or current.display_order is None:
                        return False

                    neighbor = await self._neighbor(session, current, direction)
                    if neighbor is None:
                        return False

                    seen = {current.id: current.display_order, neighbor.id: neighbor.display_order}
                    await self._lock_pair(session, seen)
                    await self._set_order(session, current.id, current.display_order, neighbor.display_order)
                    await self._set_order(session, neighbor.id, neighbor.display_order, current.display_order)
        except StaleOrderError:
            logger.warning("Move %s of resource %s declined: concurrent reorder detected", direction.value, resource_id)
            return False
        return True

    @staticmethod
    async def _neighbor(session: AsyncSession, current, direction: MoveDirection):
        stmt = select(Resource.id, Resource.display_order).where(
            Resource.app_name == current.app_name,
            Resource.display_order.is_not(None),
        )
        if direction is MoveDirection.UP:
            stmt = stmt.where(Resource.display_order < current.display_order).order_by(
                Resource.display_order.desc(), Resource.id.desc()
            )
        else:
            stmt = stmt.where(Resource.display_order > current.display_order).order_by(
                Resource.display_order.asc(), Resource.id.asc()
            )
        return (await session.execute(stmt.limit(1))).first()

    @staticmethod
    async def _lock_pair(session: AsyncSession, seen: Dict[int, int]) -> None:
        stmt = (
            select(Resource.id, Resource.display_order)
            .where(Resource.id.in_(sorted(seen)))
            .order_by(Resource.id)
            .with_for_update()
        )
        ensure_orders_unchanged((await session.execute(stmt)).all(), seen)

    @staticmethod
    async def _set_order(session: AsyncSession, resource_id: int, seen: int, new: int) -> None:
        result = await session.execute(
            update(Resource)
            .where(Resource.id == resource_id, Resource.display_order == seen)
            .values(display_order=new)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleOrderError(resource_id)
