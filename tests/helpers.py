from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy import text

from resource_registry.db.schema import SchemaReport, reconcile_schema
from resource_registry.db.seed import SeedReport, seed_resources
from resource_registry.db.session import target_connection
from resource_registry.repositories import REPOSITORY_CLASSES
from resource_registry.schemas.resource import SeedEntry

REPOSITORY_MODES = tuple(REPOSITORY_CLASSES)


def sqlite_url(path: Path) -> str:
    return f"sqlite:///{path}"


async def reconcile(url: str) -> SchemaReport:
    async with target_connection(url) as conn:
        return await reconcile_schema(conn)


async def seed(url: str, catalog: Iterable[SeedEntry], app_name: Optional[str] = None) -> SeedReport:
    async with target_connection(url) as conn:
        return await seed_resources(conn, catalog, app_name)


async def execute(url: str, *statements: str) -> None:
    async with target_connection(url) as conn:
        for statement in statements:
            await conn.execute(text(statement))


async def fetch(url: str, sql: str, **params):
    async with target_connection(url) as conn:
        return (await conn.execute(text(sql), params)).all()
