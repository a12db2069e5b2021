"""
Idempotent seeding of the required resource catalog.

For each catalog entry, looked up by (Alias, AppName):
- missing rows are inserted as public, listed and shown on the main page, with
  GroupName = AppName and DisplayOrder = GroupOrder;
- existing rows get GroupOrder, DisplayOrder, Title, Route and Description
  refreshed from the catalog. Every other column (IsPublic, HTML fragments,
  owner, ...) keeps whatever an operator set.

Entries are applied in catalog order, so a duplicated (alias, app) pair in the
catalog ends with the values of its last occurrence.

The Resources table must already be reconciled (see resource_registry.db.schema).

Usage:
  python -m resource_registry.db.seed [AppName ...]
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from resource_registry.db.catalog import filter_catalog, load_seed_catalog
from resource_registry.db.config import get_settings, mask_url
from resource_registry.db.session import target_connection
from resource_registry.schemas.resource import SeedEntry

logger = logging.getLogger(__name__)

Executor = Union[AsyncConnection, AsyncSession]

_EXISTS_SQL = text(
    """
    SELECT COUNT(*) FROM "Resources"
    WHERE "Alias" = :alias AND "AppName" = :app_name
    """
)

_INSERT_SQL = text(
    """
    INSERT INTO "Resources"
        ("Alias", "Route", "Description", "GroupName", "GroupOrder", "DisplayOrder",
         "Title", "IsPublic", "MainShowList", "ShowList", "AppName", "Step")
    VALUES
        (:alias, :route, :description, :app_name, :group_order, :group_order,
         :title, :flag, :flag, :flag, :app_name, :step)
    """
)

_REFRESH_SQL = text(
    """
    UPDATE "Resources"
    SET "GroupOrder" = :group_order,
        "DisplayOrder" = :group_order,
        "Title" = :title,
        "Route" = :route,
        "Description" = :description
    WHERE "Alias" = :alias AND "AppName" = :app_name
    """
)


class SeedReport(BaseModel):
    """Counts of catalog entries inserted and refreshed in one seeding pass."""
    app_name: Optional[str] = Field(None, description="Application filter, None for the whole catalog")
    inserted: int = 0
    updated: int = 0


# PUBLIC_INTERFACE
async def seed_resources(
    executor: Executor,
    catalog: Iterable[SeedEntry],
    app_name: Optional[str] = None,
) -> SeedReport:
    """
    Insert-or-refresh catalog entries, optionally restricted to one application.

    Parameters:
      executor: AsyncConnection or AsyncSession; the caller owns the transaction.
      catalog: seed entries in application order.
      app_name: case-insensitive application filter; None/blank seeds everything.
    Returns:
      SeedReport with inserted/updated counts.
    """
    report = SeedReport(app_name=app_name or None)
    for entry in filter_catalog(catalog, app_name):
        key = {"alias": entry.alias, "app_name": entry.app_name}
        exists = (await executor.execute(_EXISTS_SQL, key)).scalar_one()

        if not exists:
            await executor.execute(
                _INSERT_SQL,
                {
                    **key,
                    "route": entry.route or "",
                    "description": entry.description or "",
                    "group_order": entry.group_order,
                    "title": entry.title or "",
                    "flag": True,
                    "step": entry.step,
                },
            )
            report.inserted += 1
            logger.info("[INSERT] %s (%s)", entry.alias, entry.app_name)
            continue

        result = await executor.execute(
            _REFRESH_SQL,
            {
                **key,
                "group_order": entry.group_order,
                "title": entry.title or "",
                "route": entry.route or "",
                "description": entry.description or "",
            },
        )
        if (result.rowcount or 0) > 0:
            report.updated += 1
            logger.debug("[UPDATE] %s (%s)", entry.alias, entry.app_name)

    logger.info(
        "Seeded resources (%s): %d inserted, %d refreshed",
        app_name or "all applications",
        report.inserted,
        report.updated,
    )
    return report


# PUBLIC_INTERFACE
async def seed_all(app_names: Optional[List[str]] = None, catalog_path: Optional[str] = None) -> List[SeedReport]:
    """
    Seed the master database in a single transaction.

    Each name in app_names is applied in turn; without names the whole catalog
    is applied once.
    """
    settings = get_settings()
    catalog = load_seed_catalog(catalog_path)
    reports: List[SeedReport] = []
    logger.info("Seeding resources into %s", mask_url(settings.database_url))
    async with target_connection(settings.database_url) as connection:
        for name in app_names or [None]:
            reports.append(await seed_resources(connection, catalog, name))
    return reports


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    from resource_registry.core.logging import configure_logging

    configure_logging()
    asyncio.run(seed_all(sys.argv[1:] or None))


if __name__ == "__main__":
    main()
