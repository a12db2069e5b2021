from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError

from resource_registry.core.errors import ConfigurationError, TargetUnavailableError
from resource_registry.core.logging import target_context
from resource_registry.core.settings import AppSettings, get_app_settings
from resource_registry.db.catalog import load_seed_catalog
from resource_registry.db.config import Settings, get_settings, mask_url
from resource_registry.db.models import Tenant
from resource_registry.db.schema import SchemaReport, reconcile_schema
from resource_registry.db.seed import SeedReport, seed_resources
from resource_registry.db.session import target_connection

logger = logging.getLogger(__name__)


class TargetOutcome(BaseModel):
    """Result of reconciling one database (master or tenant)."""
    target: str = Field(..., description="Connection URL with the password hidden")
    ok: bool = Field(..., description="Reconciliation completed and was committed")
    error: Optional[str] = Field(None, description="Failure message when ok is False")
    report: Optional[SchemaReport] = Field(None, description="Changes applied when ok is True")


class InitializationSummary(BaseModel):
    """Everything done by one startup initialization run."""
    master: Optional[TargetOutcome] = None
    tenants: List[TargetOutcome] = Field(default_factory=list)
    seeds: List[SeedReport] = Field(default_factory=list)

    @property
    def outcomes(self) -> List[TargetOutcome]:
        """Master outcome (when reconciled) followed by the tenant outcomes."""
        head = [self.master] if self.master is not None else []
        return head + self.tenants


class ResourcesTableBuilder:
    """
    Drives schema reconciliation across the master database and every tenant
    database listed in the master's Tenants table.

    Targets are processed one after another, each on its own connection and
    transaction. A failing target is logged and reported; it never stops the
    remaining targets.
    """

    def __init__(self, master_url: str) -> None:
        if not master_url:
            raise ConfigurationError("Master connection string is not configured.")
        self.master_url = master_url

    # PUBLIC_INTERFACE
    async def build_master_database(self) -> TargetOutcome:
        """Reconcile the Resources table in the master database."""
        outcome = await self._reconcile_target(self.master_url)
        if outcome.ok:
            logger.info("Resources table processed (master DB)")
        return outcome

    # PUBLIC_INTERFACE
    async def build_tenant_databases(self) -> List[TargetOutcome]:
        """Reconcile the Resources table in every tenant database."""
        try:
            tenant_urls = await self.get_tenant_connection_strings()
        except TargetUnavailableError as exc:
            logger.exception("Could not enumerate tenant databases from %s", exc.target)
            return []

        outcomes: List[TargetOutcome] = []
        for url in tenant_urls:
            outcome = await self._reconcile_target(url)
            if outcome.ok:
                logger.info("Resources table processed (tenant DB): %s", outcome.target)
            outcomes.append(outcome)
        return outcomes

    # PUBLIC_INTERFACE
    async def get_tenant_connection_strings(self) -> List[str]:
        """
        Read tenant connection strings from the master Tenants table.

        Null and blank values are skipped. Without a Tenants table there are no tenants.

        Raises:
          TargetUnavailableError: if the master database cannot be read.
        """
        try:
            return await self._read_tenant_connection_strings()
        except SQLAlchemyError as exc:
            raise TargetUnavailableError(mask_url(self.master_url), f"Cannot read tenants: {exc}") from exc

    async def _read_tenant_connection_strings(self) -> List[str]:
        async with target_connection(self.master_url) as conn:
            has_tenants = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(Tenant.__tablename__))
            if not has_tenants:
                logger.info("No %s table in the master database; no tenants to process.", Tenant.__tablename__)
                return []
            values = (await conn.execute(select(Tenant.connection_string).order_by(Tenant.id))).scalars().all()
        return [v for v in values if v and v.strip()]

    async def _reconcile_target(self, url: str) -> TargetOutcome:
        target = mask_url(url)
        with target_context(target):
            try:
                async with target_connection(url) as conn:
                    report = await reconcile_schema(conn)
            except Exception as exc:
                logger.exception("[%s] Error processing Resources table", target)
                return TargetOutcome(target=target, ok=False, error=f"{type(exc).__name__}: {exc}")

            if report.changed:
                logger.info("Reconciled %s: %s", target, report.model_dump())
            return TargetOutcome(target=target, ok=True, report=report)


# PUBLIC_INTERFACE
async def run_resource_initialization(
    app_settings: Optional[AppSettings] = None,
    db_settings: Optional[Settings] = None,
) -> InitializationSummary:
    """
    Startup entry: reconcile schemas, then seed the master catalog.

    Steps:
      1. Resolve the master connection string (ConfigurationError when missing).
      2. Reconcile the master database, and every tenant when RESOURCES_INIT_TENANTS is set.
      3. Seed the master database once per application in RESOURCES_SEED_APP_NAMES,
         or once for the whole catalog when the list is empty.

    Nothing is done when RESOURCES_INIT_ENABLED is false. Reconciliation and
    seeding failures are logged and reported, not raised.
    """
    app_settings = app_settings or get_app_settings()
    db_settings = db_settings or get_settings()
    summary = InitializationSummary()

    if not app_settings.RESOURCES_INIT_ENABLED:
        logger.info("Resource initialization disabled (RESOURCES_INIT_ENABLED=false)")
        return summary

    master_url = db_settings.database_url
    builder = ResourcesTableBuilder(master_url)

    summary.master = await builder.build_master_database()
    if app_settings.RESOURCES_INIT_TENANTS:
        summary.tenants = await builder.build_tenant_databases()

    if not summary.master.ok:
        logger.warning("Skipping seeding: master database was not reconciled")
        return summary

    catalog = load_seed_catalog(app_settings.RESOURCES_SEED_CATALOG)
    master = mask_url(master_url)
    for app_name in app_settings.seed_app_names or [None]:
        with target_context(master):
            try:
                async with target_connection(master_url) as conn:
                    summary.seeds.append(await seed_resources(conn, catalog, app_name))
            except Exception:
                logger.exception("Seeding failed for %s", app_name or "all applications")
    return summary
