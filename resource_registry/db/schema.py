"""
Schema reconciliation for the Resources table.

Brings one database to the expected table shape and normalizes legacy data:

1. Create the table when it does not exist.
2. Add every expected column that is missing (column-by-column convergence, so
   tables created by older versions of the schema are upgraded in place).
3. Replace NULL text values with '' and NULL Step with 0.
4. Backfill DisplayOrder from GroupOrder and GroupOrder from DisplayOrder where
   one of them is NULL/0 and the other carries a rank.

Every step is idempotent and runs on every invocation. There is no migration
history; Alembic is only used for its dialect-aware ALTER TABLE operations.

Usage:
  async with target_connection(url) as conn:
      report = await reconcile_schema(conn)
"""

from __future__ import annotations

import logging
from typing import Dict, List

from alembic.migration import MigrationContext
from alembic.operations import Operations
from pydantic import BaseModel, Field
from sqlalchemy import Column, and_, inspect, or_, update
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection

from resource_registry.db.models import Resource

logger = logging.getLogger(__name__)

RESOURCES_TABLE = Resource.__table__
TABLE_NAME = RESOURCES_TABLE.name

# Expected columns besides the identity primary key, in declaration order.
EXPECTED_COLUMNS: List[Column] = [c for c in RESOURCES_TABLE.columns if not c.primary_key]

# Text columns whose NULLs are replaced with ''.
NORMALIZED_TEXT_COLUMNS = (
    "Alias",
    "Route",
    "Title",
    "Description",
    "SysopUserId",
    "GroupName",
    "HeaderHtml",
    "FooterHtml",
    "AppName",
)

# SQLite refuses ALTER TABLE ADD COLUMN with an expression default (CURRENT_TIMESTAMP).
_EXPRESSION_DEFAULT_COLUMNS = frozenset({"Created"})


class SchemaReport(BaseModel):
    """Outcome of reconciling a single database."""
    table_created: bool = Field(False, description="The table did not exist and was created")
    columns_added: List[str] = Field(default_factory=list, description="Columns added by ALTER TABLE")
    normalized: Dict[str, int] = Field(default_factory=dict, description="Column -> rows changed from NULL")
    display_order_backfilled: int = Field(0, description="Rows whose DisplayOrder was taken from GroupOrder")
    group_order_backfilled: int = Field(0, description="Rows whose GroupOrder was taken from DisplayOrder")

    @property
    def changed(self) -> bool:
        """True when anything in the database was modified."""
        return bool(
            self.table_created
            or self.columns_added
            or any(self.normalized.values())
            or self.display_order_backfilled
            or self.group_order_backfilled
        )


# PUBLIC_INTERFACE
async def reconcile_schema(connection: AsyncConnection) -> SchemaReport:
    """
    Reconcile the Resources table on an open connection.

    Steps run sequentially inside the caller's transaction. Any database error
    propagates; the caller decides whether the target is skipped.
    """
    report = SchemaReport()
    report.table_created = await connection.run_sync(_ensure_table)
    report.columns_added = await connection.run_sync(_ensure_columns)
    report.normalized = await _normalize_nulls(connection)
    display, group = await _backfill_orders(connection)
    report.display_order_backfilled = display
    report.group_order_backfilled = group
    return report


def _ensure_table(sync_conn: Connection) -> bool:
    if inspect(sync_conn).has_table(TABLE_NAME):
        return False
    RESOURCES_TABLE.create(sync_conn)
    logger.info("%s table created.", TABLE_NAME)
    return True


def _ensure_columns(sync_conn: Connection) -> List[str]:
    existing = {col["name"] for col in inspect(sync_conn).get_columns(TABLE_NAME)}
    missing = [c for c in EXPECTED_COLUMNS if c.name not in existing]
    if not missing:
        return []

    ops = Operations(MigrationContext.configure(sync_conn))
    added: List[str] = []
    for column in missing:
        ops.add_column(TABLE_NAME, _column_for_add(column, sync_conn.dialect.name))
        logger.info("Column added: %s (%s)", column.name, column.type)
        added.append(column.name)
    return added


def _column_for_add(column: Column, dialect_name: str) -> Column:
    """Build an unattached copy of an expected column for ALTER TABLE ADD."""
    default = column.server_default.arg if column.server_default is not None else None
    if dialect_name == "sqlite" and column.name in _EXPRESSION_DEFAULT_COLUMNS:
        default = None
    return Column(column.name, column.type, nullable=True, server_default=default)


async def _normalize_nulls(connection: AsyncConnection) -> Dict[str, int]:
    t = RESOURCES_TABLE
    counts: Dict[str, int] = {}
    for name in NORMALIZED_TEXT_COLUMNS:
        col = t.c[name]
        result = await connection.execute(update(t).where(col.is_(None)).values({col: ""}))
        counts[name] = result.rowcount or 0
        if counts[name] > 0:
            logger.info("%s NULL -> '' set for %d rows.", name, counts[name])

    result = await connection.execute(update(t).where(t.c.Step.is_(None)).values(Step=0))
    counts["Step"] = result.rowcount or 0
    if counts["Step"] > 0:
        logger.info("Step NULL -> 0 set for %d rows.", counts["Step"])
    return counts


async def _backfill_orders(connection: AsyncConnection) -> tuple[int, int]:
    t = RESOURCES_TABLE
    display = await connection.execute(
        update(t)
        .where(
            and_(
                or_(t.c.DisplayOrder.is_(None), t.c.DisplayOrder == 0),
                t.c.GroupOrder.is_not(None),
                t.c.GroupOrder != 0,
            )
        )
        .values(DisplayOrder=t.c.GroupOrder)
    )
    fixed_display = display.rowcount or 0
    if fixed_display > 0:
        logger.info("DisplayOrder NULL or 0 -> GroupOrder applied: %d rows updated.", fixed_display)

    group = await connection.execute(
        update(t)
        .where(
            and_(
                or_(t.c.GroupOrder.is_(None), t.c.GroupOrder == 0),
                t.c.DisplayOrder.is_not(None),
                t.c.DisplayOrder != 0,
            )
        )
        .values(GroupOrder=t.c.DisplayOrder)
    )
    fixed_group = group.rowcount or 0
    if fixed_group > 0:
        logger.info("GroupOrder NULL or 0 -> DisplayOrder applied: %d rows updated.", fixed_group)
    return fixed_display, fixed_group
