from __future__ import annotations

from sqlalchemy import inspect

from resource_registry.db.schema import EXPECTED_COLUMNS, NORMALIZED_TEXT_COLUMNS, TABLE_NAME
from resource_registry.db.session import target_connection

from tests.helpers import execute, fetch, reconcile

LEGACY_TABLE_SQL = """
CREATE TABLE "Resources" (
    "Id" INTEGER PRIMARY KEY AUTOINCREMENT,
    "Alias" VARCHAR(50),
    "Title" VARCHAR(50),
    "GroupOrder" INTEGER,
    "DisplayOrder" INTEGER
)
"""


async def _column_names(url: str) -> set[str]:
    async with target_connection(url) as conn:
        columns = await conn.run_sync(lambda c: inspect(c).get_columns(TABLE_NAME))
    return {c["name"] for c in columns}


async def test_creates_table_with_every_expected_column(database_url):
    report = await reconcile(database_url)

    assert report.table_created is True
    assert report.columns_added == []
    assert await _column_names(database_url) == {"Id"} | {c.name for c in EXPECTED_COLUMNS}


async def test_second_run_changes_nothing(database_url):
    await reconcile(database_url)
    await execute(
        database_url,
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'A\', 3, 0)',
    )
    await reconcile(database_url)
    before = await fetch(database_url, 'SELECT * FROM "Resources" ORDER BY "Id"')

    report = await reconcile(database_url)

    assert report.changed is False
    assert await fetch(database_url, 'SELECT * FROM "Resources" ORDER BY "Id"') == before


async def test_adds_missing_columns_to_legacy_table(database_url):
    await execute(
        database_url,
        LEGACY_TABLE_SQL,
        'INSERT INTO "Resources" ("Alias", "Title", "GroupOrder", "DisplayOrder") VALUES (\'Home\', \'Home\', 1, 1)',
    )

    report = await reconcile(database_url)

    assert report.table_created is False
    assert "AppName" in report.columns_added
    assert "Created" in report.columns_added
    assert "Alias" not in report.columns_added
    assert await _column_names(database_url) == {"Id"} | {c.name for c in EXPECTED_COLUMNS}

    rows = await fetch(
        database_url,
        'SELECT "Alias", "AppName", "IsPublic", "ShowList", "MailEnable", "Step", "Route" FROM "Resources"',
    )
    # Existing rows pick up the column defaults; NULL text is normalized.
    assert rows == [("Home", "ReportWriter", 1, 1, 0, 0, "")]


async def test_normalizes_null_text_and_step(reconciled_db):
    await execute(
        reconciled_db,
        'INSERT INTO "Resources" ("Alias", "AppName", "Step", "HeaderHtml") VALUES (NULL, NULL, NULL, NULL)',
    )

    report = await reconcile(reconciled_db)

    assert report.normalized["Step"] == 1
    for name in NORMALIZED_TEXT_COLUMNS:
        assert report.normalized[name] == 1
    cols = ", ".join(f'"{name}"' for name in NORMALIZED_TEXT_COLUMNS)
    rows = await fetch(reconciled_db, f'SELECT {cols}, "Step" FROM "Resources"')
    assert rows == [tuple([""] * len(NORMALIZED_TEXT_COLUMNS)) + (0,)]


async def test_backfills_orders_in_both_directions(reconciled_db):
    await execute(
        reconciled_db,
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'display-missing\', 5, NULL)',
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'display-zero\', 6, 0)',
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'group-missing\', NULL, 7)',
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'both-set\', 2, 9)',
        'INSERT INTO "Resources" ("Alias", "GroupOrder", "DisplayOrder") VALUES (\'both-zero\', 0, 0)',
    )

    report = await reconcile(reconciled_db)

    assert report.display_order_backfilled == 2
    assert report.group_order_backfilled == 1
    fetched = await fetch(reconciled_db, 'SELECT "Alias", "GroupOrder", "DisplayOrder" FROM "Resources"')
    rows = {alias: (group, display) for alias, group, display in fetched}
    assert rows == {
        "display-missing": (5, 5),
        "display-zero": (6, 6),
        "group-missing": (7, 7),
        "both-set": (2, 9),
        "both-zero": (0, 0),
    }
