"""
Behavioral contract shared by every resource store implementation.

Each test runs once per implementation (text, core, orm) through the
`repository` fixture.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from resource_registry.repositories import create_resource_repository
from resource_registry.schemas.resource import ResourceCreate, ResourceUpdate

from tests.helpers import REPOSITORY_MODES, execute, fetch, reconcile, seed, sqlite_url

COMPARED_FIELDS = {"created", "modified"}


def _menu(alias: str, order, app_name="Menu", **extra) -> ResourceCreate:
    return ResourceCreate(
        alias=alias,
        title=alias.title(),
        route=f"/{alias}",
        description=f"{alias} page",
        display_order=order,
        group_order=order,
        app_name=app_name,
        **extra,
    )


async def _orders(repository, app_name="Menu"):
    return {r.alias: r.display_order for r in await repository.get_by_app_name(app_name)}


async def test_add_assigns_id_and_defaults(repository):
    created = await repository.add(ResourceCreate(alias="Home", title="Home", route="/"))

    assert created.id > 0
    assert created.app_name == "ReportWriter"
    assert created.is_public is True
    assert created.show_list is True
    assert created.main_show_list is True
    assert created.mail_enable is False
    assert created.step == 0
    assert created.created is not None
    assert await repository.get_by_id(created.id) == created


async def test_add_keeps_explicit_created(repository):
    stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    created = await repository.add(ResourceCreate(alias="Old", created=stamp, created_by="admin"))

    assert created.created.replace(tzinfo=None) == stamp.replace(tzinfo=None)
    assert created.created_by == "admin"


async def test_explicit_none_is_stored_as_null(repository):
    created = await repository.add(
        ResourceCreate(
            alias="bare",
            display_order=None,
            group_order=None,
            app_name=None,
            is_public=None,
            show_list=None,
            step=None,
        )
    )

    stored = await repository.get_by_id(created.id)
    assert stored == created
    assert (stored.display_order, stored.group_order, stored.app_name, stored.is_public, stored.show_list, stored.step) == (
        None, None, None, None, None, None,
    )


async def test_rows_outside_input_limits_still_read_back(repository, reconciled_db):
    long_title = "T" * 80
    await execute(
        reconciled_db,
        f'INSERT INTO "Resources" ("Alias", "Title", "Step", "AppName", "DisplayOrder") '
        f"VALUES ('legacy', '{long_title}', -1, 'Menu', 1)",
    )

    [row] = await repository.get_all()
    page = await repository.get_articles(0, 10)

    assert (row.title, row.step) == (long_title, -1)
    assert page.total_count == 1


async def test_missing_ids_report_not_found(repository):
    assert await repository.get_by_id(999) is None
    assert await repository.update(999, ResourceUpdate(alias="x")) is False
    assert await repository.delete(999) is False
    assert await repository.move_up(999) is False
    assert await repository.move_down(999) is False


async def test_update_replaces_mutable_fields(repository):
    created = await repository.add(_menu("docs", 3, header_html="<h1>Docs</h1>", created_by="alice"))

    changed = await repository.update(
        created.id,
        ResourceUpdate(alias="guide", title="Guide", app_name="Menu", display_order=7, modified_by="bob"),
    )

    assert changed is True
    updated = await repository.get_by_id(created.id)
    assert updated.alias == "guide"
    assert updated.title == "Guide"
    assert updated.display_order == 7
    # Full replacement: fields absent from the payload take their defaults.
    assert updated.route is None
    assert updated.header_html is None
    assert updated.group_order == 0
    assert updated.modified_by == "bob"
    assert updated.modified is not None
    assert updated.created == created.created
    assert updated.created_by == "alice"


async def test_delete_removes_row(repository):
    created = await repository.add(_menu("temp", 1))

    assert await repository.delete(created.id) is True
    assert await repository.get_by_id(created.id) is None
    assert await repository.delete(created.id) is False


async def test_get_all_is_newest_first(repository):
    ids = [(await repository.add(_menu(name, i))).id for i, name in enumerate(["a", "b", "c"], start=1)]

    assert [r.id for r in await repository.get_all()] == sorted(ids, reverse=True)


async def test_get_by_app_name_orders_by_group_then_alias(repository):
    await repository.add(_menu("zeta", 1))
    await repository.add(_menu("alpha", 2))
    await repository.add(_menu("beta", 1))
    await repository.add(_menu("other", 0, app_name="Elsewhere"))

    aliases = [r.alias for r in await repository.get_by_app_name("Menu")]

    assert aliases == ["beta", "zeta", "alpha"]
    assert [r.alias for r in await repository.get_all_by_app_name("Menu")] == aliases


async def test_paging_reports_total_before_slicing(repository):
    for i in range(7):
        await repository.add(_menu(f"item{i}", i))

    first = await repository.get_articles(0, 3)
    last = await repository.get_articles(2, 3)
    beyond = await repository.get_articles(5, 3)

    assert first.total_count == last.total_count == beyond.total_count == 7
    assert [r.alias for r in first.items] == ["item6", "item5", "item4"]
    assert [r.alias for r in last.items] == ["item0"]
    assert beyond.items == []


@pytest.mark.parametrize("page_index, page_size", [(-1, 5), (0, 0), (0, -3)])
async def test_invalid_paging_is_rejected(repository, page_index, page_size):
    with pytest.raises(ValueError):
        await repository.get_articles(page_index, page_size)


async def test_search_is_case_insensitive_and_literal(repository):
    await repository.add(ResourceCreate(alias="a", title="Progress 100% done", description="x"))
    await repository.add(ResourceCreate(alias="b", title="Progress 1000 done", description="x"))
    await repository.add(ResourceCreate(alias="c", title="plain", description="Under_score notes"))
    await repository.add(ResourceCreate(alias="d", title="plain", description="Underxscore notes"))

    percent = await repository.get_articles(0, 10, "0%")
    underscore = await repository.get_articles(0, 10, "UNDER_")
    upper = await repository.get_articles(0, 10, "PROGRESS")

    assert [r.alias for r in percent.items] == ["a"]
    assert [r.alias for r in underscore.items] == ["c"]
    assert [r.alias for r in upper.items] == ["b", "a"]
    assert upper.total_count == 2


async def test_search_within_application(repository, reconciled_db, seed_catalog):
    await seed(reconciled_db, seed_catalog, app_name="VisualAcademy")

    page = await repository.get_articles_by_app_name("VisualAcademy", 0, 5, "Admin")

    assert page.total_count == 2
    assert [r.alias for r in page.items] == ["BlogAdmin", "Admin"]


async def test_move_up_swaps_with_previous_neighbor(repository):
    first = await repository.add(_menu("first", 10))
    second = await repository.add(_menu("second", 20))
    await repository.add(_menu("third", 30))
    await repository.add(_menu("intruder", 15, app_name="Elsewhere"))

    assert await repository.move_up(second.id) is True
    assert await _orders(repository) == {"first": 20, "second": 10, "third": 30}

    assert await repository.move_down(second.id) is True
    assert await _orders(repository) == {"first": 10, "second": 20, "third": 30}
    assert (await repository.get_by_id(first.id)).display_order == 10
    assert await _orders(repository, "Elsewhere") == {"intruder": 15}


async def test_move_at_boundary_is_declined(repository):
    top = await repository.add(_menu("top", 1))
    bottom = await repository.add(_menu("bottom", 2))
    before = await _orders(repository)

    assert await repository.move_up(top.id) is False
    assert await repository.move_down(bottom.id) is False
    assert await _orders(repository) == before


async def test_row_without_display_order_cannot_move(repository):
    await repository.add(_menu("ranked", 1))
    unranked = await repository.add(_menu("unranked", None))

    assert await repository.move_up(unranked.id) is False
    assert await repository.move_down(unranked.id) is False


async def test_rows_without_application_form_their_own_partition(repository):
    lower = await repository.add(_menu("n1", 1, app_name=None))
    higher = await repository.add(_menu("n2", 2, app_name=None))
    await repository.add(_menu("m", 0))
    assert (await repository.get_by_id(lower.id)).app_name is None
    assert (await repository.get_by_id(higher.id)).app_name is None

    assert await repository.move_up(lower.id) is False
    assert await repository.move_up(higher.id) is True
    assert (await repository.get_by_id(lower.id)).display_order == 2
    assert (await repository.get_by_id(higher.id)).display_order == 1


async def test_move_sequence_keeps_orders_a_permutation(repository, reconciled_db, seed_catalog):
    await seed(reconciled_db, seed_catalog, app_name="VisualAcademy")
    rows = await repository.get_by_app_name("VisualAcademy")
    before = sorted(r.display_order for r in rows)

    for i, row in enumerate(rows):
        move = repository.move_up if i % 3 else repository.move_down
        await move(row.id)

    after = await fetch(reconciled_db, 'SELECT "DisplayOrder" FROM "Resources" WHERE "AppName" = \'VisualAcademy\'')
    assert sorted(value for (value,) in after) == before


async def test_connection_string_targets_another_database(repository, tmp_path):
    tenant_url = sqlite_url(tmp_path / "tenant.db")
    await reconcile(tenant_url)

    created = await repository.add(_menu("tenant-only", 1), connection_string=tenant_url)

    assert await repository.get_by_id(created.id, connection_string=tenant_url) is not None
    assert await repository.get_all() == []
    assert len(await repository.get_all(connection_string=tenant_url)) == 1


async def test_implementations_return_identical_results(database_url, tmp_path, seed_catalog):
    """Same data and inputs give the same observable results from every store."""
    results = {}
    for mode in REPOSITORY_MODES:
        url = sqlite_url(tmp_path / f"{mode}.db")
        await reconcile(url)
        await seed(url, seed_catalog)
        repo = create_resource_repository(mode, connection_string=url)

        page = await repo.get_articles_by_app_name("VisualAcademy", 0, 5, "Admin")
        global_page = await repo.get_articles(1, 4, "management")
        moved = [await repo.move_up(page.items[-1].id), await repo.move_down(1)]
        listing = await repo.get_by_app_name("VisualAcademy")

        results[mode] = (
            [r.model_dump(exclude=COMPARED_FIELDS) for r in page.items],
            page.total_count,
            [r.model_dump(exclude=COMPARED_FIELDS) for r in global_page.items],
            global_page.total_count,
            moved,
            [(r.alias, r.display_order) for r in listing],
        )

    baseline = results[REPOSITORY_MODES[0]]
    assert baseline[1] == 2
    for mode in REPOSITORY_MODES[1:]:
        assert results[mode] == baseline, mode
