from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest

from resource_registry.db.catalog import filter_catalog, load_seed_catalog
from resource_registry.db.session import dispose_engines
from resource_registry.repositories import create_resource_repository

from tests.helpers import REPOSITORY_MODES, reconcile, sqlite_url


@pytest.fixture(scope="session")
def seed_catalog():
    return load_seed_catalog()


@pytest.fixture
def visual_academy(seed_catalog):
    return filter_catalog(seed_catalog, "VisualAcademy")


@pytest.fixture
async def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[str]:
    """Master database URL (a fresh SQLite file) exported as DATABASE_URL."""
    url = sqlite_url(tmp_path / "master.db")
    monkeypatch.setenv("DATABASE_URL", url)
    yield url
    await dispose_engines()


@pytest.fixture
async def reconciled_db(database_url: str) -> str:
    await reconcile(database_url)
    return database_url


@pytest.fixture(params=REPOSITORY_MODES)
def repository(request: pytest.FixtureRequest, reconciled_db: str):
    return create_resource_repository(request.param)
