from __future__ import annotations

import logging

import pytest

from resource_registry.core.errors import ConfigurationError
from resource_registry.core.logging import LoggingContextFilter, correlation_id_var, target_context
from resource_registry.core.settings import AppSettings
from resource_registry.db.config import Settings, mask_url, to_async_url
from resource_registry.repositories import (
    CoreResourceRepository,
    OrmResourceRepository,
    TextResourceRepository,
    create_resource_repository,
)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+psycopg2://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///tmp/x.db", "sqlite+aiosqlite:///tmp/x.db"),
        ("sqlite+pysqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_to_async_url(url, expected):
    assert to_async_url(url) == expected


def test_mask_url_hides_password():
    assert mask_url("postgresql://app:s3cret@db:5432/main") == "postgresql://app:***@db:5432/main"
    assert mask_url("not a url") == "<unparseable connection string>"


def test_database_url_built_from_postgres_parts():
    settings = Settings(
        _env_file=None,
        DATABASE_URL=None,
        POSTGRES_USER="app",
        POSTGRES_PASSWORD="pw",
        POSTGRES_DB="main",
        POSTGRES_HOST="db",
        POSTGRES_PORT=6543,
    )

    assert settings.database_url == "postgresql://app:pw@db:6543/main"
    assert settings.async_database_url == "postgresql+asyncpg://app:pw@db:6543/main"


def test_missing_database_configuration(monkeypatch):
    for name in ("DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ConfigurationError):
        Settings(_env_file=None).database_url


@pytest.mark.parametrize(
    "raw, expected",
    [(None, []), ("", []), ("VisualAcademy", ["VisualAcademy"]), (" SAT , ,DevLec ", ["SAT", "DevLec"])],
)
def test_seed_app_names(raw, expected):
    assert AppSettings(_env_file=None, RESOURCES_SEED_APP_NAMES=raw).seed_app_names == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("*", ["*"]), ("", ["*"]), (" https://a.example , https://b.example", ["https://a.example", "https://b.example"])],
)
def test_cors_origins(raw, expected):
    assert AppSettings(_env_file=None, CORS_ORIGINS=raw).cors_origins == expected


def test_repository_mode_from_environment(monkeypatch):
    monkeypatch.setenv("REPOSITORY_MODE", "text")

    assert AppSettings(_env_file=None).REPOSITORY_MODE == "text"


def test_create_resource_repository():
    assert isinstance(create_resource_repository("orm"), OrmResourceRepository)
    assert isinstance(create_resource_repository("Core"), CoreResourceRepository)
    assert isinstance(create_resource_repository("text"), TextResourceRepository)
    assert create_resource_repository("text", connection_string="sqlite:///x.db").connection_string == "sqlite:///x.db"
    with pytest.raises(ValueError):
        create_resource_repository("dapper")


def test_log_records_carry_context():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)
    token = correlation_id_var.set("abc")
    try:
        with target_context("sqlite:///tenant.db"):
            LoggingContextFilter().filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "abc"
    assert record.target == "sqlite:///tenant.db"

    LoggingContextFilter().filter(record)
    assert (record.correlation_id, record.target) == ("-", "-")
