from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings, to_async_url


_ENGINES: Dict[str, AsyncEngine] = {}
_SESSION_MAKERS: Dict[str, async_sessionmaker[AsyncSession]] = {}


def _resolve_url(url: Optional[str]) -> str:
    """Return the async URL for the given connection string, or the master URL."""
    if url:
        return to_async_url(url)
    return get_settings().async_database_url


# PUBLIC_INTERFACE
def get_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Return the cached AsyncEngine for a connection string.

    Without an argument the master database engine is returned. Engines are
    created lazily and reused for the lifetime of the process.
    """
    key = _resolve_url(url)
    engine = _ENGINES.get(key)
    if engine is None:
        engine = create_async_engine(
            key,
            echo=get_settings().SQL_ECHO,
            pool_pre_ping=True,
        )
        _ENGINES[key] = engine
    return engine


# PUBLIC_INTERFACE
def get_session_maker(url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to the engine for a connection string."""
    key = _resolve_url(url)
    maker = _SESSION_MAKERS.get(key)
    if maker is None:
        maker = async_sessionmaker(
            bind=get_engine(url), expire_on_commit=False, autoflush=False
        )
        _SESSION_MAKERS[key] = maker
    return maker


# PUBLIC_INTERFACE
@asynccontextmanager
async def target_connection(url: str) -> AsyncGenerator[AsyncConnection, None]:
    """
    Open a single transactional connection to a reconciliation target.

    A dedicated NullPool engine is used and disposed on exit so that iterating
    over many tenant databases does not leave pools behind. The transaction is
    committed when the block exits normally and rolled back otherwise.
    """
    engine = create_async_engine(to_async_url(url), poolclass=pool.NullPool)
    try:
        async with engine.begin() as connection:
            yield connection
    finally:
        await engine.dispose()


# PUBLIC_INTERFACE
async def dispose_engines() -> None:
    """Dispose every cached engine (application shutdown, tests)."""
    engines = list(_ENGINES.values())
    _ENGINES.clear()
    _SESSION_MAKERS.clear()
    for engine in engines:
        await engine.dispose()
