"""Database engines and session factories for the two stores.

The catalog store and the vector store are separate PostgreSQL instances with
independent pools. Neither is transactionally consistent with the other; a
product can transiently lack an embedding and callers must tolerate that.

Sessions are always acquired with ``async with`` so connections are returned
to the pool on every exit path, including errors and cancellation.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from .config import Settings


def _is_asyncpg(url: str) -> bool:
    return url.startswith("postgresql+asyncpg")


def create_store_engine(url: str, settings: Settings, query_timeout: float) -> AsyncEngine:
    """Create a pooled async engine with bounded pool and driver timeouts.

    Args:
        url: SQLAlchemy async database URL
        settings: Application settings (pool sizing and timeouts)
        query_timeout: Server round-trip deadline applied by the driver

    Returns:
        AsyncEngine: Engine with pre-ping and recycle enabled
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "echo": False,
    }

    # asyncpg takes connect and per-statement deadlines as connect args
    if _is_asyncpg(url):
        engine_kwargs["connect_args"] = {
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "command_timeout": query_timeout,
        }

    return create_async_engine(url, **engine_kwargs)


def create_probe_engine(url: str, timeout: float) -> AsyncEngine:
    """Create a non-pooled engine used only for availability probes.

    Every probe opens and closes its own connection with a short connect
    timeout, so a dead store fails fast and never occupies the query pool.
    """
    engine_kwargs = {"poolclass": NullPool}
    if _is_asyncpg(url):
        engine_kwargs["connect_args"] = {"timeout": timeout, "command_timeout": timeout}
    return create_async_engine(url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@asynccontextmanager
async def scoped_session(factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """Async context manager for database sessions.

    Usage:
        async with scoped_session(factory) as session:
            await session.execute(select(Product))

    Automatically commits on success, rolls back on exception, and always
    closes the session.
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@dataclass
class StoreEngines:
    """All engines owned by one process."""
    catalog: AsyncEngine
    vector: AsyncEngine
    vector_probe: AsyncEngine

    async def dispose(self) -> None:
        await self.catalog.dispose()
        await self.vector.dispose()
        await self.vector_probe.dispose()


def create_store_engines(settings: Settings) -> StoreEngines:
    """Build catalog, vector and probe engines from settings.

    Engines connect lazily; creating them never touches the network.
    """
    return StoreEngines(
        catalog=create_store_engine(
            settings.CATALOG_DATABASE_URL, settings, settings.CATALOG_QUERY_TIMEOUT
        ),
        vector=create_store_engine(
            settings.VECTOR_DATABASE_URL, settings, settings.VECTOR_QUERY_TIMEOUT
        ),
        vector_probe=create_probe_engine(
            settings.VECTOR_DATABASE_URL, settings.VECTOR_AVAILABILITY_TIMEOUT
        ),
    )
