"""Async engine and session factory for the location cache database.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) for local runs and
tests.  The cache store opens its own short-lived sessions from the factory
returned by ``get_session_factory``.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from geo_resolver.models import Base

POOL_SIZE = 10
MAX_OVERFLOW = 5

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the initialized engine.

    Raises:
        RuntimeError: If init_engine() has not been called.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to the initialized engine.

    Raises:
        RuntimeError: If init_engine() has not been called.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def _is_pooled(database_url: str, engine_kwargs: dict[str, Any]) -> bool:
    if engine_kwargs.get("poolclass") is StaticPool:
        return False
    return not make_url(database_url).get_backend_name().startswith("sqlite")


def init_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create the module-level engine and session factory.

    Pooled backends get default pool sizing unless the caller overrides it.

    Args:
        database_url: Async SQLAlchemy connection string.
        **kwargs: Extra create_async_engine arguments (``echo``, ``poolclass``...).

    Returns:
        The new engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if _is_pooled(database_url, kwargs):
        kwargs.setdefault("pool_size", POOL_SIZE)
        kwargs.setdefault("max_overflow", MAX_OVERFLOW)
    _engine = create_async_engine(database_url, **kwargs)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def create_tables() -> None:
    """Create the location cache tables if they do not exist."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine. Safe to call twice."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
