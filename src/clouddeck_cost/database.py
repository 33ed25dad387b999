"""Async SQLAlchemy plumbing for the CloudDeck cost analytics service.

The engine and session factory are created once in the application lifespan
via ``init_database`` and handed to repositories through
``get_session_factory``. Repositories open a short-lived session per query so
independent reads can run concurrently.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from clouddeck_cost.observability import get_logger
from clouddeck_cost.settings import Settings

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


class Base(DeclarativeBase):
    """Declarative base shared by all cd_ tables."""


def init_database(settings: Settings) -> async_sessionmaker:
    """Create the async engine and session factory.

    Args:
        settings: Service settings with database_url and pool configuration.

    Returns:
        The session factory used by repositories.
    """
    global _engine, _session_factory

    engine_kwargs: dict = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.database_pool_size

    _engine = create_async_engine(settings.database_url, **engine_kwargs)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    logger.info("Database engine initialised", pool_size=settings.database_pool_size)
    return _session_factory


async def close_database() -> None:
    """Dispose the engine created by init_database."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency returning the initialised session factory.

    Raises:
        RuntimeError: If init_database has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database is not initialised; call init_database() first")
    return _session_factory
