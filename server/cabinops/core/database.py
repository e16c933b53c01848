"""Async engine, session factory and declarative base for the booking store."""

from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    An in-memory SQLite database lives inside a single connection, so it is
    shared through a StaticPool; file-backed SQLite gets a connection per
    session like PostgreSQL does.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_async_engine(settings.database_url, echo=False, **engine_options(settings.database_url))

# Services flush explicitly before the night ledger is written
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by cabins, policies, bookings and booking nights."""


def is_postgresql(session: AsyncSession) -> bool:
    """Whether the session talks to PostgreSQL, where advisory locks exist."""
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield one session per request, rolled back if the request fails.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables; migrations remain the source of truth."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
