"""
Database connection and session management.

Service functions only ``flush()``. The request-scoped session commits once
the handler returns, so every write made for one request lands in a single
transaction (a privacy change's flag update and membership replacement
included) or none of it does.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for PostgreSQL (asyncpg) or SQLite (aiosqlite).

    SQLite gets foreign keys switched on so membership and message rows
    cascade with their channel. An in-memory SQLite database is pinned to a
    single connection.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_async_engine(url, echo=echo, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    eng = create_async_engine(url, echo=echo, **kwargs)
    event.listen(eng.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return eng


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only; use migrations in production)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_db() -> None:
    await engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions (commit on success, rollback on error)."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Same transaction handling as ``get_session``, for scripts outside a request."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
