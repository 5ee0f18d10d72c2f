"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

The engine is lazy: nothing connects until the first query, so the app can
boot (and serve / and the WebSocket) while the store is down. Table creation
is retried by the store routes until it succeeds once.
"""

import asyncio
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskify.config import settings
from taskify.db.models import Base
from taskify.errors import StoreUnavailableError


def build_engine(url: str) -> AsyncEngine:
    """Create an engine; pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)
    return create_async_engine(
        url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# Flipped once the tables exist; store routes retry creation until then.
_schema_ready = False
_schema_lock = asyncio.Lock()


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create the users and tasks tables if they don't exist yet."""
    global _schema_ready
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _schema_ready = True


async def ensure_schema(bind: Optional[AsyncEngine] = None) -> None:
    """Create the tables on first use when startup could not reach the store."""
    if _schema_ready:
        return
    async with _schema_lock:
        if not _schema_ready:
            await init_db(bind)


async def require_store() -> None:
    """Router dependency for the store routes: tables exist or 503."""
    try:
        await ensure_schema()
    except (OSError, SQLAlchemyError) as e:
        raise StoreUnavailableError(f"store unreachable: {e}") from e


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes.

    asyncpg raises plain OSError subclasses when it can't connect; those
    are reported as store_unavailable. Driver errors SQLAlchemy wraps
    itself are handled app-wide in main.py.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except OSError as e:
            raise StoreUnavailableError(f"store unreachable: {e}") from e
        finally:
            await session.close()
