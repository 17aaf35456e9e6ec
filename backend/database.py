"""
Database engine, session management and the unit of work for the storefront.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations
inside FastAPI. Tables are auto-created on server startup via init_db().

Every order/payment use case runs through with_transaction(): the service
function receives the session, and its writes are committed only if it
returns normally. Any exception (domain or infrastructure) rolls the whole
unit back before it propagates.
"""
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def to_async_url(url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless each connection turns them on."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    to_async_url(settings.database_url),
    echo=settings.sql_echo,
    future=True,
)
enable_sqlite_foreign_keys(engine)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def get_db() -> AsyncSession:
    """FastAPI dependency: yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


T = TypeVar("T")


async def with_transaction(
    db: AsyncSession,
    fn: Callable[..., Awaitable[T]],
    /,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Run ``fn(db, *args, **kwargs)`` as a single atomic unit of work.

    Commits when ``fn`` returns; rolls back and re-raises on any exception,
    so no partial order, payment, history or stock write survives a failure.
    """
    try:
        result = await fn(db, *args, **kwargs)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return result
