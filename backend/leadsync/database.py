"""Database setup with SQLAlchemy async for the target store and the lead source."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import Table, inspect, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from leadsync.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


@lru_cache
def get_source_engine() -> AsyncEngine:
    """
    Engine for the external lead database.

    Created on first use so the API can start while the source is down;
    the sync itself reports the outage as a fatal condition.
    """
    return create_async_engine(
        settings.source_database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.source_pool_size,
        pool_recycle=3600,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


REQUIRED_TABLES = (
    "accounts",
    "teams",
    "leads",
    "lead_remarks",
    "sync_checkpoints",
    "sync_leases",
    "sync_runs",
)


async def check_db_ready() -> None:
    """
    Verify database connectivity and expected schema.

    Checks that the tables the sync engine writes to exist.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        existing = await conn.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            raise RuntimeError(
                f"Database schema is missing tables: {', '.join(missing)} "
                "(run alembic upgrade head)."
            )


def dialect_insert(session: AsyncSession, table: Table):
    """INSERT supporting ON CONFLICT for the session's backend (PostgreSQL or SQLite)."""
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(table)
    return sqlite_insert(table)
