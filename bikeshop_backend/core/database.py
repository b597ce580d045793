"""
Database engine and sessions

One async engine per process. Request handlers receive a session through the
get_db() dependency; the alert scheduler, run_cron.py and migrations open one
with get_db_session(). Either way the session commits when the block finishes
cleanly and rolls back when it raises.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from bikeshop_backend.core.config import settings


def pool_options(environment: str) -> Dict[str, Any]:
    """Connection pool sizing for an environment."""
    if environment == "production":
        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,
        }
    # Local Postgres behind a laptop: keep it small
    return {"pool_size": 2, "max_overflow": 5, "pool_pre_ping": True}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **pool_options(settings.ENVIRONMENT),
)

# Alerts and movements are serialized after commit, so keep attributes loaded
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    Session for code running outside a request.

    Usage:
        async with get_db_session() as db:
            await AlertService(db).check_stock_levels()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""
    async with get_db_session() as session:
        yield session
