"""Database engine and session factory."""
import logging
from typing import Any, AsyncIterator, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings
from app.db.models import Base

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def to_async_url(url: str) -> str:
    """Point a plain database URL at its async driver."""
    for plain, driver in ASYNC_DRIVERS.items():
        if url.startswith(plain):
            return driver + url[len(plain):]
    return url


def engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # The feedback service opens its own sessions alongside request sessions
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


database_url = to_async_url(settings.database_url)
engine = create_async_engine(database_url, echo=False, **engine_options(database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create missing tables. Schema changes go through Alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"[DB] Tables ready - driver: {engine.url.drivername}")


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped database session."""
    async with AsyncSessionLocal() as session:
        yield session
