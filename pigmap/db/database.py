"""
Async SQLAlchemy engine and session factory for the report store.

The engine is bound to settings.DATABASE_URL at import time; tests and the
app lifespan can rebind it with configure_engine().
"""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pigmap.core.config import settings
from pigmap.db.models import Base

engine: AsyncEngine = create_async_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


def configure_engine(url: str) -> AsyncEngine:
    """Point the module-level engine and session factory at another database."""
    global engine
    engine = create_async_engine(url)
    AsyncSessionLocal.configure(bind=engine)
    return engine


async def init_db() -> None:
    """Create missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
