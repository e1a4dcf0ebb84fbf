"""
Database Connection and Session Management
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from marketplace.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Explicit scoped transaction — commit on success, full rollback on error.

    The block runs inside a SAVEPOINT so that callers may open further nested
    SAVEPOINTs (``session.begin_nested()``) and recover from a failed one
    without losing the rest of the unit.

    Usage:
        async with atomic(db):
            db.add(order)
    """
    try:
        async with session.begin_nested():
            yield session
    except Exception:
        await session.rollback()
        raise
    await session.commit()
