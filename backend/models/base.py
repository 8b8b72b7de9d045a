"""Async database engine, session factory and schema bootstrap."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)

async_engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
async_session_factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def create_tables(engine=None) -> None:
    """Create the ``images`` and ``api_keys`` tables if they do not exist."""
    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def get_db():
    """FastAPI dependency yielding one session per request."""
    async with async_session_factory() as session:
        yield session
