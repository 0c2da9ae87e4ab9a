"""
Engine, session factory and schema helpers shared by the server and the tests.
"""

from __future__ import annotations

import re

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .base import Base

_POSTGRES_URL = re.compile(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://")


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async engine, pointing any PostgreSQL URL at the asyncpg driver.

    ``postgres://``, ``postgresql://`` and ``postgresql+psycopg://`` all become
    ``postgresql+asyncpg://``; SQLite URLs pass through unchanged.
    """
    url = _POSTGRES_URL.sub("postgresql+asyncpg://", db_url, count=1)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Services keep using entities after commit
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create the missing tables of every entity; deployments use Alembic instead."""
    # Entity modules register their tables on import
    from . import entities  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
