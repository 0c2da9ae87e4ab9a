"""Fixtures for the PostgreSQL database e2e tests."""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import Base
from backoffice.core.database.utils import create_all, create_engine, create_sessionmaker


@pytest_asyncio.fixture
async def postgres_session(database_url: str) -> AsyncGenerator[AsyncSession, None]:
    """A session on a freshly created schema, dropped again afterwards."""
    engine = create_engine(database_url)
    await create_all(engine)
    try:
        async with create_sessionmaker(engine)() as session:
            yield session
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
