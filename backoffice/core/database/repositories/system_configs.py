"""
System configuration repositories.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.system_configs import SystemConfig, SystemConfigHistory
from .base import SQLModelRepository


class SystemConfigRepository(SQLModelRepository[SystemConfig]):
    """Repository for configuration entries, addressed by key."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SystemConfig)

    async def get_by_key(self, key: str) -> Optional[SystemConfig]:
        result = await self.session.execute(select(SystemConfig).where(SystemConfig.key == key))
        return result.scalars().first()

    async def categories(self) -> List[str]:
        stmt = select(SystemConfig.category).distinct().order_by(SystemConfig.category)
        result = await self.session.execute(stmt)
        return [category for category in result.scalars().all() if category]

    def list_stmt(self, *, category: Optional[str] = None, keyword: Optional[str] = None):
        stmt = select(SystemConfig)
        if category:
            stmt = stmt.where(SystemConfig.category == category)
        if keyword:
            like = f"%{keyword}%"
            stmt = stmt.where(or_(SystemConfig.key.like(like), SystemConfig.description.like(like)))  # type: ignore
        return stmt.order_by(SystemConfig.category, SystemConfig.key)

    async def all(self, category: Optional[str] = None) -> List[SystemConfig]:
        result = await self.session.execute(self.list_stmt(category=category))
        return list(result.scalars().all())


class SystemConfigHistoryRepository(SQLModelRepository[SystemConfigHistory]):
    """Repository for configuration change history."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SystemConfigHistory)

    def for_key_stmt(self, key: str):
        return (
            select(SystemConfigHistory)
            .where(SystemConfigHistory.config_key == key)
            .order_by(SystemConfigHistory.modified_at.desc())  # type: ignore
        )
