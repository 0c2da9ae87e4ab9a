"""
Audit log repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType

from ..entities.audit_logs import AuditLog
from .base import QueryBuilder, SQLModelRepository


class AuditLogRepository(SQLModelRepository[AuditLog]):
    """Repository for the admin audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, AuditLog)

    def list_stmt(
        self,
        *,
        admin_id: Optional[str] = None,
        type: Optional[AuditLogType] = None,
        level: Optional[AuditLogLevel] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        stmt = QueryBuilder.apply_filters(
            select(AuditLog),
            AuditLog,
            {
                "admin_id": admin_id,
                "type": type,
                "level": level,
                "module": module,
                "action": action,
                "target_id": target_id,
                "target_type": target_type,
            },
        )
        stmt = QueryBuilder.apply_date_range(stmt, AuditLog.created_at, start, end)
        return stmt.order_by(AuditLog.created_at.desc())  # type: ignore

    async def count_by(
        self, column, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Dict[str, int]:
        stmt = select(column, func.count()).group_by(column)
        stmt = QueryBuilder.apply_date_range(stmt, AuditLog.created_at, start, end)
        result = await self.session.execute(stmt)
        return {getattr(key, "value", key): int(count) for key, count in result.all()}

    async def count_in_range(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None, result: Optional[str] = None
    ) -> int:
        stmt = select(func.count()).select_from(AuditLog)
        if result is not None:
            stmt = stmt.where(AuditLog.result == result)
        stmt = QueryBuilder.apply_date_range(stmt, AuditLog.created_at, start, end)
        return int((await self.session.execute(stmt)).scalar_one())

    async def delete_before(self, cutoff: datetime) -> int:
        result = await self.session.execute(delete(AuditLog).where(AuditLog.created_at < cutoff))
        return int(result.rowcount or 0)
