"""
Commission statements repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.core.models.domain.enums import CommissionStatus

from ..entities.commissions import CommissionCalculation
from .base import QueryBuilder, SQLModelRepository


class CommissionRepository(SQLModelRepository[CommissionCalculation]):
    """Repository for commission statements."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CommissionCalculation)

    async def get_for_period(self, user_id: str, period: str) -> Optional[CommissionCalculation]:
        stmt = select(CommissionCalculation).where(
            CommissionCalculation.user_id == user_id, CommissionCalculation.period == period
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_many(self, commission_ids: Sequence[str]) -> List[CommissionCalculation]:
        if not commission_ids:
            return []
        stmt = select(CommissionCalculation).where(
            CommissionCalculation.id.in_(list(commission_ids))  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def list_stmt(
        self,
        *,
        status: Optional[CommissionStatus] = None,
        period: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        stmt = QueryBuilder.apply_filters(
            select(CommissionCalculation),
            CommissionCalculation,
            {"status": status, "period": period, "user_id": user_id},
        )
        stmt = QueryBuilder.apply_date_range(stmt, CommissionCalculation.calculated_at, start, end)
        return stmt.order_by(CommissionCalculation.calculated_at.desc())  # type: ignore

    async def totals_by_status(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Dict[str, Tuple[int, float]]:
        """``(count, total commission)`` per status within the window."""
        stmt = select(
            CommissionCalculation.status,
            func.count(CommissionCalculation.id),
            func.coalesce(func.sum(CommissionCalculation.total_commission), 0.0),
        ).group_by(CommissionCalculation.status)
        stmt = QueryBuilder.apply_date_range(stmt, CommissionCalculation.calculated_at, start, end)
        result = await self.session.execute(stmt)
        return {CommissionStatus(status).value: (int(count), float(total)) for status, count, total in result.all()}
