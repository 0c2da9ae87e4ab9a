"""
Points ledger repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.core.models.domain.enums import PointsTransactionStatus, PointsTransactionType

from ..entities.points import PointsTransaction
from .base import QueryBuilder, SQLModelRepository


class PointsTransactionRepository(SQLModelRepository[PointsTransaction]):
    """Repository for points transactions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PointsTransaction)

    def list_stmt(
        self,
        *,
        user_id: Optional[str] = None,
        type: Optional[PointsTransactionType] = None,
        status: Optional[PointsTransactionStatus] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        """Filtered listing; ``user_id`` matches either side of the transaction."""
        stmt = QueryBuilder.apply_filters(select(PointsTransaction), PointsTransaction, {"type": type, "status": status})
        if user_id is not None:
            stmt = stmt.where(
                or_(PointsTransaction.from_user_id == user_id, PointsTransaction.to_user_id == user_id)
            )
        if min_amount is not None:
            stmt = stmt.where(PointsTransaction.amount >= min_amount)
        if max_amount is not None:
            stmt = stmt.where(PointsTransaction.amount <= max_amount)
        stmt = QueryBuilder.apply_date_range(stmt, PointsTransaction.created_at, start, end)
        return stmt.order_by(PointsTransaction.created_at.desc())  # type: ignore

    async def totals_by_status(
        self,
        type: PointsTransactionType,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Tuple[int, float]]:
        """``(count, total amount)`` per status for one transaction type."""
        stmt = (
            select(
                PointsTransaction.status,
                func.count(PointsTransaction.id),
                func.coalesce(func.sum(PointsTransaction.amount), 0.0),
            )
            .where(PointsTransaction.type == type)
            .group_by(PointsTransaction.status)
        )
        stmt = QueryBuilder.apply_date_range(stmt, PointsTransaction.created_at, start, end)
        result = await self.session.execute(stmt)
        return {
            PointsTransactionStatus(status).value: (int(count), float(total))
            for status, count, total in result.all()
        }
