"""
Admin finance service.

Points are the internal currency. Withdrawals debit the balance when the user
requests them, so rejecting one refunds the points; paying a commission
credits them.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.points import PointsTransaction
from backoffice.core.database.entities.users import User
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import InvalidStateError, NotFoundError, ValidationFailedError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import (
    AuditLogType,
    CommissionStatus,
    PointsTransactionStatus,
    PointsTransactionType,
)
from backoffice.core.models.io.audit_logs import AdminContext
from backoffice.core.models.io.common import Page, Pagination
from backoffice.core.models.io.finance import (
    CommissionPayResult,
    FinanceStatistics,
    PointsAdjustRequest,
    StatusTotals,
    WithdrawalReview,
)
from backoffice.core.models.io.team import CommissionRead
from backoffice.core.models.io.users import PointsTransactionRead
from backoffice.server.services.audit import AuditService

logger = get_logger(__name__)

MODULE = "finance"


def generate_transaction_no(prefix: str) -> str:
    """Return a transaction number like ``CM20260101120000A1B2C3``."""
    return f"{prefix}{datetime.now(timezone.utc):%Y%m%d%H%M%S}{uuid.uuid4().hex[:6].upper()}"


class FinanceService:
    """Service for withdrawals, commission payouts and points adjustments."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.audit = AuditService(session, self.repos)

    async def _require_user(self, user_id: str) -> User:
        user = await self.repos.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def _credit(
        self,
        user: User,
        amount: float,
        type: PointsTransactionType,
        description: str,
        metadata: Optional[dict] = None,
    ) -> PointsTransaction:
        """Move ``amount`` points into (positive) or out of (negative) a balance, staging the ledger row."""
        before = user.points_balance
        user.points_balance = before + amount
        await self.repos.users.stage(user)
        transaction = PointsTransaction(
            transaction_no=generate_transaction_no(type.value[:2]),
            to_user_id=user.id if amount > 0 else None,
            from_user_id=user.id if amount < 0 else None,
            amount=abs(amount),
            type=type,
            status=PointsTransactionStatus.COMPLETED,
            balance_before=before,
            balance_after=user.points_balance,
            description=description,
            metadata_json=json.dumps(metadata) if metadata else None,
            completed_at=datetime.now(timezone.utc),
        )
        return await self.repos.points.stage(transaction)

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def list_withdrawals(
        self,
        *,
        status: Optional[PointsTransactionStatus] = None,
        user_id: Optional[str] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[PointsTransactionRead]:
        stmt = self.repos.points.list_stmt(
            user_id=user_id,
            type=PointsTransactionType.WITHDRAW,
            status=status,
            min_amount=min_amount,
            max_amount=max_amount,
            start=start,
            end=end,
        )
        rows, total = await self.repos.points.paginate(stmt, page, per_page)
        return Page[PointsTransactionRead](
            items=[PointsTransactionRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def review_withdrawal(
        self, transaction_id: str, review: WithdrawalReview, admin: AdminContext
    ) -> PointsTransactionRead:
        """Approve or reject a PENDING withdrawal.

        Raises:
            NotFoundError: No withdrawal with this id
            InvalidStateError: The withdrawal was already reviewed
        """
        withdrawal = await self.repos.points.get_by_id(transaction_id)
        if withdrawal is None or withdrawal.type != PointsTransactionType.WITHDRAW:
            raise NotFoundError(f"Withdrawal {transaction_id} not found")
        if withdrawal.status != PointsTransactionStatus.PENDING:
            raise InvalidStateError(f"Withdrawal {transaction_id} is {withdrawal.status.value}, not PENDING")

        metadata = json.loads(withdrawal.metadata_json) if withdrawal.metadata_json else {}
        metadata.update({"reviewed_by": admin.admin_id, "remark": review.remark})
        approve = review.action == "approve"

        try:
            withdrawal.completed_at = datetime.now(timezone.utc)
            if approve:
                withdrawal.status = PointsTransactionStatus.COMPLETED
            else:
                withdrawal.status = PointsTransactionStatus.CANCELLED
                metadata["reject_reason"] = review.reject_reason
                owner = await self._require_user(withdrawal.owner_id)
                await self._credit(
                    owner,
                    withdrawal.amount,
                    PointsTransactionType.REFUND,
                    f"Refund of rejected withdrawal {withdrawal.transaction_no}",
                    {"withdrawal_id": withdrawal.id},
                )
            withdrawal.metadata_json = json.dumps(metadata)
            await self.repos.points.stage(withdrawal)
            await self.audit.record(
                admin,
                type=AuditLogType.APPROVE if approve else AuditLogType.REJECT,
                module=MODULE,
                action="review_withdrawal",
                description=f"{review.action} withdrawal {withdrawal.transaction_no}",
                target_id=withdrawal.id,
                target_type="withdrawal",
                details={"amount": withdrawal.amount, "remark": review.remark, "reject_reason": review.reject_reason},
            )
            await self.session.commit()
            await self.session.refresh(withdrawal)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal.id} {review.action}d by {admin.admin_id}")
        return PointsTransactionRead.model_validate(withdrawal)

    # ------------------------------------------------------------------
    # Commissions
    # ------------------------------------------------------------------

    async def list_commissions(
        self,
        *,
        status: Optional[CommissionStatus] = None,
        period: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[CommissionRead]:
        stmt = self.repos.commissions.list_stmt(status=status, period=period, user_id=user_id, start=start, end=end)
        rows, total = await self.repos.commissions.paginate(stmt, page, per_page)
        return Page[CommissionRead](
            items=[CommissionRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def pay_commissions(
        self, commission_ids: List[str], remark: Optional[str], admin: AdminContext
    ) -> CommissionPayResult:
        """Pay out CALCULATED statements as points, all or nothing."""
        wanted = list(dict.fromkeys(commission_ids))
        statements = await self.repos.commissions.get_many(wanted)
        missing = set(wanted) - {statement.id for statement in statements}
        if missing:
            raise ValidationFailedError(f"Unknown commission ids: {', '.join(sorted(missing))}")
        not_payable = [statement.id for statement in statements if statement.status != CommissionStatus.CALCULATED]
        if not_payable:
            raise ValidationFailedError(f"Commissions not in CALCULATED state: {', '.join(sorted(not_payable))}")

        total_amount = 0.0
        try:
            now = datetime.now(timezone.utc)
            for statement in statements:
                statement.status = CommissionStatus.PAID
                statement.paid_date = now
                await self.repos.commissions.stage(statement)
                user = await self._require_user(statement.user_id)
                await self._credit(
                    user,
                    statement.total_commission,
                    PointsTransactionType.COMMISSION,
                    f"Commission for {statement.period}",
                    {"commission_id": statement.id, "period": statement.period, "remark": remark},
                )
                total_amount += statement.total_commission
            await self.audit.record(
                admin,
                type=AuditLogType.BULK_OPERATION,
                module=MODULE,
                action="pay_commissions",
                description=f"Paid {len(statements)} commissions",
                target_type="commission",
                details={"commission_ids": wanted, "total_amount": total_amount, "remark": remark},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"{admin.admin_id} paid {len(statements)} commissions totalling {total_amount:.2f}")
        return CommissionPayResult(count=len(statements), total_amount=total_amount)

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    async def adjust_points(self, request: PointsAdjustRequest, admin: AdminContext) -> PointsTransactionRead:
        user = await self._require_user(request.user_id)
        if user.points_balance + request.amount < 0:
            raise ValidationFailedError(
                f"Insufficient points: balance {user.points_balance}, adjustment {request.amount}"
            )

        try:
            transaction = await self._credit(
                user, request.amount, PointsTransactionType.ADJUSTMENT, request.reason, {"operator": admin.admin_id}
            )
            await self.audit.record(
                admin,
                type=AuditLogType.UPDATE,
                module=MODULE,
                action="adjust_points",
                description=f"Adjusted points of {user.id} by {request.amount}",
                target_id=user.id,
                target_type="user",
                details={
                    "amount": request.amount,
                    "reason": request.reason,
                    "balance_before": transaction.balance_before,
                    "balance_after": transaction.balance_after,
                },
            )
            await self.session.commit()
            await self.session.refresh(transaction)
        except Exception:
            await self.session.rollback()
            raise
        return PointsTransactionRead.model_validate(transaction)

    async def finance_statistics(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> FinanceStatistics:
        withdrawals = await self.repos.points.totals_by_status(PointsTransactionType.WITHDRAW, start, end)
        commissions = await self.repos.commissions.totals_by_status(start, end)
        return FinanceStatistics(
            withdrawals={status: StatusTotals(count=c, amount=a) for status, (c, a) in withdrawals.items()},
            commissions={status: StatusTotals(count=c, amount=a) for status, (c, a) in commissions.items()},
            paid_commission_amount=commissions.get(CommissionStatus.PAID.value, (0, 0.0))[1],
            completed_withdrawal_amount=withdrawals.get(PointsTransactionStatus.COMPLETED.value, (0, 0.0))[1],
        )
