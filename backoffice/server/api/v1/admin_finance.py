"""
Admin Finance Endpoints.

Withdrawal review, commission payouts, manual points adjustments and
finance statistics.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.core.models.domain.enums import CommissionStatus, PointsTransactionStatus
from backoffice.core.models.io.common import Page
from backoffice.core.models.io.finance import (
    CommissionPayRequest,
    CommissionPayResult,
    FinanceStatistics,
    PointsAdjustRequest,
    WithdrawalReview,
)
from backoffice.core.models.io.team import CommissionRead
from backoffice.core.models.io.users import PointsTransactionRead
from backoffice.server.services.deps import AdminDep, FinanceServiceDep

router = APIRouter(tags=["admin-finance"])


@router.get(
    "/withdrawals",
    response_model=Page[PointsTransactionRead],
    summary="List Withdrawals",
    description="Withdrawal requests filtered by status, user, amount range and date.",
    response_description="A page of withdrawals.",
)
async def list_withdrawals(
    service: FinanceServiceDep,
    withdrawal_status: Optional[PointsTransactionStatus] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[PointsTransactionRead]:
    """List withdrawals."""
    return await service.list_withdrawals(
        status=withdrawal_status,
        user_id=user_id,
        min_amount=min_amount,
        max_amount=max_amount,
        start=start,
        end=end,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/withdrawals/{transaction_id}/review",
    response_model=PointsTransactionRead,
    summary="Review Withdrawal",
    description="Approve or reject a pending withdrawal. Rejection refunds the points.",
    response_description="The reviewed withdrawal.",
    responses={404: {"description": "Withdrawal not found"}, 409: {"description": "Withdrawal not pending"}},
)
async def review_withdrawal(
    transaction_id: str, review: WithdrawalReview, service: FinanceServiceDep, admin: AdminDep
) -> PointsTransactionRead:
    """Review a withdrawal."""
    return await service.review_withdrawal(transaction_id, review, admin)


@router.get(
    "/commissions",
    response_model=Page[CommissionRead],
    summary="List Commissions",
    description="Commission statements filtered by status, period, user and calculation date.",
    response_description="A page of commission statements.",
)
async def list_commissions(
    service: FinanceServiceDep,
    commission_status: Optional[CommissionStatus] = Query(None, alias="status"),
    period: Optional[str] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[CommissionRead]:
    """List commission statements."""
    return await service.list_commissions(
        status=commission_status, period=period, user_id=user_id, start=start, end=end, page=page, per_page=per_page
    )


@router.post(
    "/commissions/pay",
    response_model=CommissionPayResult,
    summary="Pay Commissions",
    description="Pay CALCULATED statements into the users' points balances. Nothing is paid if any id is invalid.",
    response_description="Number of statements paid and the total amount.",
    responses={400: {"description": "Unknown or non-payable commission ids"}},
)
async def pay_commissions(
    request: CommissionPayRequest, service: FinanceServiceDep, admin: AdminDep
) -> CommissionPayResult:
    """Pay commission statements."""
    return await service.pay_commissions(request.commission_ids, request.remark, admin)


@router.post(
    "/adjust",
    response_model=PointsTransactionRead,
    summary="Adjust Points",
    description="Credit or debit a user's points balance by hand.",
    response_description="The recorded adjustment transaction.",
    responses={400: {"description": "Balance would become negative"}, 404: {"description": "User not found"}},
)
async def adjust_points(
    request: PointsAdjustRequest, service: FinanceServiceDep, admin: AdminDep
) -> PointsTransactionRead:
    """Adjust a user's points."""
    return await service.adjust_points(request, admin)


@router.get(
    "/statistics",
    response_model=FinanceStatistics,
    summary="Finance Statistics",
    description="Withdrawal and commission counts and amounts per status.",
    response_description="Finance totals.",
)
async def finance_statistics(
    service: FinanceServiceDep, start: Optional[datetime] = None, end: Optional[datetime] = None
) -> FinanceStatistics:
    """Get finance statistics."""
    return await service.finance_statistics(start, end)
