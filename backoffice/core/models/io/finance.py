"""
Admin finance I/O models.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class WithdrawalReview(BaseModel):
    """Approve or reject a pending withdrawal."""

    action: Literal["approve", "reject"]
    remark: Optional[str] = Field(default=None, max_length=255)
    reject_reason: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def _require_reject_reason(self) -> "WithdrawalReview":
        if self.action == "reject" and not self.reject_reason:
            raise ValueError("reject_reason is required when rejecting")
        return self


class CommissionPayRequest(BaseModel):
    commission_ids: List[str] = Field(min_length=1)
    remark: Optional[str] = Field(default=None, max_length=255)


class CommissionPayResult(BaseModel):
    count: int
    total_amount: float


class PointsAdjustRequest(BaseModel):
    """Credit (positive) or debit (negative) a user's points."""

    user_id: str
    amount: float
    reason: str = Field(min_length=1, max_length=255)

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: float) -> float:
        if value == 0:
            raise ValueError("amount must not be zero")
        return value


class StatusTotals(BaseModel):
    count: int = 0
    amount: float = 0.0


class FinanceStatistics(BaseModel):
    withdrawals: Dict[str, StatusTotals]
    commissions: Dict[str, StatusTotals]
    paid_commission_amount: float
    completed_withdrawal_amount: float
