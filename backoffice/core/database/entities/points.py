"""
Points ledger entity models.

Points are the internal currency: commissions are credited as points and
withdrawals debit them. Every balance change writes one transaction row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import PointsTransactionStatus, PointsTransactionType

from ..base import Base, UTCDateTime, new_id, utc_now


class PointsTransaction(Base, table=True):
    """A points movement between the platform and a user.

    ``metadata_json`` is a JSON object with type-specific details (commission
    breakdown, review remark and so on).

    Table: points_transactions
    """

    __tablename__ = "points_transactions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    transaction_no: str = Field(max_length=64, index=True)
    from_user_id: Optional[str] = Field(default=None, max_length=64, index=True)
    to_user_id: Optional[str] = Field(default=None, max_length=64, index=True)

    amount: float
    type: PointsTransactionType = Field(index=True)
    status: PointsTransactionStatus = Field(default=PointsTransactionStatus.PENDING, index=True)

    balance_before: Optional[float] = Field(default=None)
    balance_after: Optional[float] = Field(default=None)
    description: Optional[str] = Field(default=None, max_length=255)
    metadata_json: Optional[str] = Field(default=None, sa_type=Text)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    @property
    def owner_id(self) -> Optional[str]:
        """The user whose balance this transaction changes."""
        if self.type == PointsTransactionType.WITHDRAW:
            return self.from_user_id
        return self.to_user_id or self.from_user_id

    def __repr__(self) -> str:
        return f"PointsTransaction(id={self.id}, type={self.type}, amount={self.amount}, status={self.status})"
