"""
Commission entity models.

One settled commission statement per user and period.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import CommissionStatus

from ..base import Base, UTCDateTime, new_id, utc_now


class CommissionCalculation(Base, table=True):
    """Commission statement of a user for a ``YYYY-MM`` period.

    ``details`` holds the JSON breakdown the statement was computed from.

    Table: commission_calculations
    """

    __tablename__ = "commission_calculations"
    __table_args__ = (UniqueConstraint("user_id", "period", name="uq_commission_user_period"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(max_length=64, index=True)
    period: str = Field(max_length=16, index=True)

    personal_commission: float = Field(default=0.0)
    team_commission: float = Field(default=0.0)
    referral_commission: float = Field(default=0.0)
    bonus_commission: float = Field(default=0.0)
    total_commission: float = Field(default=0.0)

    status: CommissionStatus = Field(default=CommissionStatus.PENDING, index=True)
    details: Optional[str] = Field(default=None, sa_type=Text)

    calculated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    paid_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return (
            f"CommissionCalculation(id={self.id}, user_id={self.user_id}, period={self.period}, "
            f"total_commission={self.total_commission}, status={self.status})"
        )
