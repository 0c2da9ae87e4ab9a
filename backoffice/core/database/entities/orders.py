"""
Order entity models.

Orders are read-only input for the performance engine: sales figures are
sums of ``total_amount`` over orders in a qualifying status.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from backoffice.core.models.domain.enums import OrderStatus

from ..base import Base, UTCDateTime, new_id, utc_now


class Order(Base, table=True):
    """A customer order attributed to a seller.

    Table: orders
    """

    __tablename__ = "orders"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    order_no: Optional[str] = Field(default=None, max_length=64, index=True)
    buyer_id: str = Field(max_length=64, index=True)
    seller_id: str = Field(max_length=64, index=True)
    total_amount: float = Field(default=0.0)
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"Order(id={self.id}, seller_id={self.seller_id}, total_amount={self.total_amount})"
