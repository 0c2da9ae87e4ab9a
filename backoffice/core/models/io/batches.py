"""
Batch I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from backoffice.core.models.domain.enums import BatchStatus

from .inventory import StockRead, StockScopeIn


class BatchRead(StockRead):
    """A stock row viewed as a batch, with its derived status."""

    status: BatchStatus


class BatchSelectQuery(StockScopeIn):
    """Query string of a FIFO batch selection: the stock scope plus the quantity to cover."""

    quantity: int = Field(gt=0)


class BatchExpiry(BaseModel):
    is_expired: bool
    days_until_expiry: Optional[int] = Field(default=None, description="Whole days left, rounded up")
    expiry_date: Optional[datetime] = None


class BatchUpdate(BaseModel):
    location: Optional[str] = Field(default=None, max_length=128)
    expiry_date: Optional[datetime] = None


class BatchStatistics(BaseModel):
    total: int = 0
    active: int = 0
    expired: int = 0
    used_up: int = 0
    expiring_soon: int = 0
