"""
Product spec entity models.

Only the fields inventory needs are modelled: identity and the alert
thresholds per spec.
"""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id


class ProductSpec(Base, table=True):
    """A sellable variant of a product, carrying its stock alert thresholds.

    Table: product_specs
    """

    __tablename__ = "product_specs"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    product_id: str = Field(max_length=64, index=True)
    name: Optional[str] = Field(default=None, max_length=128)
    sku: Optional[str] = Field(default=None, max_length=64, index=True)
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)
    out_of_stock_threshold: Optional[int] = Field(default=None, ge=0)
