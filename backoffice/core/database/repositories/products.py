"""
Product specs repository.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ..entities.products import ProductSpec
from .base import SQLModelRepository


class ProductSpecRepository(SQLModelRepository[ProductSpec]):
    """Repository for product specs and their alert thresholds."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ProductSpec)
