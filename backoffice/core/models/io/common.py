"""
Shared I/O models: pagination envelope and simple acknowledgements.
"""

from __future__ import annotations

import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Pagination(BaseModel):
    """Pagination block returned with every paged listing."""

    page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / per_page) if per_page > 0 else 0
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class Page(BaseModel, Generic[T]):
    """A page of items plus its pagination block."""

    items: List[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CountResponse(BaseModel):
    """Result of a bulk operation that only reports how many rows it touched."""

    count: int = Field(description="Number of affected records")
    message: str = ""
