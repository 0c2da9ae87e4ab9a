"""
User entity models.

A user is both a buyer and, when placed in the referral network, a seller.
The network is stored as an adjacency list (``parent_id``) plus a
materialized ancestor path (``team_path``) so that whole-team queries are a
single LIKE match.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from backoffice.core.models.domain.enums import UserLevel, UserStatus

from ..base import Base, UTCDateTime, new_id, utc_now


class User(Base, table=True):
    """Platform user and network member.

    ``team_path`` lists the ancestor ids from the root down to the parent,
    each wrapped in slashes (``/root/parent/``). A root member has ``/``.
    ``team_level`` is the depth in the network, the root being 1.

    Table: users
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    nickname: Optional[str] = Field(default=None, max_length=64)
    phone: Optional[str] = Field(default=None, max_length=32, index=True)
    level: UserLevel = Field(default=UserLevel.NORMAL, index=True)
    status: UserStatus = Field(default=UserStatus.ACTIVE, index=True)

    parent_id: Optional[str] = Field(default=None, max_length=64, index=True)
    team_path: str = Field(default="/", max_length=1024, index=True)
    team_level: int = Field(default=1)

    points_balance: float = Field(default=0.0)
    remark: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utc_now})

    @property
    def subtree_path(self) -> str:
        """Path prefix shared by every descendant of this user."""
        return f"{self.team_path}{self.id}/"

    def __repr__(self) -> str:
        return f"User(id={self.id}, level={self.level}, status={self.status})"
