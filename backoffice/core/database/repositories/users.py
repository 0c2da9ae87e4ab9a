"""
Users repository.

Data access for platform users and the referral network. Whole-team queries
match the materialized ``team_path``: a user belongs to X's team when X's id
appears in the user's ancestor path.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from backoffice.core.models.domain.enums import QUALIFYING_ORDER_STATUSES, UserLevel, UserStatus

from ..entities.orders import Order
from ..entities.users import User
from .base import QueryBuilder, SQLModelRepository


LIKE_ESCAPE = "\\"


def team_path_pattern(user_id: str) -> str:
    """LIKE pattern matching every descendant of ``user_id``, with wildcards in the id escaped."""
    escaped = user_id.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
    for wildcard in ("%", "_"):
        escaped = escaped.replace(wildcard, LIKE_ESCAPE + wildcard)
    return f"%/{escaped}/%"


def in_subtree_of(user_id: str):
    return User.team_path.like(team_path_pattern(user_id), escape=LIKE_ESCAPE)  # type: ignore


class UserRepository(SQLModelRepository[User]):
    """Repository for users and the referral network."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_many(self, user_ids: Sequence[str]) -> Dict[str, User]:
        if not user_ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(list(user_ids))))  # type: ignore
        return {user.id: user for user in result.scalars().all()}

    def team_stmt(self, user_id: str):
        """Select statement over every descendant of ``user_id``."""
        return select(User).where(in_subtree_of(user_id))

    async def team_members(self, user_id: str) -> List[User]:
        result = await self.session.execute(self.team_stmt(user_id).order_by(User.team_level, User.created_at))
        return list(result.scalars().all())

    async def team_member_ids(self, user_id: str) -> List[str]:
        stmt = select(User.id).where(in_subtree_of(user_id))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def team_count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(User).where(in_subtree_of(user_id))
        return int((await self.session.execute(stmt)).scalar_one())

    async def children(self, user_id: str) -> List[User]:
        result = await self.session.execute(
            select(User).where(User.parent_id == user_id).order_by(User.created_at)  # type: ignore
        )
        return list(result.scalars().all())

    async def children_count(
        self, user_id: str, created_from: Optional[datetime] = None, created_to: Optional[datetime] = None
    ) -> int:
        stmt = select(func.count()).select_from(User).where(User.parent_id == user_id)
        stmt = QueryBuilder.apply_date_range(stmt, User.created_at, created_from, created_to)
        return int((await self.session.execute(stmt)).scalar_one())

    async def grandchildren(self, user_id: str) -> List[User]:
        child_ids = select(User.id).where(User.parent_id == user_id)
        result = await self.session.execute(select(User).where(User.parent_id.in_(child_ids)))  # type: ignore
        return list(result.scalars().all())

    async def children_counts(self, user_ids: Sequence[str]) -> Dict[str, int]:
        """Number of direct children for each of ``user_ids``."""
        if not user_ids:
            return {}
        stmt = (
            select(User.parent_id, func.count())
            .where(User.parent_id.in_(list(user_ids)))  # type: ignore
            .group_by(User.parent_id)
        )
        result = await self.session.execute(stmt)
        return {parent_id: int(count) for parent_id, count in result.all()}

    async def active_users(self, levels: Optional[Sequence[UserLevel]] = None) -> List[User]:
        stmt = select(User).where(User.status == UserStatus.ACTIVE)
        if levels:
            stmt = stmt.where(User.level.in_(list(levels)))  # type: ignore
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def search_stmt(
        self,
        *,
        level: Optional[UserLevel] = None,
        status: Optional[UserStatus] = None,
        keyword: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        base=None,
    ):
        """Filtered select statement used by the admin and team listings.

        Args:
            level: Exact user level
            status: Exact user status
            keyword: Substring of nickname or phone, or an exact id
            created_from: Inclusive lower bound on ``created_at``
            created_to: Inclusive upper bound on ``created_at``
            base: Statement to refine instead of ``select(User)``
        """
        stmt = base if base is not None else select(User)
        stmt = QueryBuilder.apply_filters(stmt, User, {"level": level, "status": status})
        if keyword:
            like = f"%{keyword}%"
            stmt = stmt.where(
                or_(User.nickname.like(like), User.phone.like(like), User.id == keyword)  # type: ignore
            )
        return QueryBuilder.apply_date_range(stmt, User.created_at, created_from, created_to)

    @staticmethod
    def sort_expression(sort_by: str):
        """Column or correlated subquery to order user listings by.

        ``total_sales`` sums the user's qualifying orders as seller and
        ``direct_count`` counts their direct referrals. Anything else sorts by
        ``created_at``.
        """
        if sort_by == "total_sales":
            return (
                select(func.coalesce(func.sum(Order.total_amount), 0.0))
                .where(Order.seller_id == User.id, Order.status.in_(QUALIFYING_ORDER_STATUSES))  # type: ignore
                .correlate(User)
                .scalar_subquery()
            )
        if sort_by == "direct_count":
            child = aliased(User)
            return select(func.count(child.id)).where(child.parent_id == User.id).correlate(User).scalar_subquery()
        return User.created_at
