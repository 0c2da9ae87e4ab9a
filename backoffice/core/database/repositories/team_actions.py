"""
Team action log repository.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.team_actions import TeamActionLog
from .base import SQLModelRepository


class TeamActionLogRepository(SQLModelRepository[TeamActionLog]):
    """Repository for promotion and status change records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TeamActionLog)

    def for_user_stmt(self, user_id: str):
        return (
            select(TeamActionLog)
            .where(TeamActionLog.user_id == user_id)
            .order_by(TeamActionLog.created_at.desc())  # type: ignore
        )
