"""
Team action log entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import TeamActionType

from ..base import Base, UTCDateTime, new_id, utc_now


class TeamActionLog(Base, table=True):
    """Record of a promotion or status change applied to a team member.

    ``old_data`` and ``new_data`` are JSON snapshots of the changed fields.

    Table: team_action_logs
    """

    __tablename__ = "team_action_logs"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(max_length=64, index=True)
    operator_id: str = Field(max_length=64)
    action_type: TeamActionType = Field(index=True)
    old_data: Optional[str] = Field(default=None, sa_type=Text)
    new_data: Optional[str] = Field(default=None, sa_type=Text)
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, sa_type=Text)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"TeamActionLog(id={self.id}, user_id={self.user_id}, action_type={self.action_type})"
