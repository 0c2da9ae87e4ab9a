"""
Audit log entity models.

Every mutating admin operation writes one row here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType

from ..base import Base, UTCDateTime, new_id, utc_now


class AuditLog(Base, table=True):
    """Entity for the admin audit trail.

    ``result`` is ``SUCCESS`` or ``FAILED``; ``details`` is a JSON object.

    Table: audit_logs
    """

    __tablename__ = "audit_logs"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    admin_id: str = Field(max_length=64, index=True)
    admin_name: str = Field(max_length=64)

    type: AuditLogType = Field(index=True)
    level: AuditLogLevel = Field(default=AuditLogLevel.INFO, index=True)
    module: str = Field(max_length=64, index=True)
    action: str = Field(max_length=128)

    target_id: Optional[str] = Field(default=None, max_length=128, index=True)
    target_type: Optional[str] = Field(default=None, max_length=64)
    description: str = Field(max_length=500)
    details: Optional[str] = Field(default=None, sa_type=Text)

    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=500)
    result: str = Field(default="SUCCESS", max_length=16)
    error_message: Optional[str] = Field(default=None, sa_type=Text)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"AuditLog(id={self.id}, type={self.type}, module={self.module}, action={self.action})"
