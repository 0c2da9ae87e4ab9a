"""
Audit log I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType


class AuditLogCreate(BaseModel):
    """A new audit trail entry."""

    admin_id: str
    admin_name: str
    type: AuditLogType
    level: AuditLogLevel = AuditLogLevel.INFO
    module: str
    action: str
    description: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    result: str = "SUCCESS"
    error_message: Optional[str] = None


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    admin_id: str
    admin_name: str
    type: AuditLogType
    level: AuditLogLevel
    module: str
    action: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    description: str
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    result: str
    error_message: Optional[str] = None
    created_at: datetime


class AuditStatistics(BaseModel):
    total: int
    failed: int
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_level: Dict[str, int] = Field(default_factory=dict)
    by_module: Dict[str, int] = Field(default_factory=dict)


class AdminContext(BaseModel):
    """Who performs an admin operation and from where.

    Authentication is handled outside this service, so the identity is
    taken as given by the caller.
    """

    admin_id: str = "system"
    admin_name: str = "system"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
