"""
Audit Log Endpoints.

Query the admin audit trail, summarize it and purge rows past retention.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType
from backoffice.core.models.io.audit_logs import AuditLogRead, AuditStatistics
from backoffice.core.models.io.common import CountResponse, Page
from backoffice.server.services.deps import AuditServiceDep

router = APIRouter(tags=["audit-logs"])


@router.get(
    "",
    response_model=Page[AuditLogRead],
    summary="List Audit Logs",
    description="Audit entries filtered by admin, type, level, module, action, target and date.",
    response_description="A page of audit entries, newest first.",
)
async def list_audit_logs(
    service: AuditServiceDep,
    admin_id: Optional[str] = None,
    type: Optional[AuditLogType] = None,
    level: Optional[AuditLogLevel] = None,
    module: Optional[str] = None,
    action: Optional[str] = None,
    target_id: Optional[str] = None,
    target_type: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[AuditLogRead]:
    """List audit log entries."""
    return await service.query_logs(
        admin_id=admin_id,
        type=type,
        level=level,
        module=module,
        action=action,
        target_id=target_id,
        target_type=target_type,
        start=start,
        end=end,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/statistics",
    response_model=AuditStatistics,
    summary="Audit Statistics",
    description="Totals, failures and counts by type, level and module.",
    response_description="Audit statistics.",
)
async def audit_statistics(
    service: AuditServiceDep, start: Optional[datetime] = None, end: Optional[datetime] = None
) -> AuditStatistics:
    """Summarize the audit trail."""
    return await service.statistics(start, end)


@router.delete(
    "/expired",
    response_model=CountResponse,
    summary="Purge Expired Audit Logs",
    description="Delete entries older than the retention window (configured default when omitted).",
    response_description="Number of deleted entries.",
)
async def purge_expired(
    service: AuditServiceDep, retention_days: Optional[int] = Query(None, ge=1)
) -> CountResponse:
    """Delete expired audit entries."""
    removed = await service.cleanup_expired_logs(retention_days)
    return CountResponse(count=removed, message=f"removed {removed} audit log entries")
