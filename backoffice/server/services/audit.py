"""
Audit trail service.

Other admin services call ``record`` inside their own transaction so that the
audit row commits (or rolls back) together with the change it describes.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.audit_logs import AuditLog
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType
from backoffice.core.models.io.audit_logs import AdminContext, AuditLogCreate, AuditLogRead, AuditStatistics
from backoffice.core.models.io.common import Page, Pagination
from backoffice.server.core.config import settings

logger = get_logger(__name__)

FAILED = "FAILED"


def admin_context_from_request(request: Request) -> AdminContext:
    """Build the admin identity from the ``X-Admin-Id`` and ``X-Admin-Name`` headers."""
    return AdminContext(
        admin_id=request.headers.get("X-Admin-Id") or "system",
        admin_name=request.headers.get("X-Admin-Name") or "system",
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


class AuditService:
    """Service for writing and querying the admin audit trail."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)

    @staticmethod
    def _entity(entry: AuditLogCreate) -> AuditLog:
        data = entry.model_dump(exclude={"details"})
        return AuditLog(**data, details=json.dumps(entry.details, default=str) if entry.details else None)

    async def record(
        self,
        admin: AdminContext,
        *,
        type: AuditLogType,
        module: str,
        action: str,
        description: str,
        level: AuditLogLevel = AuditLogLevel.INFO,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        result: str = "SUCCESS",
        error_message: Optional[str] = None,
    ) -> AuditLog:
        """Stage an audit row for ``admin`` in the current transaction."""
        entry = AuditLogCreate(
            admin_id=admin.admin_id,
            admin_name=admin.admin_name,
            type=type,
            level=level,
            module=module,
            action=action,
            description=description,
            target_id=target_id,
            target_type=target_type,
            details=details,
            ip_address=admin.ip_address,
            user_agent=admin.user_agent,
            result=result,
            error_message=error_message,
        )
        return await self.repos.audit_logs.stage(self._entity(entry))

    async def log_entry(self, admin: AdminContext, **fields: Any) -> AuditLog:
        """Like ``record`` but commits, for read-only operations that are still audited."""
        try:
            row = await self.record(admin, **fields)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return row

    async def log(self, entry: AuditLogCreate) -> AuditLogRead:
        """Write one audit row and commit."""
        try:
            row = await self.repos.audit_logs.stage(self._entity(entry))
            await self.session.commit()
            await self.session.refresh(row)
        except Exception:
            await self.session.rollback()
            raise
        logger.debug(f"Audit {entry.type.value} {entry.module}.{entry.action} by {entry.admin_id}")
        return AuditLogRead.model_validate(row)

    async def log_from_request(self, request: Request, **fields: Any) -> AuditLogRead:
        """Write an audit row whose identity, IP address and user agent come from ``request``."""
        admin = admin_context_from_request(request)
        entry = AuditLogCreate(
            admin_id=fields.pop("admin_id", admin.admin_id),
            admin_name=fields.pop("admin_name", admin.admin_name),
            ip_address=admin.ip_address,
            user_agent=admin.user_agent,
            **fields,
        )
        return await self.log(entry)

    async def query_logs(
        self,
        *,
        admin_id: Optional[str] = None,
        type: Optional[AuditLogType] = None,
        level: Optional[AuditLogLevel] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[AuditLogRead]:
        stmt = self.repos.audit_logs.list_stmt(
            admin_id=admin_id,
            type=type,
            level=level,
            module=module,
            action=action,
            target_id=target_id,
            target_type=target_type,
            start=start,
            end=end,
        )
        rows, total = await self.repos.audit_logs.paginate(stmt, page, per_page)
        return Page[AuditLogRead](
            items=[AuditLogRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def statistics(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> AuditStatistics:
        repo = self.repos.audit_logs
        return AuditStatistics(
            total=await repo.count_in_range(start, end),
            failed=await repo.count_in_range(start, end, result=FAILED),
            by_type=await repo.count_by(AuditLog.type, start, end),
            by_level=await repo.count_by(AuditLog.level, start, end),
            by_module=await repo.count_by(AuditLog.module, start, end),
        )

    async def cleanup_expired_logs(self, retention_days: Optional[int] = None) -> int:
        """Delete rows older than the retention window and return how many went."""
        days = retention_days if retention_days is not None else settings.audit.retention_days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        try:
            removed = await self.repos.audit_logs.delete_before(cutoff)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(f"Removed {removed} audit log rows older than {days} days")
        return removed
