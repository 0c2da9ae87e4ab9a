"""
Service Dependencies.

Builds request-scoped services on top of the database session for API
endpoints, plus the admin identity taken from request headers.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_session
from backoffice.core.models.io.audit_logs import AdminContext
from backoffice.server.services.alerts import AlertService
from backoffice.server.services.audit import AuditService, admin_context_from_request
from backoffice.server.services.batches import BatchService
from backoffice.server.services.finance import FinanceService
from backoffice.server.services.inventory import InventoryService
from backoffice.server.services.performance import PerformanceService
from backoffice.server.services.system_configs import SystemConfigService
from backoffice.server.services.team import TeamService
from backoffice.server.services.users import UserAdminService

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_admin_context(request: Request) -> AdminContext:
    return admin_context_from_request(request)


def get_inventory_service(session: SessionDep) -> InventoryService:
    return InventoryService(session)


def get_alert_service(session: SessionDep) -> AlertService:
    return AlertService(session)


def get_batch_service(session: SessionDep) -> BatchService:
    return BatchService(session)


def get_performance_service(session: SessionDep) -> PerformanceService:
    return PerformanceService(session)


def get_team_service(session: SessionDep) -> TeamService:
    return TeamService(session)


def get_user_admin_service(session: SessionDep) -> UserAdminService:
    return UserAdminService(session)


def get_finance_service(session: SessionDep) -> FinanceService:
    return FinanceService(session)


def get_config_service(session: SessionDep) -> SystemConfigService:
    return SystemConfigService(session)


def get_audit_service(session: SessionDep) -> AuditService:
    return AuditService(session)


AdminDep = Annotated[AdminContext, Depends(get_admin_context)]
InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
AlertServiceDep = Annotated[AlertService, Depends(get_alert_service)]
BatchServiceDep = Annotated[BatchService, Depends(get_batch_service)]
PerformanceServiceDep = Annotated[PerformanceService, Depends(get_performance_service)]
TeamServiceDep = Annotated[TeamService, Depends(get_team_service)]
UserAdminServiceDep = Annotated[UserAdminService, Depends(get_user_admin_service)]
FinanceServiceDep = Annotated[FinanceService, Depends(get_finance_service)]
ConfigServiceDep = Annotated[SystemConfigService, Depends(get_config_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
