"""
System Configuration Endpoints.

CRUD, batch updates, history and import/export of runtime configuration
entries.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Query, Response, status

from backoffice.core.models.io.common import MessageResponse, Page
from backoffice.core.models.io.system_configs import (
    ConfigBatchResult,
    ConfigBatchUpdate,
    ConfigCreate,
    ConfigHistoryRead,
    ConfigImportRequest,
    ConfigRead,
    ConfigUpdate,
)
from backoffice.server.services.deps import AdminDep, ConfigServiceDep

router = APIRouter(tags=["admin-configs"])

CONFIG_NOT_FOUND = {404: {"description": "Config not found"}}


@router.get(
    "/configs",
    response_model=Page[ConfigRead],
    summary="List Configs",
    description="Configuration entries filtered by category and keyword.",
    response_description="A page of configs with typed values.",
)
async def list_configs(
    service: ConfigServiceDep,
    category: Optional[str] = None,
    keyword: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[ConfigRead]:
    """List configs."""
    return await service.list_configs(category=category, keyword=keyword, page=page, per_page=per_page)


@router.post(
    "/configs",
    response_model=ConfigRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Config",
    description="Add a configuration entry.",
    response_description="The created config.",
    responses={409: {"description": "Key already exists"}},
)
async def create_config(data: ConfigCreate, service: ConfigServiceDep, admin: AdminDep) -> ConfigRead:
    """Create a config."""
    return await service.create_config(data, admin)


@router.get(
    "/configs/export",
    summary="Export Configs",
    description="Download configs, optionally of one category, as JSON or CSV.",
    response_description="File content.",
    responses={200: {"content": {"application/json": {}, "text/csv": {}}}},
)
async def export_configs(
    service: ConfigServiceDep,
    admin: AdminDep,
    category: Optional[str] = None,
    format: Literal["json", "csv"] = "json",
) -> Response:
    """Export configs as a file download."""
    content, media_type = await service.export_configs(admin, category, format)
    filename = f"configs_{datetime.now(timezone.utc):%Y%m%d%H%M%S}.{format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put(
    "/configs/batch",
    response_model=ConfigBatchResult,
    summary="Batch Update Configs",
    description="Update several keys at once. Unknown keys and invalid values are reported per item.",
    response_description="Successful and failed keys.",
)
async def batch_update(request: ConfigBatchUpdate, service: ConfigServiceDep, admin: AdminDep) -> ConfigBatchResult:
    """Update several configs."""
    return await service.batch_update(request.items, request.reason, admin)


@router.post(
    "/configs/import",
    response_model=ConfigBatchResult,
    summary="Import Configs",
    description="Create configs from a list; existing keys are replaced only with overwrite.",
    response_description="Imported and rejected keys.",
)
async def import_configs(
    request: ConfigImportRequest, service: ConfigServiceDep, admin: AdminDep
) -> ConfigBatchResult:
    """Import configs."""
    return await service.import_configs(request, admin)


@router.get(
    "/configs/{key}",
    response_model=ConfigRead,
    summary="Get Config",
    description="One configuration entry with its typed value.",
    response_description="The config.",
    responses=CONFIG_NOT_FOUND,
)
async def get_config(key: str, service: ConfigServiceDep) -> ConfigRead:
    """Get a config."""
    return await service.get_config(key)


@router.put(
    "/configs/{key}",
    response_model=ConfigRead,
    summary="Update Config",
    description="Change a config value. The previous value is kept in the history.",
    response_description="The updated config.",
    responses={**CONFIG_NOT_FOUND, 400: {"description": "Value does not match the config type"}},
)
async def update_config(key: str, data: ConfigUpdate, service: ConfigServiceDep, admin: AdminDep) -> ConfigRead:
    """Update a config."""
    return await service.update_config(key, data, admin)


@router.delete(
    "/configs/{key}",
    response_model=MessageResponse,
    summary="Delete Config",
    description="Remove a configuration entry.",
    response_description="Confirmation message.",
    responses=CONFIG_NOT_FOUND,
)
async def delete_config(key: str, service: ConfigServiceDep, admin: AdminDep) -> MessageResponse:
    """Delete a config."""
    await service.delete_config(key, admin)
    return MessageResponse(message=f"Config {key} deleted")


@router.get(
    "/configs/{key}/history",
    response_model=Page[ConfigHistoryRead],
    summary="Config History",
    description="Value changes of a config, newest first.",
    response_description="A page of history rows.",
)
async def config_history(
    key: str,
    service: ConfigServiceDep,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[ConfigHistoryRead]:
    """Get the change history of a config."""
    return await service.get_config_history(key, page, per_page)


@router.get(
    "/categories",
    response_model=List[str],
    summary="List Config Categories",
    description="Distinct categories in use.",
    response_description="Category names.",
)
async def categories(service: ConfigServiceDep) -> List[str]:
    """List config categories."""
    return await service.get_categories()
