"""
System configuration service.

Values are stored as strings and converted by ``value_type``. Every change
writes a ``SystemConfigHistory`` row and an audit entry in the same
transaction.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, List, Literal, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.system_configs import SystemConfig, SystemConfigHistory
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import ConflictError, NotFoundError, ValidationFailedError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import AuditLogType, ConfigValueType
from backoffice.core.models.io.audit_logs import AdminContext
from backoffice.core.models.io.common import Page, Pagination
from backoffice.core.models.io.system_configs import (
    ConfigBatchItem,
    ConfigBatchResult,
    ConfigCreate,
    ConfigHistoryRead,
    ConfigImportRequest,
    ConfigRead,
    ConfigUpdate,
)
from backoffice.server.services.audit import AuditService

logger = get_logger(__name__)

MODULE = "system_config"
CSV_HEADER = ("key", "value", "description", "category", "type", "updated_at")


def parse_config_value(raw: str, value_type: ConfigValueType) -> Any:
    """Convert a stored string to its typed value; unparsable values come back raw."""
    try:
        if value_type in (ConfigValueType.JSON, ConfigValueType.ARRAY):
            return json.loads(raw)
        if value_type == ConfigValueType.NUMBER:
            return float(raw)
        if value_type == ConfigValueType.BOOLEAN:
            return raw == "true"
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not parse config value {raw!r} as {value_type.value}: {e}")
    return raw


def serialize_config_value(value: Any, value_type: ConfigValueType) -> str:
    """Convert a typed value to its stored string.

    Raises:
        ValidationFailedError: ``value`` does not fit ``value_type``
    """
    if value_type == ConfigValueType.ARRAY:
        if not isinstance(value, list):
            raise ValidationFailedError("ARRAY config values must be lists")
        return json.dumps(value, ensure_ascii=False)
    if value_type == ConfigValueType.JSON:
        return json.dumps(value, ensure_ascii=False)
    if value_type == ConfigValueType.NUMBER:
        if isinstance(value, bool):
            raise ValidationFailedError("NUMBER config values must be numeric")
        try:
            float(value)
        except (TypeError, ValueError):
            raise ValidationFailedError(f"{value!r} is not a number")
        return str(value)
    if value_type == ConfigValueType.BOOLEAN:
        if isinstance(value, str):
            return "true" if value.lower() == "true" else "false"
        return "true" if value else "false"
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)


def to_config_read(config: SystemConfig) -> ConfigRead:
    return ConfigRead(
        key=config.key,
        value=parse_config_value(config.value, ConfigValueType(config.value_type)),
        value_type=config.value_type,
        category=config.category,
        description=config.description,
        last_modified_by=config.last_modified_by,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


class SystemConfigService:
    """Service for runtime configuration entries."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.audit = AuditService(session, self.repos)

    async def _require(self, key: str) -> SystemConfig:
        config = await self.repos.configs.get_by_key(key)
        if config is None:
            raise NotFoundError(f"Config {key} not found")
        return config

    async def _change_value(
        self, config: SystemConfig, new_value: str, admin: AdminContext, reason: Optional[str]
    ) -> None:
        """Stage a value change and its history row."""
        history = SystemConfigHistory(
            config_key=config.key,
            old_value=config.value,
            new_value=new_value,
            reason=reason,
            modified_by=admin.admin_id,
        )
        config.value = new_value
        config.last_modified_by = admin.admin_id
        await self.repos.configs.stage(config)
        await self.repos.config_history.stage(history)

    async def list_configs(
        self,
        *,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[ConfigRead]:
        stmt = self.repos.configs.list_stmt(category=category, keyword=keyword)
        rows, total = await self.repos.configs.paginate(stmt, page, per_page)
        return Page[ConfigRead](
            items=[to_config_read(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_config(self, key: str) -> ConfigRead:
        return to_config_read(await self._require(key))

    async def get_categories(self) -> List[str]:
        return await self.repos.configs.categories()

    async def create_config(self, data: ConfigCreate, admin: AdminContext) -> ConfigRead:
        if await self.repos.configs.get_by_key(data.key) is not None:
            raise ConflictError(f"Config {data.key} already exists")
        config = SystemConfig(
            key=data.key,
            value=serialize_config_value(data.value, data.value_type),
            value_type=data.value_type,
            category=data.category,
            description=data.description,
            last_modified_by=admin.admin_id,
        )
        try:
            await self.repos.configs.stage(config)
            await self.repos.config_history.stage(
                SystemConfigHistory(
                    config_key=config.key, new_value=config.value, reason="created", modified_by=admin.admin_id
                )
            )
            await self.audit.record(
                admin,
                type=AuditLogType.SYSTEM_CONFIG,
                module=MODULE,
                action="create_config",
                description=f"Created config {config.key}",
                target_id=config.key,
                target_type="config",
                details={"value": config.value, "category": config.category},
            )
            await self.session.commit()
            await self.session.refresh(config)
        except Exception:
            await self.session.rollback()
            raise
        logger.info(f"Config {config.key} created by {admin.admin_id}")
        return to_config_read(config)

    async def update_config(self, key: str, data: ConfigUpdate, admin: AdminContext) -> ConfigRead:
        config = await self._require(key)
        old_value = config.value
        new_value = serialize_config_value(data.value, ConfigValueType(config.value_type))
        try:
            await self._change_value(config, new_value, admin, data.reason)
            if data.description is not None:
                config.description = data.description
            await self.audit.record(
                admin,
                type=AuditLogType.SYSTEM_CONFIG,
                module=MODULE,
                action="update_config",
                description=f"Updated config {key}",
                target_id=key,
                target_type="config",
                details={"old_value": old_value, "new_value": new_value, "reason": data.reason},
            )
            await self.session.commit()
            await self.session.refresh(config)
        except Exception:
            await self.session.rollback()
            raise
        logger.info(f"Config {key} updated by {admin.admin_id}")
        return to_config_read(config)

    async def delete_config(self, key: str, admin: AdminContext) -> None:
        config = await self._require(key)
        try:
            await self.repos.configs.remove(config)
            await self.audit.record(
                admin,
                type=AuditLogType.SYSTEM_CONFIG,
                module=MODULE,
                action="delete_config",
                description=f"Deleted config {key}",
                target_id=key,
                target_type="config",
                details={"value": config.value},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(f"Config {key} deleted by {admin.admin_id}")

    async def batch_update(
        self, items: List[ConfigBatchItem], reason: Optional[str], admin: AdminContext
    ) -> ConfigBatchResult:
        """Update several keys in one transaction; unknown keys and bad values are reported per item."""
        result = ConfigBatchResult()
        try:
            for item in items:
                config = await self.repos.configs.get_by_key(item.key)
                if config is None:
                    result.failure.append({"key": item.key, "error": "config not found"})
                    continue
                try:
                    new_value = serialize_config_value(item.value, ConfigValueType(config.value_type))
                except ValidationFailedError as e:
                    result.failure.append({"key": item.key, "error": e.message})
                    continue
                await self._change_value(config, new_value, admin, reason)
                result.success.append({"key": item.key, "new_value": parse_config_value(new_value, config.value_type)})

            await self.audit.record(
                admin,
                type=AuditLogType.SYSTEM_CONFIG,
                module=MODULE,
                action="batch_update",
                description=f"Batch updated {len(result.success)} configs",
                details={"success": [entry["key"] for entry in result.success], "failure": result.failure},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result

    async def get_config_history(self, key: str, page: int = 1, per_page: int = 20) -> Page[ConfigHistoryRead]:
        stmt = self.repos.config_history.for_key_stmt(key)
        rows, total = await self.repos.config_history.paginate(stmt, page, per_page)
        return Page[ConfigHistoryRead](
            items=[ConfigHistoryRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def export_configs(
        self, admin: AdminContext, category: Optional[str] = None, format: Literal["json", "csv"] = "json"
    ) -> Tuple[str, str]:
        """Render the configs and return ``(content, media type)``."""
        configs = await self.repos.configs.all(category)
        if format == "csv":
            buffer = io.StringIO()
            writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
            writer.writerow(CSV_HEADER)
            for config in configs:
                writer.writerow(
                    [
                        config.key,
                        config.value,
                        config.description or "",
                        config.category,
                        ConfigValueType(config.value_type).value,
                        config.updated_at.isoformat(),
                    ]
                )
            content, media_type = buffer.getvalue(), "text/csv"
        else:
            content = json.dumps(
                [
                    {
                        "key": config.key,
                        "value": parse_config_value(config.value, ConfigValueType(config.value_type)),
                        "type": ConfigValueType(config.value_type).value,
                        "category": config.category,
                        "description": config.description,
                        "updated_at": config.updated_at.isoformat(),
                    }
                    for config in configs
                ],
                ensure_ascii=False,
            )
            media_type = "application/json"

        await self.audit.log_entry(
            admin,
            type=AuditLogType.EXPORT,
            module=MODULE,
            action="export_configs",
            description=f"Exported {len(configs)} configs as {format}",
            details={"category": category, "format": format, "count": len(configs)},
        )
        return content, media_type

    async def import_configs(self, request: ConfigImportRequest, admin: AdminContext) -> ConfigBatchResult:
        """Create or (with ``overwrite``) replace configs; existing keys are failures otherwise."""
        result = ConfigBatchResult()
        try:
            for item in request.configs:
                try:
                    value = serialize_config_value(item.value, item.value_type)
                except ValidationFailedError as e:
                    result.failure.append({"key": item.key, "error": e.message})
                    continue

                existing = await self.repos.configs.get_by_key(item.key)
                if existing is not None and not request.overwrite:
                    result.failure.append({"key": item.key, "error": "config already exists"})
                    continue
                if existing is not None:
                    existing.value_type = item.value_type
                    existing.category = item.category
                    existing.description = item.description
                    await self._change_value(existing, value, admin, "import")
                else:
                    await self.repos.configs.stage(
                        SystemConfig(
                            key=item.key,
                            value=value,
                            value_type=item.value_type,
                            category=item.category,
                            description=item.description,
                            last_modified_by=admin.admin_id,
                        )
                    )
                    await self.repos.config_history.stage(
                        SystemConfigHistory(
                            config_key=item.key, new_value=value, reason="import", modified_by=admin.admin_id
                        )
                    )
                result.success.append({"key": item.key, "new_value": item.value})

            await self.audit.record(
                admin,
                type=AuditLogType.DATA_IMPORT,
                module=MODULE,
                action="import_configs",
                description=f"Imported {len(result.success)} configs",
                details={"overwrite": request.overwrite, "failure": result.failure},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(f"{admin.admin_id} imported {len(result.success)} configs, {len(result.failure)} failed")
        return result
