"""
System configuration I/O models.

Values travel as native JSON (number, boolean, object, array or string) and
are serialized to strings for storage.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backoffice.core.models.domain.enums import ConfigValueType


class ConfigRead(BaseModel):
    key: str
    value: Any = Field(description="Value parsed according to value_type")
    value_type: ConfigValueType
    category: str
    description: Optional[str] = None
    last_modified_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ConfigCreate(BaseModel):
    key: str = Field(min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_.\-]+$")
    value: Any
    value_type: ConfigValueType = ConfigValueType.STRING
    category: str = Field(default="general", max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)


class ConfigUpdate(BaseModel):
    value: Any
    description: Optional[str] = Field(default=None, max_length=500)
    reason: Optional[str] = Field(default=None, max_length=255)


class ConfigBatchItem(BaseModel):
    key: str
    value: Any


class ConfigBatchUpdate(BaseModel):
    items: List[ConfigBatchItem] = Field(min_length=1)
    reason: Optional[str] = Field(default=None, max_length=255)


class ConfigBatchResult(BaseModel):
    """Per-key outcome of a batch update or an import."""

    success: List[Dict[str, Any]] = Field(default_factory=list)
    failure: List[Dict[str, Any]] = Field(default_factory=list)


class ConfigHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    config_key: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    reason: Optional[str] = None
    modified_by: Optional[str] = None
    modified_at: datetime


class ConfigImportItem(BaseModel):
    key: str = Field(min_length=1, max_length=128)
    value: Any
    value_type: ConfigValueType = Field(default=ConfigValueType.STRING, alias="type")
    category: str = "general"
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ConfigImportRequest(BaseModel):
    configs: List[ConfigImportItem] = Field(min_length=1)
    overwrite: bool = False
