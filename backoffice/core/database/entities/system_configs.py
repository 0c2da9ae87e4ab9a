"""
System configuration entity models.

This module contains the key/value configuration table and its change
history. Values are stored as strings and parsed by ``value_type`` on read.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import ConfigValueType

from ..base import Base, UTCDateTime, new_id, utc_now


class SystemConfig(Base, table=True):
    """A runtime configuration entry.

    Table: system_configs
    """

    __tablename__ = "system_configs"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    key: str = Field(max_length=128, unique=True, index=True)
    value: str = Field(sa_type=Text)
    value_type: ConfigValueType = Field(default=ConfigValueType.STRING)
    category: str = Field(default="general", max_length=64, index=True)
    description: Optional[str] = Field(default=None, max_length=500)
    last_modified_by: Optional[str] = Field(default=None, max_length=64)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"SystemConfig(key={self.key}, value_type={self.value_type}, category={self.category})"


class SystemConfigHistory(Base, table=True):
    """One change of a configuration value.

    Table: system_config_history
    """

    __tablename__ = "system_config_history"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    config_key: str = Field(max_length=128, index=True)
    old_value: Optional[str] = Field(default=None, sa_type=Text)
    new_value: Optional[str] = Field(default=None, sa_type=Text)
    reason: Optional[str] = Field(default=None, max_length=255)
    modified_by: Optional[str] = Field(default=None, max_length=64)
    modified_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"SystemConfigHistory(config_key={self.config_key}, modified_at={self.modified_at})"
