"""
Base database models and utilities.

This module provides the foundational database components used across
all entities in the database layer using SQLModel.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel

from backoffice.core.models.domain.periods import as_utc, utc_now

__all__ = ["Base", "UTCDateTime", "new_id", "utc_now"]


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamp column.

    Values are normalized to UTC before they are written, and backends that
    drop the offset (SQLite) get UTC attached again when rows are loaded.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


def new_id() -> str:
    """Generate a string primary key."""
    return uuid4().hex
