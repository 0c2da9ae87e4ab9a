"""
Database repository layer using SQLModel.

This package contains all repository classes organized by business domain.
Each module provides data access operations for its corresponding SQLModel
entity models.

All repositories are built on SQLModel for:
- Type-safe ORM operations over async SQLAlchemy sessions
- Consistent CRUD interface via BaseRepository
- Query building utilities for filtering, date ranges and pagination

Modules:
- base: BaseRepository interface, SQLModelRepository and QueryBuilder
- users: Users and referral network queries
- orders: Sales aggregates over qualifying orders
- products: Product spec thresholds
- inventory: Stock, inventory log and alert queries
- commissions: Commission statements
- points: Points ledger
- team_actions: Team action records
- system_configs: Configuration entries and history
- audit_logs: Admin audit trail
- bundle: SqlRepoBundle for dependency injection
"""

from .bundle import SqlRepoBundle, build_sql_repos_from_session

__all__ = [
    "SqlRepoBundle",
    "build_sql_repos_from_session",
]
