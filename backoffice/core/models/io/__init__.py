"""
I/O models for API requests and responses.

This package contains Pydantic-based I/O schemas that define the contract
between API endpoints and clients. These models are separate from database
entities to allow independent evolution of API contracts.

Modules:
- common: Pagination envelope and acknowledgements
- inventory: Stock operations, stock listings and inventory logs
- alerts: Inventory alerts and thresholds
- batches: Batch views and expiry checks
- performance: Performance engine metrics, leaderboards and forecasts
- team: Referral network, team views and commissions
- users: Admin user management and points ledger views
- finance: Withdrawal review, commission payout and points adjustment
- system_configs: Runtime configuration entries
- audit_logs: Admin audit trail
"""

from .common import CountResponse, MessageResponse, Page, Pagination

__all__ = [
    "CountResponse",
    "MessageResponse",
    "Page",
    "Pagination",
]
