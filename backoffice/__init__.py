"""Back office server.

This package implements the back office of an e-commerce platform that sells
through a multi-level seller network.

Core subpackages
----------------

- ``backoffice.core``:

  - Logging and monitoring setup shared by every module.
  - SQLModel entities and repositories for users, orders, inventory,
    commissions, points, system configs and audit logs.
  - Domain enums, period helpers and the team rules table (role ladder,
    promotion requirements, commission rates).

- ``backoffice.server``:

  - FastAPI application, settings and exception handlers.
  - Service layer: three-tier warehouse inventory (PLATFORM, CLOUD, LOCAL)
    with batches and alerts, the team performance and commission engine,
    and the admin services (users, finance, system configs, audit log).
  - Versioned API routers under ``/api/v1``.
"""
