"""
Back office server package.

This package contains the web server for the back office.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Settings and constants.
    services: Business logic (inventory, performance, team, admin).
    middleware: Request tracing middleware.
    exception_handlers: Mapping of domain and unexpected errors to JSON responses.
"""
