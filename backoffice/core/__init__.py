"""
Core utilities for the back office.

This package provides logging configuration, monitoring hooks, the domain
error hierarchy, the in-process TTL cache and the database layer.
"""

from backoffice.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
