"""
Logging Configuration Module.

Console logging for every process, plus a DEBUG-level ``backoffice.log`` file
when file logging is enabled. The level comes from ``BACKOFFICE_LOG_LEVEL``
through the server settings; format and file options are plain environment
variables so they can be set before the settings load.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from backoffice.server.core.config import settings

LOG_LEVEL = settings.log_level.upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "detailed")
LOG_FILE_DIR = os.getenv("LOG_FILE_DIR", "logs")
ENABLE_FILE_LOGGING = os.getenv("ENABLE_FILE_LOGGING", "true").lower() in ("true", "1", "yes")

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

MODULE_LOG_LEVELS = {
    "backoffice.core": "INFO",
    "backoffice.server": "INFO",
    "backoffice.server.api": "DEBUG",
    "backoffice.server.services": "DEBUG",
    # Cache hits and misses are logged per request
    "backoffice.server.services.performance": "INFO",
    "sqlalchemy.engine": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
}

_FORMATS = {"simple": SIMPLE_FORMAT, "detailed": DETAILED_FORMAT, "json": JSON_FORMAT}


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = True,
) -> None:
    """
    Configure the root logger, replacing any handlers it already has.

    Args:
        log_level: Console level, defaults to ``BACKOFFICE_LOG_LEVEL``
        log_format: ``simple``, ``detailed`` or ``json``; anything else means ``detailed``
        enable_file: Also write ``backoffice.log`` when ``ENABLE_FILE_LOGGING`` allows it
    """
    level = (log_level or LOG_LEVEL).upper()
    fmt = log_format or LOG_FORMAT
    formatter = logging.Formatter(_FORMATS.get(fmt, DETAILED_FORMAT), datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Filtered per handler
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_logging = enable_file and ENABLE_FILE_LOGGING
    if file_logging:
        log_dir = Path(LOG_FILE_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "backoffice.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(f"Logging configured: level={level}, format={fmt}, file_logging={file_logging}")


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, usually ``get_logger(__name__)``."""
    return logging.getLogger(name)


setup_logging()
