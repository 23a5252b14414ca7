"""Logging helpers shared by all launcher modules.

The launcher sits transparently in front of another program, so all log
output goes to stderr and the default level is WARNING.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional

from constants import Constants

_configured = False


def _resolve_level(value: Optional[str]) -> int:
    name = (value or Constants.DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.getLevelName(Constants.DEFAULT_LOG_LEVEL)


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging once per process.

    Args:
        level: Level name; falls back to the JULIAUP_LOG env var, then WARNING.
        log_file: Optional path for an extra file handler; falls back to
            the JULIAUP_LOG_FILE env var.
    """
    global _configured  # pylint: disable=global-statement

    root = logging.getLogger()
    root.setLevel(_resolve_level(level or os.environ.get(Constants.ENV_LOG_LEVEL)))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)

    log_file = log_file or os.environ.get(Constants.ENV_LOG_FILE)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
        root.addHandler(file_handler)

    _configured = True


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}
