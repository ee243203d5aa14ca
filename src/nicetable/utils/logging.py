"""
Logger helpers shared by the nicetable modules.

Modules obtain their logger with ``get_logger(__name__)`` and never install
handlers themselves; the package ``__init__`` attaches a NullHandler so an
unconfigured host application sees nothing.

Hosts that want grid diagnostics on stderr (the demo app, a notebook) call
``configure_logging()`` once. The level can also come from the
``NICETABLE_LOG_LEVEL`` environment variable:

    NICETABLE_LOG_LEVEL=DEBUG python -m nicetable.data_grid.demo_data_grid_app
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "nicetable"

DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d:%(funcName)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV_VAR = "NICETABLE_LOG_LEVEL"


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    """Numeric level from an explicit value, the env var, or INFO."""
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def _stderr_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr:
            return handler
    return None


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Send nicetable records to stderr. The root logger is left alone.

    Parameters
    ----------
    level:
        "DEBUG", "INFO", ... or a numeric level. When omitted, read from
        NICETABLE_LOG_LEVEL (falling back to INFO).
    fmt, datefmt:
        Formatter overrides; DEFAULT_FMT and DEFAULT_DATEFMT otherwise.
    force:
        Drop every handler on the package logger first. Without it, a second
        call only updates the level of the existing stderr handler.
    """
    resolved = _resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(resolved)

    if force:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
    else:
        existing = _stderr_handler(logger)
        if existing is not None:
            existing.setLevel(resolved)
            return

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FMT, datefmt=datefmt or DEFAULT_DATEFMT))
    logger.addHandler(console)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name``; the package logger when ``name`` is None."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)
