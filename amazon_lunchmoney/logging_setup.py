"""Centralized logging configuration for the ``amazon_lunchmoney`` package.

Library modules only call ``logging.getLogger(__name__)``; the CLI calls
:func:`configure_logging` once at startup to attach a single stderr handler
to the package logger.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "amazon_lunchmoney"
_FORMAT = "%(levelname)s %(name)s: %(message)s"


def parse_level(level: int | str | None) -> int:
    """Resolve a level from an int, a level name or number string, or ``LOG_LEVEL``."""
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv("LOG_LEVEL")
    if env_val:
        return parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Point the package logger at a single ``StreamHandler``.

    Calling it again replaces the handler, so the level can be changed by a
    later call (tests rely on this).
    """
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or _FORMAT))

    resolved = parse_level(level)
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False
    return logger
