"""Logging setup for imagegen-mcp.

Logs always go to stderr: when the server runs over the stdio transport,
stdout carries protocol frames and must stay clean.

Usage:
    from imagegen_mcp.logging import configure_logging, get_logger

    configure_logging("DEBUG")
    logger = get_logger("registry")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO, Union

ROOT_LOGGER = "imagegen_mcp"
LOG_LEVEL_ENV = "IMAGEGEN_MCP_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_ATTR = "_imagegen_mcp_handler"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the ``imagegen_mcp`` namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def _coerce_level(level: Union[str, int, None]) -> int:
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    level: Union[str, int, None] = None,
    *,
    stream: Optional[TextIO] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Attach a single stderr handler to the package logger.

    Args:
        level: Level name or number. Falls back to ``IMAGEGEN_MCP_LOG_LEVEL``,
            then ``INFO``.
        stream: Stream for the handler (default: ``sys.stderr``).
        fmt: Log record format.

    Returns:
        The configured package logger. Calling this again replaces the
        handler instead of stacking a second one.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_coerce_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


__all__ = ["configure_logging", "get_logger", "LOG_LEVEL_ENV", "ROOT_LOGGER"]
