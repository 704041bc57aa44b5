"""
Logging utilities for canvas-chat.

All modules log through children of the ``canvas_chat`` logger, so a single
call to :func:`setup_logging` controls graph and streaming output alike.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("canvas_chat")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Level to restore on enable()
_level_before_disable: int | None = None


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for canvas-chat.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from canvas_chat.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="canvas.log")
    """
    level = _coerce_level(level)
    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "graph.store", "streaming.session")

    Returns:
        Logger instance
    """
    if name.startswith("canvas_chat."):
        return logging.getLogger(name)
    return logging.getLogger(f"canvas_chat.{name}")


def set_level(level: str | int) -> None:
    """Set the log level for canvas-chat."""
    _root_logger.setLevel(_coerce_level(level))


def disable() -> None:
    """Disable all canvas-chat logging, child loggers included."""
    global _level_before_disable
    if _level_before_disable is None:
        _level_before_disable = _root_logger.level
    _root_logger.setLevel(logging.CRITICAL + 1)


def enable() -> None:
    """Re-enable canvas-chat logging."""
    global _level_before_disable
    if _level_before_disable is not None:
        _root_logger.setLevel(_level_before_disable)
        _level_before_disable = None
