"""Logging setup and debug-level helpers for ssrcon."""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_MAX_BYTES = 500 * 1024
_DEFAULT_BACKUP_COUNT = 2

DEBUG_NONE = 0
DEBUG_MINIMAL = 1
DEBUG_STANDARD = 2
DEBUG_DETAILED = 3

_debug_level = DEBUG_NONE


def coerce_debug_level(value: Union[int, str, None]) -> tuple[int, bool]:
    """Return (level, valid). Anything outside 0-3 maps to DEBUG_NONE."""
    try:
        level = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEBUG_NONE, False
    if DEBUG_NONE <= level <= DEBUG_DETAILED:
        return level, True
    return DEBUG_NONE, False


def get_debug_level() -> int:
    return _debug_level


def set_debug_level(level: int) -> None:
    global _debug_level
    _debug_level = level
    logging.getLogger("ssrcon").setLevel(logging.DEBUG if level > DEBUG_NONE else logging.INFO)


def configure_logging(
    debug_level: int = DEBUG_NONE,
    *,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    stream: Optional[TextIO] = None,
    max_bytes: int = _DEFAULT_MAX_BYTES,
    backup_count: int = _DEFAULT_BACKUP_COUNT,
) -> None:
    """Configure root logging with a console handler and an optional rotating file.

    Args:
        debug_level: 0 (none) to 3 (detailed). Any level above 0 enables DEBUG records.
        log_file: Optional path for a rotating file handler.
        console: Whether to emit logs to `stream`.
        stream: Console stream, defaults to the current sys.stdout so that
            prompt_toolkit's patch_stdout proxy is picked up.
    """
    numeric_level = logging.DEBUG if debug_level > DEBUG_NONE else logging.INFO
    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if console:
        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setLevel(numeric_level)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(logging.NullHandler())

    root.setLevel(numeric_level)
    set_debug_level(debug_level)


def debug(logger: logging.Logger, level: int, msg: str, *args) -> None:
    """Log at DEBUG only when the configured debug level reaches `level`."""
    if _debug_level >= level:
        logger.debug(msg, *args)


def hexdump(logger: logging.Logger, label: str, data: bytes) -> None:
    if _debug_level >= DEBUG_DETAILED:
        logger.debug("%s: %s", label, data.hex(" "))


__all__ = [
    "configure_logging",
    "coerce_debug_level",
    "debug",
    "get_debug_level",
    "hexdump",
    "set_debug_level",
    "DEBUG_NONE",
    "DEBUG_MINIMAL",
    "DEBUG_STANDARD",
    "DEBUG_DETAILED",
    "LOG_FORMAT",
]
