"""
Logging configuration — one-time setup for the depsync CLI.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
what is configured here.

Levels are resolved in precedence order:
    --debug / --verbose / --quiet  >  DEPSYNC_LOG_LEVEL  >  WARNING

DEPSYNC_LOG_FILE attaches a file that records the full DEBUG trace.
This is the process log; build tool output goes to the separate
--log-path file.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "DEPSYNC_LOG_LEVEL"
LOG_FILE_ENV = "DEPSYNC_LOG_FILE"

_FMT_MINIMAL = "%(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_CONSOLE = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# asyncio logs subprocess transport chatter at DEBUG
_NOISY_LOGGERS = ("asyncio",)


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console log level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Configure Python logging for the whole process.

    The console shows records at ``level``. When ``log_file`` is given it
    receives the full DEBUG trace regardless of the console level.
    """
    numeric_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(numeric_level))
    root.setLevel(numeric_level)

    if log_file:
        root.addHandler(_file_handler(log_file))
        root.setLevel(logging.DEBUG)

    # asyncio chatter only matters when debugging depsync itself
    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _console_handler(numeric_level: int) -> logging.Handler:
    if numeric_level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_CONSOLE)
    elif numeric_level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_CONSOLE)
    else:
        formatter = logging.Formatter(_FMT_MINIMAL)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_FILE))
    return handler


def _parse_level(level: str | None) -> int:
    """Convert a level name to its numeric constant (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
