"""Logging set-up for the server command: console output, a log file, or both."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

__all__ = ["init_logging"]

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def init_logging(
    log_level: str, log_file: str | None = None, enable_stdout: bool = True
) -> list[logging.Handler]:
    """Configure the root logger and return the handlers that were installed.

    The caller owns the returned handlers and should close them on shutdown
    so that buffered output is flushed.
    """
    try:
        level = _LEVELS[log_level.lower()]
    except KeyError:
        raise ValueError(f"invalid log level: {log_level}") from None

    if not enable_stdout and log_file is None:
        return []

    handlers: list[logging.Handler] = []
    if enable_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file is not None:
        path = Path(log_file)
        if not path.name:
            raise ValueError("log file name is empty")
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return handlers