"""Logging bootstrap: colored console echo plus optional log file."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # cyan
    logging.INFO: "\033[32m",  # green
    logging.WARNING: "\033[33m",  # yellow
    logging.ERROR: "\033[31m",  # red
    logging.CRITICAL: "\033[1;31m",
}

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ColorFormatter(logging.Formatter):
    """Wrap each console line in the ANSI color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if color is None:
            return line
        return f"{color}{line}{_RESET}"


def configure_logging(*, debug: bool = False, log_file: Path | None = None, truncate: bool = False) -> None:
    """Apply console (and optionally file) handlers to the root logger.

    Args:
        debug: Lower the level to DEBUG.
        log_file: Append log lines to this file when given.
        truncate: Empty ``log_file`` before writing to it.
    """
    level = "DEBUG" if debug else "INFO"
    handlers: dict[str, dict[str, object]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "color",
            "level": level,
        },
    }
    if log_file is not None:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "level": level,
            "filename": str(log_file),
            "mode": "w" if truncate else "a",
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": _FORMAT, "datefmt": _DATEFMT},
                "color": {"()": ColorFormatter, "fmt": _FORMAT, "datefmt": _DATEFMT},
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


__all__ = ["ColorFormatter", "configure_logging"]
