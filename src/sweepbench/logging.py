"""Logging setup for sweepbench.

Console records go to stderr, the same stream the in-place progress
indicator draws on.  The console handler therefore erases the
indicator's line before writing a record, so log lines and progress
never share a terminal row.  The indicator redraws itself on the next
progress event.

An optional file handler always records at DEBUG level, which includes
calibration details and the per-workload sweep plan.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Protocol

_LOGGER_NAME = "sweepbench"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


class StatusLine(Protocol):
    """Anything drawn in place on the console stream."""

    def clear(self) -> None: ...


class ConsoleHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler that clears the active status line before each record."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        super().__init__(stream)
        self.status_line: StatusLine | None = None

    def emit(self, record: logging.LogRecord) -> None:
        if self.status_line is not None:
            self.status_line.clear()
        super().emit(record)


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure and return the root sweepbench logger.

    Args:
        verbose: If True, set console log level to DEBUG.
        quiet: If True, set console log level to WARNING. Ignored if *verbose* is True.
        log_file: If provided, add a file handler at DEBUG level to this path.
        stream: Console stream; stderr when omitted.

    Returns:
        The configured root logger for sweepbench.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Reconfiguring replaces whatever a previous call installed.
    logger.handlers.clear()

    console = ConsoleHandler(stream)
    if verbose:
        console.setLevel(logging.DEBUG)
    elif quiet:
        console.setLevel(logging.WARNING)
    else:
        console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(fh)

    return logger


def set_status_line(line: StatusLine | None) -> None:
    """Register *line* to be cleared before every console record.

    Pass ``None`` to detach it.
    """
    for handler in logging.getLogger(_LOGGER_NAME).handlers:
        if isinstance(handler, ConsoleHandler):
            handler.status_line = line


def get_logger(name: str) -> logging.Logger:
    """Get a named child logger under the sweepbench namespace."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
