"""structlog configuration shared by the CLI and the interactive session."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog

_log_stream: TextIO | None = None


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Path | str | None = None,
) -> None:
    """Configure structlog for the process.

    The output stream is bound here, once. Later swaps of ``sys.stdout`` or
    ``sys.stderr`` (an active output capture) do not redirect log records.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"``.
        json_output: Render records as JSON lines instead of key/value text.
        log_file: Append records to this file instead of stderr.
    """
    global _log_stream

    if _log_stream is not None and _log_stream not in (sys.stderr, sys.__stderr__):
        _log_stream.close()
        _log_stream = None

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        _log_stream = path.open("a", encoding="utf-8")
        stream: TextIO = _log_stream
    else:
        stream = sys.stderr

    renderer: structlog.typing.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_file is None and stream.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a logger bound to the given module name."""
    return structlog.get_logger(logger_name=name)
