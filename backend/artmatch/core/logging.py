"""Logging configuration."""

from __future__ import annotations

import linecache
import logging
import sys
import traceback
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.types import EventDict

# Exception info tuple as returned by sys.exc_info()
ExcInfo = tuple[type[BaseException] | None, BaseException | None, TracebackType | None]

TracebackFrame = dict[str, str | int | None]

ExceptionDetails = dict[
    str,
    None | str | list[TracebackFrame],
]

APP_LOG_FILE_NAME = "artmatch.json.log"


def _traceback_frames(exc_tb: TracebackType | None) -> list[TracebackFrame]:
    frames: list[TracebackFrame] = []
    while exc_tb is not None:
        code = exc_tb.tb_frame.f_code
        frame: TracebackFrame = {
            "filename": code.co_filename,
            "lineno": exc_tb.tb_lineno,
            "function": code.co_name,
        }
        source = linecache.getline(code.co_filename, exc_tb.tb_lineno)
        if source:
            frame["source_line"] = source.strip()
        frames.append(frame)
        exc_tb = exc_tb.tb_next
    return frames


def format_exception_for_json(
    exc_info: ExcInfo | None,
) -> ExceptionDetails:
    """Format exception information for JSON logging.

    Args:
        exc_info: Exception info tuple from sys.exc_info() or None

    Returns:
        Dictionary with exception details:
        - exception_type: Exception class name
        - exception_message: Exception message
        - exception_module: Module defining the exception class
        - exception_code: Stable error code, for errors that carry one
        - traceback_frames: One entry per frame, innermost last
        - traceback_text: Full traceback as text
    """
    if exc_info is None or exc_info == (None, None, None):
        return {}

    exc_type, exc_value, exc_tb = exc_info

    details: ExceptionDetails = {
        "exception_type": exc_type.__name__ if exc_type else None,
        "exception_message": str(exc_value) if exc_value else None,
        "exception_module": exc_type.__module__ if exc_type else None,
    }

    code = getattr(exc_value, "code", None)
    if isinstance(code, str):
        details["exception_code"] = code

    if exc_tb:
        details["traceback_frames"] = _traceback_frames(exc_tb)
        details["traceback_text"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

    return details


def exception_processor(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace exc_info with structured exception fields.

    Handles logger.exception() (exc_info=True), exc_info=<exception> and an
    exception object passed as the "exception" key.
    """
    exc_info = event_dict.pop("exc_info", None)
    if exc_info is True:
        exc_info = sys.exc_info()
    elif isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)

    if exc_info and exc_info != (None, None, None):
        details = format_exception_for_json(exc_info)  # type: ignore[arg-type]
        if details:
            event_dict["exception"] = details
            if details.get("exception_type") and details.get("exception_message"):
                event_dict["exception_summary"] = (
                    f"{details['exception_type']}: {details['exception_message']}"
                )

    exc = event_dict.get("exception")
    if isinstance(exc, BaseException):
        event_dict["exception"] = format_exception_for_json((type(exc), exc, exc.__traceback__))

    return event_dict


def _close_handlers(logger: logging.Logger) -> None:
    """Close a logger's handlers so reconfiguring does not leak file handles."""
    for handler in logger.handlers[:]:
        try:
            handler.close()
        except Exception:
            pass  # Ignore errors when closing handlers


def setup_logging(debug: bool = False, logs_dir: Path | None = None) -> None:
    """Setup structured logging with structlog.

    Logs go to stdout (pretty in debug, JSON otherwise), or to a JSON file
    in logs_dir when one is given.

    Args:
        debug: Enable debug logging
        logs_dir: Optional directory for the JSON log file
    """
    log_level = logging.DEBUG if debug else logging.INFO

    handler: logging.Handler | None = None
    log_file: Path | None = None
    if logs_dir:
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            log_file = logs_dir / APP_LOG_FILE_NAME
            handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            # Fall back to stdout rather than refusing to start
            sys.stderr.write(f"Warning: Failed to setup file logging: {e}\n")
            log_file = None

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    _close_handlers(logging.getLogger())
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[handler],
        force=True,
    )

    processors = [
        structlog.contextvars.merge_contextvars,  # trace_id and other bound context
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        exception_processor,
        structlog.processors.format_exc_info,
    ]

    # File logs are always JSON; console is pretty only in debug mode
    if log_file is not None or not debug:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*processors, renderer],  # type: ignore[list-item]
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog.get_logger("artmatch.logging").info(
        "Logging configured",
        level=logging.getLevelName(log_level),
        debug=debug,
        log_file=str(log_file) if log_file else None,
    )
