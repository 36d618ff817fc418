from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

import structlog
from loguru import logger as loguru_logger
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger
from structlog.typing import EventDict, WrappedLogger

from msgraph_cli.config.settings import log_dir
from msgraph_cli.utils.sanitize import redact_secrets, sanitize_log_message


CONSOLE_FORMAT = "<level>{level: <8}</level> | {message} | {extra}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message} | {extra}"
DEFAULT_LOG_FILENAME = "msgraph-cli.log"


@dataclass(slots=True)
class LoggingOptions:
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    verbose: bool = False
    rotation: str = "5 MB"
    retention: str = "7 days"
    log_to_file: bool = True
    log_path: Optional[Path] = None


_configured_log_path: Optional[Path] = None
_is_configured = False


def configure_logging(options: LoggingOptions | None = None) -> Path | None:
    """Route structlog events into loguru sinks.

    The console sink writes to stderr so command output on stdout stays
    machine-readable; ``verbose`` lowers it to DEBUG.
    """
    global _configured_log_path, _is_configured

    opts = options or LoggingOptions()
    console_level = "DEBUG" if opts.verbose else opts.level

    loguru_logger.remove()
    loguru_logger.add(
        sys.stderr,
        level=console_level,
        colorize=sys.stderr.isatty(),
        backtrace=opts.verbose,
        diagnose=False,
        format=CONSOLE_FORMAT,
    )

    log_path: Path | None = None
    if opts.log_to_file:
        log_path = opts.log_path or (log_dir() / DEFAULT_LOG_FILENAME)
        loguru_logger.add(
            log_path,
            level="DEBUG",
            rotation=opts.rotation,
            retention=opts.retention,
            encoding="utf-8",
            diagnose=False,
            format=FILE_FORMAT,
        )

    # The file sink records everything, so only filter early without it.
    if opts.log_to_file:
        numeric_level = logging.DEBUG
    else:
        numeric_level = getattr(logging, console_level, logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _scrub_event,
            _log_to_loguru,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )

    _configured_log_path = log_path
    _is_configured = True
    return log_path


def _scrub_event(
    _: WrappedLogger,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = redact_secrets(sanitize_log_message(value))
    return event_dict


def _log_to_loguru(
    _: WrappedLogger,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    level = str(event_dict.pop("level", "INFO")).upper()
    event = event_dict.pop("event", "")
    timestamp = event_dict.pop("timestamp", None)
    exception = event_dict.pop("exception", None)
    event_dict.pop("stack", None)
    bind_logger = loguru_logger.bind(**event_dict)
    if timestamp:
        bind_logger = bind_logger.bind(timestamp=timestamp)
    if exception:
        bind_logger = bind_logger.bind(exception=exception)
    bind_logger.opt(depth=6).log(level, event)
    raise DropEvent


def get_logger(*initial_values: object, **initial_kw: object) -> BoundLogger:
    log = structlog.get_logger(*initial_values, **initial_kw)
    if not _is_configured:
        configure_logging(LoggingOptions(log_to_file=False))
    return cast(BoundLogger, log)


def log_file_path() -> Path | None:
    return _configured_log_path


__all__ = ["LoggingOptions", "configure_logging", "get_logger", "log_file_path"]
