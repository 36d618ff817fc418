"""Shared utility helpers for the Microsoft Graph CLI."""

from .logging import LoggingOptions, configure_logging, get_logger, log_file_path
from .sanitize import redact_secrets, sanitize_log_message

__all__ = [
    "LoggingOptions",
    "configure_logging",
    "get_logger",
    "log_file_path",
    "redact_secrets",
    "sanitize_log_message",
]
