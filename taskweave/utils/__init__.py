"""Utility helpers for taskweave."""

from .logging import LogContext, configure_logging, log_operation

__all__ = [
    "LogContext",
    "configure_logging",
    "log_operation",
]
