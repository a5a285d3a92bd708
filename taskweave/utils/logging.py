"""Structured logging configuration for taskweave.

Provides:
- structlog setup on top of the stdlib logging backend
- Workflow-scoped context (``LogContext``)
- Timed start/end events around orchestration operations
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Optional

import structlog

# Vendor loggers that are chatty at INFO (HTTP request lines, retries).
SDK_LOGGERS = ("httpx", "anthropic", "openai")


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structured logging for the orchestrator.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Output logs as JSON
        include_timestamp: Include timestamps in logs
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )
    sdk_level = numeric_level if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LogContext:
    """Bind fields to every log event emitted inside the block.

    Usage:
        with LogContext(workflow_id="wf_1a2b3c4d"):
            scheduler_log.info("Executing wave")  # carries workflow_id
    """

    def __init__(self, **context):
        self.context = context

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Log the start, end and duration of an operation.

    Yields a dict the caller can add result fields to; ``success``,
    ``error`` and ``duration_seconds`` are filled in on exit and logged with
    the completion event.

    Example:
        with log_operation("run_goal", goal=goal) as op:
            batch, aggregate = await orchestrator.run_goal(goal)
            op["results"] = len(batch.results)
    """
    log = (logger or structlog.get_logger()).bind(operation=operation, **context)

    log.info(f"{operation} started")
    result = {"success": False, "error": None}
    start = time.monotonic()

    try:
        yield result
    except Exception as e:
        result["error"] = str(e)
        result["duration_seconds"] = time.monotonic() - start
        log.error(f"{operation} failed", **result)
        raise

    result["success"] = True
    result["duration_seconds"] = time.monotonic() - start
    log.info(f"{operation} completed", **result)
