"""
Structured logging utilities.

Provides structlog configuration plus a context manager and a decorator for
structured operation logging with timing, error tracking, and metadata.
"""

from __future__ import annotations

import inspect
import logging
import sys
import time
from collections.abc import Callable  # noqa: TCH003
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any

import structlog

from codeguard.core.config.logging_config import LoggingConfig

logger = structlog.get_logger(__name__)


def configure_logging(logging_config: LoggingConfig | None = None) -> None:
    """
    Configure structlog processors and level.

    Output goes to stderr so that command output on stdout stays parseable.

    Args:
        logging_config: Logging settings; defaults to INFO console output.
    """
    logging_config = logging_config or LoggingConfig()
    level = logging.getLevelName(logging_config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: Any
    if logging_config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@asynccontextmanager
async def log_operation(
    operation: str,
    subject_ids: dict[str, str] | None = None,
    **context: Any,
) -> Any:  # AsyncGenerator[None, None]
    """
    Context manager for structured operation logging.

    Logs operation start, completion, and errors with timing information.

    Args:
        operation: Name of the operation being performed
        subject_ids: Dictionary of subject identifiers (e.g., {"request": "abc123"})
        **context: Additional context to include in logs

    Example:
        async with log_operation("evaluate_request", candidates=3):
            result = await engine.evaluate_request(...)
    """
    start_time = time.perf_counter()
    log_context = {
        "operation": operation,
        **(subject_ids or {}),
        **context,
    }

    logger.debug("operation_started", **log_context)

    try:
        yield
    except Exception as e:
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.error("operation_failed", error=str(e), latency_ms=latency_ms, exc_info=True, **log_context)
        raise
    else:
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug("operation_completed", latency_ms=latency_ms, **log_context)


def log_function_call(operation: str | None = None) -> Any:
    """
    Decorator for logging function calls with timing.

    Args:
        operation: Custom operation name (defaults to function name)

    Returns:
        Decorated function with logging

    Example:
        @log_function_call(operation="load_rules")
        def load(sources):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        op_name = operation or func.__name__

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            logger.debug("call_started", operation=op_name)

            try:
                result = await func(*args, **kwargs)
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                logger.debug("call_completed", operation=op_name, latency_ms=latency_ms)
                return result
            except Exception as e:
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                logger.error("call_failed", operation=op_name, latency_ms=latency_ms, error=str(e), exc_info=True)
                raise

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            logger.debug("call_started", operation=op_name)

            try:
                result = func(*args, **kwargs)
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                logger.debug("call_completed", operation=op_name, latency_ms=latency_ms)
                return result
            except Exception as e:
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                logger.error("call_failed", operation=op_name, latency_ms=latency_ms, error=str(e), exc_info=True)
                raise

        # Return appropriate wrapper based on whether function is async
        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
