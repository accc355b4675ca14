"""
Logging utility functions and decorators.

Timing helpers for WKT parsing and CRS construction. Every timed run is
logged at the requested level; runs slower than a warning threshold are
raised to WARNING so slow definitions stand out in production logs.
"""

import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_duration(
    operation: str,
    duration_ms: float,
    log_level: int,
    warn_threshold_ms: Optional[float],
    failed: bool,
) -> None:
    """Log one timed run, escalating slow runs to WARNING."""
    extra = {"duration_ms": duration_ms, "operation": operation, "failed": failed}

    if failed:
        logger.log(log_level, f"{operation} failed after {duration_ms:.2f}ms", extra=extra)
    elif warn_threshold_ms is not None and duration_ms >= warn_threshold_ms:
        logger.warning(
            f"{operation} completed in {duration_ms:.2f}ms "
            f"(slower than {warn_threshold_ms:g}ms)",
            extra=extra,
        )
    else:
        logger.log(log_level, f"{operation} completed in {duration_ms:.2f}ms", extra=extra)


def log_performance(
    log_level: int = logging.DEBUG,
    warn_threshold_ms: Optional[float] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log function execution time.

    Args:
        log_level: Logging level for normal runs and failures
        warn_threshold_ms: Runs at least this slow are logged as warnings

    Returns:
        Decorated function with performance logging

    Example:
        @log_performance(warn_threshold_ms=100)
        def parse(text):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        operation = func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start_time = time.perf_counter()
            failed = True
            try:
                result = func(*args, **kwargs)
                failed = False
                return result
            finally:
                _log_duration(
                    operation,
                    (time.perf_counter() - start_time) * 1000,
                    log_level,
                    warn_threshold_ms,
                    failed,
                )

        return wrapper

    return decorator


class PerformanceTimer:
    """
    Context manager for timing code blocks.

    Usage:
        with PerformanceTimer("Build EPSG:3857", warn_threshold_ms=250) as timer:
            handle = provider.create_projection(tokens)
        print(timer.duration_ms)
    """

    def __init__(
        self,
        operation_name: str,
        log_level: int = logging.DEBUG,
        warn_threshold_ms: Optional[float] = None,
    ):
        """
        Initialize PerformanceTimer.

        Args:
            operation_name: Name of the operation being timed
            log_level: Logging level for normal runs and failures
            warn_threshold_ms: Runs at least this slow are logged as warnings
        """
        self.operation_name = operation_name
        self.log_level = log_level
        self.warn_threshold_ms = warn_threshold_ms
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self) -> "PerformanceTimer":
        """Start the timer."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Stop the timer and log the result."""
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        _log_duration(
            self.operation_name,
            self.duration_ms,
            self.log_level,
            self.warn_threshold_ms,
            exc_type is not None,
        )
