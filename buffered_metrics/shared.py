"""Process-wide shared logger for module-level convenience functions.

``buffered_metrics.gauge(...)`` and friends delegate to one lazily created
BufferedMetricsLogger. Call ``init`` first to configure it; otherwise it is
built on first use from environment defaults (API key from DATADOG_API_KEY or
DD_API_KEY). All global state for this convenience lives in this module.
"""

from typing import Any, List, Mapping, Optional

from buffered_metrics.logger import logger
from buffered_metrics.modules.buffering.buffered_logger import BufferedMetricsLogger, ErrorHandler

# Singleton instance
_shared_logger: Optional[BufferedMetricsLogger] = None


def init(**options: Any) -> BufferedMetricsLogger:
    """Configure the shared logger, replacing any previous one.

    The previous logger's auto-flush is cancelled; anything it still buffers
    is discarded unless it was flushed beforehand.

    Args:
        **options: BufferedMetricsLogger options

    Returns:
        The new shared logger
    """
    global _shared_logger
    if _shared_logger is not None:
        logger.debug("Replacing shared metrics logger")
        _shared_logger.cancel_auto_flush()
    _shared_logger = BufferedMetricsLogger(**options)
    return _shared_logger


def get_shared_logger() -> BufferedMetricsLogger:
    """Get or create the shared logger instance.

    Returns:
        BufferedMetricsLogger instance
    """
    global _shared_logger
    if _shared_logger is None:
        _shared_logger = BufferedMetricsLogger()
    return _shared_logger


def reset_shared_logger() -> None:
    """Drop the shared logger without flushing it."""
    global _shared_logger
    if _shared_logger is not None:
        _shared_logger.cancel_auto_flush()
    _shared_logger = None


def gauge(key: str, value: float, tags: Optional[List[str]] = None, timestamp_millis: Optional[float] = None) -> None:
    get_shared_logger().gauge(key, value, tags, timestamp_millis)


def increment(
    key: str,
    value: Optional[float] = None,
    tags: Optional[List[str]] = None,
    timestamp_millis: Optional[float] = None,
) -> None:
    get_shared_logger().increment(key, value, tags, timestamp_millis)


def histogram(
    key: str,
    value: float,
    tags: Optional[List[str]] = None,
    timestamp_millis: Optional[float] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> None:
    get_shared_logger().histogram(key, value, tags, timestamp_millis, options)


def distribution(
    key: str,
    value: float,
    tags: Optional[List[str]] = None,
    timestamp_millis: Optional[float] = None,
) -> None:
    get_shared_logger().distribution(key, value, tags, timestamp_millis)


async def flush(on_error: Optional[ErrorHandler] = None) -> None:
    await get_shared_logger().flush(on_error)


async def stop(flush: bool = True) -> None:
    await get_shared_logger().stop(flush=flush)
