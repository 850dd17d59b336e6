"""Buffered metrics logger: the public recording API.

Sending one HTTP request per data point would be wasteful, so points are
buffered in an Aggregator and sent as one batch per flush, either on demand or
periodically from a background asyncio task.
"""

import asyncio
import atexit
import inspect
import warnings
import weakref
from typing import Any, Callable, List, Mapping, Optional, Type, Union

from pydantic import ValidationError

from buffered_metrics.config.settings import HistogramOptions, LoggerOptions, describe_options
from buffered_metrics.logger import logger
from buffered_metrics.modules.aggregation.aggregator import Aggregator
from buffered_metrics.modules.aggregation.metric_types import Counter, Distribution, Gauge, Histogram, Metric
from buffered_metrics.modules.reporting.errors import ConfigurationError
from buffered_metrics.modules.reporting.reporters import ApiReporter

ErrorHandler = Callable[[BaseException], Any]


class BufferedMetricsLogger:
    """Records metrics locally and flushes them to the metrics API in batches.

    Recording calls are synchronous and cheap; only ``flush`` and ``stop``
    perform I/O. Flush failures never propagate: they go to the per-call
    ``on_error``, else the instance ``on_error``, else the package logger.

    Example:
        metrics = BufferedMetricsLogger(
            api_key="abc123",
            prefix="myapp.",
            default_tags=["env:prod"],
            flush_interval_seconds=15,
        )

        metrics.increment("requests", tags=["endpoint:/search"])
        metrics.gauge("queue.depth", 12)
        metrics.histogram("request.latency_ms", 45.2)

        await metrics.stop()  # final flush
    """

    def __init__(self, **options: Any):
        """Initialize logger.

        Args:
            **options: See LoggerOptions (api_key, site, host, prefix,
                default_tags, flush_interval_seconds, histogram, on_error,
                aggregator, reporter, retries, retry_backoff)

        Raises:
            ConfigurationError: Invalid option values or no API key available
        """
        try:
            self.options = LoggerOptions(**options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid metrics logger options: {e}") from e

        opts = self.options
        if opts.api_host:
            warnings.warn(
                "The `api_host` option is deprecated, use `site` instead.",
                DeprecationWarning,
                stacklevel=2,
            )

        self.aggregator = opts.aggregator if opts.aggregator is not None else Aggregator(opts.default_tags)
        self.reporter = opts.reporter if opts.reporter is not None else ApiReporter(
            api_key=opts.api_key,
            site=opts.site or opts.api_host,
            retries=opts.retries,
            retry_backoff=opts.retry_backoff,
        )
        self.host = opts.host
        self.prefix = opts.prefix
        self.histogram_options = opts.histogram
        self.on_error: Optional[ErrorHandler] = opts.on_error
        self.flush_interval_seconds = opts.flush_interval_seconds or 0

        self._flush_task: Optional[asyncio.Task] = None
        self._inflight_flush: Optional[asyncio.Future] = None
        self._exit_hook: Optional[Callable[[], None]] = None
        self._start_pending = False
        self._exit_hook_registered = False

        logger.debug(f"BufferedMetricsLogger options: {describe_options(opts)}")

        if self.flush_interval_seconds > 0:
            logger.debug(f"Auto-flushing every {self.flush_interval_seconds} seconds")
            self.start()
        else:
            logger.debug("Auto-flushing is disabled")

    # Recording

    def _add_point(
        self,
        metric_type: Type[Metric],
        key: str,
        value: float,
        tags: Optional[List[str]],
        timestamp_millis: Optional[float],
        options: Optional[HistogramOptions] = None,
    ) -> None:
        if self._start_pending:
            self.start()
        self.aggregator.add_point(
            metric_type, self.prefix + key, value, tags, self.host, timestamp_millis, options
        )

    def gauge(
        self,
        key: str,
        value: float,
        tags: Optional[List[str]] = None,
        timestamp_millis: Optional[float] = None,
    ) -> None:
        """Record the current value of a metric; the latest value per flush wins."""
        self._add_point(Gauge, key, value, tags, timestamp_millis)

    def increment(
        self,
        key: str,
        value: Optional[float] = None,
        tags: Optional[List[str]] = None,
        timestamp_millis: Optional[float] = None,
    ) -> None:
        """Add ``value`` (default 1) to a counter."""
        if value is None:
            value = 1
        self._add_point(Counter, key, value, tags, timestamp_millis)

    def histogram(
        self,
        key: str,
        value: float,
        tags: Optional[List[str]] = None,
        timestamp_millis: Optional[float] = None,
        options: Optional[Union[HistogramOptions, Mapping[str, Any]]] = None,
    ) -> None:
        """Sample a value into a client-side histogram.

        Args:
            key: Metric name (without prefix)
            value: Sampled value
            tags: Optional tags
            timestamp_millis: Unix time in milliseconds (default: now)
            options: Aggregates/percentiles, merged over the logger's defaults
        """
        merged = self.histogram_options.merged(options)
        self._add_point(Histogram, key, value, tags, timestamp_millis, merged)

    def distribution(
        self,
        key: str,
        value: float,
        tags: Optional[List[str]] = None,
        timestamp_millis: Optional[float] = None,
    ) -> None:
        """Record a value whose distribution is computed server-side."""
        self._add_point(Distribution, key, value, tags, timestamp_millis)

    # Flushing

    async def flush(self, on_error: Optional[ErrorHandler] = None) -> None:
        """Send everything buffered so far.

        Returns once the reporter confirms delivery, or immediately when
        nothing is buffered. Never raises on delivery failure.

        Args:
            on_error: Called with the error if delivery fails; overrides the
                instance ``on_error`` for this call. May be a coroutine function.
        """
        series = self.aggregator.flush()
        if not series:
            logger.debug("Nothing to flush")
            return

        logger.debug(f"Flushing {len(series)} series")
        try:
            await self.reporter.report(series)
        except Exception as error:
            await self._handle_flush_error(error, on_error)

    async def _handle_flush_error(self, error: Exception, on_error: Optional[ErrorHandler]) -> None:
        handler = on_error or self.on_error
        if handler is None:
            logger.error(f"Failed to flush metrics: {error!r}", exc_info=error)
            return

        try:
            result = handler(error)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Metrics flush error handler raised")

    # Auto-flush lifecycle

    def start(self) -> None:
        """Begin periodic flushing if a positive interval is configured.

        Needs a running event loop. Called outside one, the start is deferred
        to the next recording call made while a loop is running. Also
        registers a final flush at interpreter exit; the exit hook holds the
        logger weakly, so a discarded logger is not kept alive by it.
        """
        if self.flush_interval_seconds <= 0:
            return
        self._register_exit_hook()

        if self._flush_task is not None and not self._flush_task.done():
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if not self._start_pending:
                logger.debug("No running event loop, auto-flush will start with the next recorded point")
            self._start_pending = True
            return

        self._start_pending = False
        self._flush_task = loop.create_task(self._auto_flush())

    async def _auto_flush(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_seconds)
            # Cancelling this task must not abort a report already under way
            self._inflight_flush = asyncio.ensure_future(self.flush())
            await asyncio.shield(self._inflight_flush)

    def _register_exit_hook(self) -> None:
        if self._exit_hook_registered:
            return
        flush_at_exit = weakref.WeakMethod(self._flush_at_exit)

        def exit_hook() -> None:
            method = flush_at_exit()
            if method is not None:
                method()

        self._exit_hook = exit_hook
        atexit.register(exit_hook)
        self._exit_hook_registered = True

    def _unregister_exit_hook(self) -> None:
        if self._exit_hook_registered:
            atexit.unregister(self._exit_hook)
            self._exit_hook = None
            self._exit_hook_registered = False

    def _flush_at_exit(self) -> None:
        # The application's loop is gone by now; flush on a fresh one.
        logger.debug("Interpreter exiting, flushing metrics")
        try:
            asyncio.run(self.flush())
        except RuntimeError as e:
            logger.error(f"Final metrics flush failed: {e}")

    def cancel_auto_flush(self) -> None:
        """Stop periodic flushing and drop the exit hook without flushing.

        A periodic flush already sending data is left to finish.
        """
        self._start_pending = False
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None
        self._unregister_exit_hook()

    async def stop(self, flush: bool = True) -> None:
        """Stop auto-flushing.

        Waits for a periodic flush that is already sending data.

        Args:
            flush: Perform a final flush (default: True)
        """
        self.cancel_auto_flush()

        inflight, self._inflight_flush = self._inflight_flush, None
        if inflight is not None and not inflight.done():
            await inflight

        if flush:
            await self.flush()

    @property
    def auto_flush_running(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    async def __aenter__(self) -> "BufferedMetricsLogger":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
