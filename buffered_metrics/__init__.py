"""Buffered metrics: client-side metric aggregation with batched delivery.

Record gauges, counters, histograms, and distributions locally; they are
aggregated in memory and sent to the metrics API in batches, with retries and
backoff on transient failures.

Example:
    import buffered_metrics

    buffered_metrics.init(api_key="abc123", prefix="myapp.", flush_interval_seconds=15)
    buffered_metrics.increment("requests")
    buffered_metrics.histogram("request.latency_ms", 45.2)

    await buffered_metrics.stop()

Use BufferedMetricsLogger directly for an explicitly owned instance.
"""

from buffered_metrics.modules import reporting as reporters
from buffered_metrics.modules.aggregation import (
    Aggregator,
    Counter,
    Distribution,
    Gauge,
    Histogram,
    SerializedSeries,
)
from buffered_metrics.modules.buffering import BufferedMetricsLogger
from buffered_metrics.modules.reporting import (
    ApiReporter,
    AuthorizationError,
    ConfigurationError,
    MetricsError,
    MetricsHttpError,
    NullReporter,
)
from buffered_metrics.shared import (
    distribution,
    flush,
    gauge,
    get_shared_logger,
    histogram,
    increment,
    init,
    stop,
)

__version__ = "0.1.0"

__all__ = [
    "Aggregator",
    "ApiReporter",
    "AuthorizationError",
    "BufferedMetricsLogger",
    "ConfigurationError",
    "Counter",
    "Distribution",
    "Gauge",
    "Histogram",
    "MetricsError",
    "MetricsHttpError",
    "NullReporter",
    "SerializedSeries",
    "distribution",
    "flush",
    "gauge",
    "get_shared_logger",
    "histogram",
    "increment",
    "init",
    "reporters",
    "stop",
]
