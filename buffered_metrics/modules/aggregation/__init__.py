"""Metric accumulation module.

Buffers gauge, counter, histogram, and distribution points in memory and turns
them into serialized series on flush.

Components:
    - Gauge, Counter, Histogram, Distribution: per-metric accumulators
    - Aggregator: keyed buffer of accumulators
    - SerializedSeries: flushed series handed to reporters

Example:
    from buffered_metrics.modules.aggregation import Aggregator, Histogram

    aggregator = Aggregator(default_tags=["service:search"])
    aggregator.add_point(Histogram, "query.latency_ms", 45.2, tags=["stage:retrieval"])

    series = aggregator.flush()
"""

from .aggregator import Aggregator
from .metric_types import Counter, Distribution, Gauge, Histogram, Metric
from .series import MetricType, SerializedSeries

__all__ = [
    "Aggregator",
    "Counter",
    "Distribution",
    "Gauge",
    "Histogram",
    "Metric",
    "MetricType",
    "SerializedSeries",
]
