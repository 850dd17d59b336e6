"""Aggregator that buffers accumulators keyed by metric name and tags.

Points for the same name and tag set (in any order) land on one accumulator.
Flushing emits every accumulator's series, prepends the default tags, and
replaces the buffer with an empty one in a single step.
"""

from typing import Any, Dict, List, Mapping, Optional, Type, Union

from buffered_metrics.config.settings import HistogramOptions
from buffered_metrics.modules.aggregation.metric_types import METRIC_CLASSES, Histogram, Metric
from buffered_metrics.modules.aggregation.series import SerializedSeries


class Aggregator:
    """In-memory buffer of metric accumulators.

    Not safe for concurrent use from several threads; callers recording from
    multiple threads must serialize access themselves.

    Example:
        aggregator = Aggregator(default_tags=["env:prod"])

        aggregator.add_point(Counter, "api.requests", 1, tags=["b:2", "a:1"])
        aggregator.add_point(Counter, "api.requests", 1, tags=["a:1", "b:2"])

        series = aggregator.flush()  # one count series with value 2
        aggregator.flush()           # []
    """

    def __init__(self, default_tags: Optional[List[str]] = None):
        """Initialize aggregator.

        Args:
            default_tags: Tags prepended to every emitted series
        """
        self.default_tags: List[str] = list(default_tags) if default_tags else []
        self.buffer: Dict[str, Metric] = {}

    @staticmethod
    def make_buffer_key(key: str, tags: Optional[List[str]] = None) -> str:
        """Build the lookup key; tag order is irrelevant and no tags share one key.

        Args:
            key: Metric name
            tags: Optional tags

        Returns:
            ``key#tag1.tag2`` with tags sorted, or ``key#`` without tags
        """
        return f"{key}#{'.'.join(sorted(tags or []))}"

    def add_point(
        self,
        metric_type: Type[Metric],
        key: str,
        value: float,
        tags: Optional[List[str]] = None,
        host: Optional[str] = None,
        timestamp_millis: Optional[float] = None,
        options: Optional[Union[HistogramOptions, Mapping[str, Any]]] = None,
    ) -> None:
        """Route a point to its accumulator, creating it on first use.

        Args:
            metric_type: Accumulator class (Gauge, Counter, Histogram, Distribution)
            key: Metric name
            value: Observed value
            tags: Optional tags
            host: Optional host name
            timestamp_millis: Unix time in milliseconds (default: now)
            options: Histogram options; ignored by other types
        """
        if metric_type not in METRIC_CLASSES:
            raise TypeError(f"Unsupported metric type: {metric_type!r}")

        buffer_key = self.make_buffer_key(key, tags)
        metric = self.buffer.get(buffer_key)
        if metric is None:
            if metric_type is Histogram:
                metric = Histogram(key, tags, host, options=options)
            else:
                metric = metric_type(key, tags, host)
            self.buffer[buffer_key] = metric

        metric.add_point(value, timestamp_millis)

    def flush(self) -> List[SerializedSeries]:
        """Emit all buffered series and start a fresh buffer.

        Returns:
            Series with default tags prepended; empty list when nothing was buffered
        """
        buffer, self.buffer = self.buffer, {}

        series: List[SerializedSeries] = []
        for metric in buffer.values():
            series.extend(metric.flush())

        if self.default_tags:
            series = [s.with_default_tags(self.default_tags) for s in series]

        return series

    def __len__(self) -> int:
        return len(self.buffer)
