"""Metric accumulators for gauges, counters, histograms, and distributions.

Each accumulator models one unique metric name and tag combination, keeps the
points recorded between flushes, and computes derived series (averages,
percentiles) when flushed. Accumulators are not reused across flushes: the
aggregator drops its whole buffer once the series have been emitted.
"""

import math
import time
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Tuple, Union

from buffered_metrics.config.settings import HistogramOptions
from buffered_metrics.modules.aggregation.series import MetricType, SerializedSeries


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


class Metric(ABC):
    """Base class for all accumulators.

    Attributes:
        key: Metric name
        tags: Tags as given at creation (order kept, not deduplicated)
        host: Host name, "" when unset
        timestamp: Unix seconds of the latest point, None before the first one
    """

    def __init__(self, key: str, tags: Optional[List[str]] = None, host: Optional[str] = None):
        self.key = key
        self.tags: List[str] = list(tags) if tags else []
        self.host: str = host or ""
        self.timestamp: Optional[int] = None

    @abstractmethod
    def add_point(self, value: float, timestamp_millis: Optional[float] = None) -> None:
        """Record one value.

        Args:
            value: Observed value
            timestamp_millis: Unix time in milliseconds (default: now)
        """

    @abstractmethod
    def flush(self) -> List[SerializedSeries]:
        """Emit the current state as serialized series without resetting it."""

    @staticmethod
    def posix_timestamp(timestamp_millis: Optional[float] = None) -> int:
        # 0 is a valid timestamp, only None means "now"
        if timestamp_millis is None:
            timestamp_millis = time.time() * 1000
        return round_half_up(timestamp_millis / 1000)

    def update_timestamp(self, timestamp_millis: Optional[float] = None) -> None:
        self.timestamp = self.posix_timestamp(timestamp_millis)

    def serialize(self, value: Any, metric_type: MetricType, key: Optional[str] = None) -> SerializedSeries:
        return SerializedSeries(
            metric=key or self.key,
            points=[[self.timestamp, value]],
            type=metric_type,
            host=self.host,
            tags=list(self.tags),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r}, tags={self.tags!r}, host={self.host!r})"


class Gauge(Metric):
    """Latest value wins within a flush window (disk usage, active users, queue depth)."""

    def __init__(self, key: str, tags: Optional[List[str]] = None, host: Optional[str] = None):
        super().__init__(key, tags, host)
        self.value: float = 0

    def add_point(self, value: float, timestamp_millis: Optional[float] = None) -> None:
        self.value = value
        self.update_timestamp(timestamp_millis)

    def flush(self) -> List[SerializedSeries]:
        return [self.serialize(self.value, MetricType.GAUGE)]


class Counter(Metric):
    """Running sum of increments (requests served, errors raised)."""

    def __init__(self, key: str, tags: Optional[List[str]] = None, host: Optional[str] = None):
        super().__init__(key, tags, host)
        self.value: float = 0

    def add_point(self, value: float, timestamp_millis: Optional[float] = None) -> None:
        self.value += value
        self.update_timestamp(timestamp_millis)

    def flush(self) -> List[SerializedSeries]:
        return [self.serialize(self.value, MetricType.COUNT)]


class Histogram(Metric):
    """Client-side summary of sampled values.

    Emits min, max, sum, count, avg, and median plus the configured
    percentiles as separate series named ``<key>.<aggregate>`` and
    ``<key>.<NN>percentile``. All raw samples are retained until the flush, so
    memory grows with the number of points recorded per flush interval; flush
    more often if that matters.

    Example:
        histogram = Histogram("request.latency_ms", options={"percentiles": [0.5, 0.99]})
        for latency in (12.0, 40.5, 33.1):
            histogram.add_point(latency)

        names = [series.metric for series in histogram.flush()]
        # ["request.latency_ms.min", ..., "request.latency_ms.99percentile"]
    """

    def __init__(
        self,
        key: str,
        tags: Optional[List[str]] = None,
        host: Optional[str] = None,
        options: Optional[Union[HistogramOptions, Mapping[str, Any]]] = None,
    ):
        """Initialize histogram.

        Args:
            key: Metric name
            tags: Optional tags
            host: Optional host name
            options: Aggregates and percentiles to emit (default: all / 75, 85, 95, 99)
        """
        super().__init__(key, tags, host)
        self.min = math.inf
        self.max = -math.inf
        self.sum: float = 0
        self.count = 0
        self.samples: List[float] = []

        options = HistogramOptions().merged(options)
        self.aggregates = options.resolved_aggregates()
        self.percentiles = options.resolved_percentiles()

    def add_point(self, value: float, timestamp_millis: Optional[float] = None) -> None:
        self.update_timestamp(timestamp_millis)

        self.min = min(value, self.min)
        self.max = max(value, self.max)
        self.sum += value
        self.count += 1
        self.samples.append(value)

    def flush(self) -> List[SerializedSeries]:
        series = []
        if "min" in self.aggregates:
            series.append(self.serialize(self.min, MetricType.GAUGE, f"{self.key}.min"))
        if "max" in self.aggregates:
            series.append(self.serialize(self.max, MetricType.GAUGE, f"{self.key}.max"))
        if "sum" in self.aggregates:
            series.append(self.serialize(self.sum, MetricType.GAUGE, f"{self.key}.sum"))
        if "count" in self.aggregates:
            series.append(self.serialize(self.count, MetricType.COUNT, f"{self.key}.count"))
        if "avg" in self.aggregates:
            series.append(self.serialize(self.average(), MetricType.GAUGE, f"{self.key}.avg"))

        sorted_samples = sorted(self.samples)

        if "median" in self.aggregates:
            series.append(self.serialize(self.median(sorted_samples), MetricType.GAUGE, f"{self.key}.median"))

        for p in self.percentiles:
            suffix = f".{int(math.floor(p * 100))}percentile"
            series.append(
                self.serialize(self.percentile(sorted_samples, p), MetricType.GAUGE, self.key + suffix)
            )
        return series

    def average(self) -> float:
        if self.count == 0:
            return 0
        return self.sum / self.count

    @staticmethod
    def median(sorted_samples: List[float]) -> float:
        """Middle sample, or the mean of the two middle samples for even counts."""
        n = len(sorted_samples)
        if n == 0:
            return 0
        if n % 2 == 1:
            return sorted_samples[(n - 1) // 2]
        return (sorted_samples[n // 2 - 1] + sorted_samples[n // 2]) / 2

    @staticmethod
    def percentile(sorted_samples: List[float], p: float) -> float:
        """Nearest-rank percentile.

        Args:
            sorted_samples: Samples in ascending numeric order
            p: Percentile as a fraction in (0, 1]

        Returns:
            Sample at index ``round(p * n) - 1``, or 0 with no samples
        """
        if not sorted_samples:
            return 0
        index = round_half_up(p * len(sorted_samples)) - 1
        return sorted_samples[max(index, 0)]


class Distribution(Metric):
    """Raw values grouped per second; statistics are computed server-side.

    Useful where many short-lived instances report the same metric, since
    every point reaches the backend instead of one summary per instance.
    """

    def __init__(self, key: str, tags: Optional[List[str]] = None, host: Optional[str] = None):
        super().__init__(key, tags, host)
        self.points: List[Tuple[int, List[float]]] = []

    def add_point(self, value: float, timestamp_millis: Optional[float] = None) -> None:
        last_timestamp = self.timestamp
        self.update_timestamp(timestamp_millis)
        if self.points and last_timestamp == self.timestamp:
            self.points[-1][1].append(value)
        else:
            self.points.append((self.timestamp, [value]))

    def flush(self) -> List[SerializedSeries]:
        return [
            SerializedSeries(
                metric=self.key,
                points=[[timestamp, list(values)] for timestamp, values in self.points],
                type=MetricType.DISTRIBUTION,
                host=self.host,
                tags=list(self.tags),
            )
        ]


# The closed set of accumulator kinds the aggregator will build
METRIC_CLASSES = (Gauge, Counter, Histogram, Distribution)
