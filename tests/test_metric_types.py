"""
Tests for metric accumulators.

Tests gauge/counter semantics, histogram statistics, distribution bucketing,
and timestamp handling.
"""

import math
import time

import pytest

from buffered_metrics.modules.aggregation.metric_types import (
    Counter,
    Distribution,
    Gauge,
    Histogram,
    Metric,
    round_half_up,
)


def by_name(series):
    return {s.metric: s for s in series}


# =============================================================================
# Timestamps
# =============================================================================


class TestTimestamps:
    """Tests for millisecond to second conversion."""

    def test_rounds_to_nearest_second(self):
        assert Metric.posix_timestamp(1234567890) == 1234568
        assert Metric.posix_timestamp(1499) == 1
        assert Metric.posix_timestamp(1500) == 2

    def test_zero_is_a_real_timestamp(self):
        assert Metric.posix_timestamp(0) == 0

    def test_defaults_to_now(self):
        now = time.time()
        assert abs(Metric.posix_timestamp() - now) <= 1

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4) == 2


# =============================================================================
# Gauge / Counter
# =============================================================================


class TestGauge:
    """Tests for Gauge."""

    def test_last_write_wins(self):
        gauge = Gauge("test.gauge")
        gauge.add_point(1, 1000)
        gauge.add_point(2, 2000)

        [series] = gauge.flush()
        assert series.metric == "test.gauge"
        assert series.type == "gauge"
        assert series.points == [[2, 2]]

    def test_serializes_tags_and_host(self):
        gauge = Gauge("test.gauge", ["a:1", "a:1"], "myhost")
        gauge.add_point(5, 0)

        [series] = gauge.flush()
        assert series.tags == ["a:1", "a:1"]
        assert series.host == "myhost"
        assert series.points == [[0, 5]]

    def test_missing_host_is_empty_string(self):
        gauge = Gauge("test.gauge")
        gauge.add_point(1)
        assert gauge.flush()[0].host == ""


class TestCounter:
    """Tests for Counter."""

    def test_sums_points(self):
        counter = Counter("test.counter")
        counter.add_point(2, 1000)
        counter.add_point(3, 1000)

        [series] = counter.flush()
        assert series.type == "count"
        assert series.points == [[1, 5]]

    def test_flush_does_not_mutate(self):
        counter = Counter("test.counter")
        counter.add_point(4, 1000)
        counter.flush()
        assert counter.value == 4


# =============================================================================
# Histogram
# =============================================================================


class TestHistogram:
    """Tests for Histogram."""

    def test_emits_all_aggregates_and_percentiles_by_default(self):
        histogram = Histogram("test.histogram")
        histogram.add_point(23, 1000)

        names = [s.metric for s in histogram.flush()]
        assert names == [
            "test.histogram.min",
            "test.histogram.max",
            "test.histogram.sum",
            "test.histogram.count",
            "test.histogram.avg",
            "test.histogram.median",
            "test.histogram.75percentile",
            "test.histogram.85percentile",
            "test.histogram.95percentile",
            "test.histogram.99percentile",
        ]

    def test_count_is_count_type_others_gauge(self):
        histogram = Histogram("h")
        histogram.add_point(1, 1000)

        for series in histogram.flush():
            expected = "count" if series.metric == "h.count" else "gauge"
            assert series.type == expected

    def test_percentiles_of_one_to_hundred(self):
        histogram = Histogram("h")
        for value in range(100, 0, -1):
            histogram.add_point(value, 1000)

        series = by_name(histogram.flush())
        assert series["h.75percentile"].points[0][1] == 75
        assert series["h.85percentile"].points[0][1] == 85
        assert series["h.95percentile"].points[0][1] == 95
        assert series["h.99percentile"].points[0][1] == 99
        assert series["h.min"].points[0][1] == 1
        assert series["h.max"].points[0][1] == 100
        assert series["h.sum"].points[0][1] == 5050
        assert series["h.count"].points[0][1] == 100
        assert series["h.avg"].points[0][1] == 50.5
        assert series["h.median"].points[0][1] == 50.5

    def test_sorts_numerically(self):
        histogram = Histogram("h", options={"percentiles": [1]})
        for value in (9, 100, 10):
            histogram.add_point(value, 1000)

        series = by_name(histogram.flush())
        assert series["h.median"].points[0][1] == 10
        assert series["h.100percentile"].points[0][1] == 100

    def test_odd_median(self):
        histogram = Histogram("h")
        for value in (5, 1, 3):
            histogram.add_point(value, 1000)
        assert by_name(histogram.flush())["h.median"].points[0][1] == 3

    def test_empty_histogram_has_defined_defaults(self):
        histogram = Histogram("h")
        histogram.timestamp = 1

        series = by_name(histogram.flush())
        assert series["h.min"].points[0][1] == math.inf
        assert series["h.max"].points[0][1] == -math.inf
        assert series["h.avg"].points[0][1] == 0
        assert series["h.median"].points[0][1] == 0
        assert series["h.sum"].points[0][1] == 0
        assert series["h.count"].points[0][1] == 0
        assert series["h.75percentile"].points[0][1] == 0

    def test_custom_aggregates_and_percentiles(self):
        histogram = Histogram("h", options={"aggregates": ["sum"], "percentiles": [0.5]})
        histogram.add_point(23, 1000)

        names = [s.metric for s in histogram.flush()]
        assert names == ["h.sum", "h.50percentile"]

    def test_empty_aggregate_list_emits_only_percentiles(self):
        histogram = Histogram("h", options={"aggregates": []})
        histogram.add_point(1, 1000)
        assert all(s.metric.endswith("percentile") for s in histogram.flush())

    def test_rejects_out_of_range_percentile(self):
        with pytest.raises(ValueError):
            Histogram("h", options={"percentiles": [1.5]})

    def test_small_percentile_clamps_to_first_sample(self):
        histogram = Histogram("h", options={"percentiles": [0.01]})
        for value in (3, 1, 2):
            histogram.add_point(value, 1000)
        assert by_name(histogram.flush())["h.1percentile"].points[0][1] == 1


# =============================================================================
# Distribution
# =============================================================================


class TestDistribution:
    """Tests for Distribution."""

    def test_same_second_shares_a_bucket(self):
        distribution = Distribution("d")
        distribution.add_point(1, 1000)
        distribution.add_point(2, 1400)

        [series] = distribution.flush()
        assert series.type == "distribution"
        assert series.points == [[1, [1, 2]]]

    def test_new_second_starts_a_bucket(self):
        distribution = Distribution("d")
        distribution.add_point(1, 1000)
        distribution.add_point(2, 1600)
        distribution.add_point(3, 5000)

        [series] = distribution.flush()
        assert series.points == [[1, [1]], [2, [2]], [5, [3]]]

    def test_flush_copies_points(self):
        distribution = Distribution("d")
        distribution.add_point(1, 1000)
        [series] = distribution.flush()

        distribution.add_point(2, 1000)
        assert series.points == [[1, [1]]]
