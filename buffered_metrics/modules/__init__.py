"""
Core modules of buffered metrics.

Provides:
- aggregation: Metric accumulators and the keyed aggregator
- reporting: Reporters with retry and backoff
- buffering: BufferedMetricsLogger, the public recording API
"""
