"""Reporting module.

Delivers flushed series to the metrics API and classifies failures.

Components:
    - ApiReporter: httpx-based reporter with retries and backoff
    - NullReporter: discards series, for tests or disabled metrics
    - RetryPolicy: which failures to retry and how long to wait
    - errors: MetricsError hierarchy
"""

from .errors import AuthorizationError, ConfigurationError, MetricsError, MetricsHttpError
from .reporters import ApiReporter, NullReporter, Reporter
from .retry_policy import RetryPolicy

__all__ = [
    "ApiReporter",
    "AuthorizationError",
    "ConfigurationError",
    "MetricsError",
    "MetricsHttpError",
    "NullReporter",
    "Reporter",
    "RetryPolicy",
]
