"""
Configuration Module

Option models, defaults and environment fallbacks for buffered metrics.
"""

from buffered_metrics.config.settings import (
    API_KEY_ENV_VARS,
    DEFAULT_HISTOGRAM_AGGREGATES,
    DEFAULT_HISTOGRAM_PERCENTILES,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_SITE,
    SITE_ENV_VARS,
    HistogramOptions,
    LoggerOptions,
    describe_options,
    normalize_site,
    resolve_api_key,
    resolve_site,
)

__all__ = [
    "API_KEY_ENV_VARS",
    "DEFAULT_HISTOGRAM_AGGREGATES",
    "DEFAULT_HISTOGRAM_PERCENTILES",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_SITE",
    "SITE_ENV_VARS",
    "HistogramOptions",
    "LoggerOptions",
    "describe_options",
    "normalize_site",
    "resolve_api_key",
    "resolve_site",
]
