"""
Buffered Metrics Settings

Option models for the buffered metrics logger and the API reporter, plus the
environment fallbacks used when credentials are not passed explicitly.

Usage:
    from buffered_metrics.config import LoggerOptions

    options = LoggerOptions(
        api_key="abc123",
        prefix="myapp.",
        flush_interval_seconds=15,
        histogram={"percentiles": [0.5, 0.99]},
    )
"""

import os
import re
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Histogram aggregate names
HistogramAggregate = Literal["max", "min", "sum", "avg", "count", "median"]

DEFAULT_HISTOGRAM_AGGREGATES: List[str] = ["max", "min", "sum", "avg", "count", "median"]
DEFAULT_HISTOGRAM_PERCENTILES: List[float] = [0.75, 0.85, 0.95, 0.99]

DEFAULT_SITE = "datadoghq.com"
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

# Checked in order when no explicit value is given
API_KEY_ENV_VARS = ("DATADOG_API_KEY", "DD_API_KEY")
SITE_ENV_VARS = ("DATADOG_SITE", "DD_SITE", "DATADOG_API_HOST")

_APP_PREFIX = re.compile(r"^app\.", re.IGNORECASE)


class HistogramOptions(BaseModel):
    """
    Which derived series a histogram emits on flush.

    Unset fields fall back to the library defaults (all aggregates and the
    75th/85th/95th/99th percentiles).
    """

    model_config = ConfigDict(extra="forbid")

    aggregates: Optional[List[HistogramAggregate]] = Field(
        default=None,
        description="Subset of max, min, sum, avg, count, median",
    )

    percentiles: Optional[List[float]] = Field(
        default=None,
        description="Percentiles as fractions in (0, 1], e.g. 0.99",
    )

    @field_validator("percentiles")
    @classmethod
    def _check_percentiles(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is None:
            return value
        for p in value:
            if not 0 < p <= 1:
                raise ValueError(f"percentile {p} must be a fraction in (0, 1]")
        return value

    def merged(
        self,
        overrides: Optional[Union["HistogramOptions", Mapping[str, Any]]] = None,
    ) -> "HistogramOptions":
        """Shallow-merge per-call options over these defaults (per-call wins).

        Args:
            overrides: Per-call options as a model or plain mapping

        Returns:
            New HistogramOptions
        """
        if not overrides:
            return self
        if isinstance(overrides, HistogramOptions):
            update = overrides.model_dump(exclude_unset=True)
        else:
            update = HistogramOptions(**overrides).model_dump(exclude_unset=True)
        return HistogramOptions(**{**self.model_dump(exclude_unset=True), **update})

    def resolved_aggregates(self) -> List[str]:
        return list(self.aggregates) if self.aggregates is not None else list(DEFAULT_HISTOGRAM_AGGREGATES)

    def resolved_percentiles(self) -> List[float]:
        return list(self.percentiles) if self.percentiles is not None else list(DEFAULT_HISTOGRAM_PERCENTILES)


class LoggerOptions(BaseModel):
    """
    Construction options for BufferedMetricsLogger.

    ``aggregator`` and ``reporter`` replace the default collaborators, which is
    mainly useful in tests. ``api_host`` is the deprecated spelling of ``site``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    api_key: Optional[str] = None
    site: Optional[str] = None
    api_host: Optional[str] = Field(default=None, description="Deprecated, use site")
    host: Optional[str] = None
    prefix: str = ""
    default_tags: List[str] = Field(default_factory=list)

    flush_interval_seconds: Optional[float] = Field(
        default=None,
        ge=0,
        description="Seconds between automatic flushes; 0 or unset disables auto-flush",
    )

    histogram: HistogramOptions = Field(default_factory=HistogramOptions)
    on_error: Optional[Callable[..., Any]] = None

    aggregator: Optional[Any] = None
    reporter: Optional[Any] = None

    retries: Optional[int] = Field(default=None, ge=0)
    retry_backoff: Optional[float] = Field(default=None, ge=0)

    @field_validator("prefix", mode="before")
    @classmethod
    def _none_prefix(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("default_tags", mode="before")
    @classmethod
    def _none_tags(cls, value: Any) -> Any:
        return [] if value is None else value


def resolve_api_key(api_key: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Return the explicit API key, or the first one found in the environment.

    Args:
        api_key: Explicitly configured key
        environ: Environment mapping (default: os.environ)

    Returns:
        API key or None when none is configured
    """
    if api_key:
        return api_key
    environ = os.environ if environ is None else environ
    for name in API_KEY_ENV_VARS:
        if environ.get(name):
            return environ[name]
    return None


def normalize_site(site: str) -> str:
    """Strip a leading ``app.`` copied from a browser URL (``app.datadoghq.eu``)."""
    return _APP_PREFIX.sub("", site)


def resolve_site(site: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Return the normalized site, falling back to the environment and then the default.

    Args:
        site: Explicitly configured site
        environ: Environment mapping (default: os.environ)

    Returns:
        Site host name, e.g. "datadoghq.eu"
    """
    environ = os.environ if environ is None else environ
    if not site:
        site = next((environ[name] for name in SITE_ENV_VARS if environ.get(name)), None)
    return normalize_site(site) if site else DEFAULT_SITE


def describe_options(options: LoggerOptions) -> Dict[str, Any]:
    """Loggable summary of options with the API key masked."""
    summary = options.model_dump(exclude={"aggregator", "reporter", "on_error"})
    if summary.get("api_key"):
        summary["api_key"] = "***"
    return summary
