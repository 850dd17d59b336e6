"""Reporters that deliver flushed series to the metrics API."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from buffered_metrics.config.settings import (
    API_KEY_ENV_VARS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    resolve_api_key,
    resolve_site,
)
from buffered_metrics.logger import logger
from buffered_metrics.modules.aggregation.series import MetricType, SerializedSeries
from buffered_metrics.modules.reporting.errors import (
    AuthorizationError,
    ConfigurationError,
    MetricsHttpError,
)
from buffered_metrics.modules.reporting.retry_policy import RetryPolicy

SERIES_PATH = "/api/v1/series"
DISTRIBUTION_POINTS_PATH = "/api/v1/distribution_points"
API_KEY_HEADER = "DD-API-KEY"


class Reporter(ABC):
    """Abstract base class for reporters."""

    @abstractmethod
    async def report(self, series: Sequence[SerializedSeries]) -> None:
        """Deliver a batch of series.

        Args:
            series: Series produced by an aggregator flush
        """
        pass


class NullReporter(Reporter):
    """Discards series instead of sending them. Useful for tests and for disabling metrics."""

    async def report(self, series: Sequence[SerializedSeries]) -> None:
        pass


class ApiReporter(Reporter):
    """Sends series to the metrics HTTP API with retries.

    Distribution series and all other series go to separate endpoints; both
    submissions run concurrently and ``report`` returns once both succeed.

    Example:
        reporter = ApiReporter(api_key="abc123", site="datadoghq.eu")
        await reporter.report(aggregator.flush())
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        site: Optional[str] = None,
        retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize API reporter.

        Args:
            api_key: API key (default: DATADOG_API_KEY or DD_API_KEY)
            site: Site such as "datadoghq.eu" (default: DATADOG_SITE, DD_SITE,
                DATADOG_API_HOST, then datadoghq.com); a leading "app." is stripped
            retries: Retries after the first attempt (default: 2)
            retry_backoff: Seconds before the first retry, doubled per retry (default: 2)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, e.g. for tests
            retry_policy: Full policy override; takes precedence over retries/retry_backoff
        """
        self._api_key = resolve_api_key(api_key)
        if not self._api_key:
            raise ConfigurationError(
                "API key not found. You must specify one via the `api_key` option "
                f"or the {API_KEY_ENV_VARS[0]} (or {API_KEY_ENV_VARS[1]}) environment variable."
            )

        self.site = resolve_site(site)
        self.base_url = f"https://api.{self.site}"
        self.timeout = timeout
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=DEFAULT_RETRIES if retries is None else retries,
            backoff_base=retry_backoff or DEFAULT_RETRY_BACKOFF_SECONDS,
        )

        self.request_count = 0
        self.retry_count = 0
        self.failure_count = 0

        logger.info(
            f"ApiReporter initialized: site={self.site}, "
            f"retries={self.retry_policy.max_retries}, backoff={self.retry_policy.backoff_base}s"
        )

    def _client(self) -> httpx.AsyncClient:
        # A client per report keeps the reporter usable from any event loop,
        # including the fresh one used for the final flush at interpreter exit.
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={API_KEY_HEADER: self._api_key},
            timeout=self.timeout,
            transport=self.transport,
        )

    async def report(self, series: Sequence[SerializedSeries]) -> None:
        """Send series to the API.

        Args:
            series: Series to send

        Raises:
            AuthorizationError: The API key was rejected (HTTP 403)
            MetricsHttpError: Any other non-success response, after retries
            httpx.HTTPError: Network failure, after retries
        """
        logger.debug(f"Reporting {len(series)} series")

        # Distributions are submitted through their own endpoint
        metrics: List[Dict[str, Any]] = []
        distributions: List[Dict[str, Any]] = []
        for s in series:
            if s.type == MetricType.DISTRIBUTION:
                distributions.append(s.to_payload())
            else:
                metrics.append(s.to_payload())

        async with self._client() as client:
            submissions = []
            if metrics:
                submissions.append(self._submit(client, SERIES_PATH, metrics))
            if distributions:
                submissions.append(self._submit(client, DISTRIBUTION_POINTS_PATH, distributions))
            if not submissions:
                return

            # Let both submissions settle before the client closes
            results = await asyncio.gather(*submissions, return_exceptions=True)

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            self.failure_count += 1
            raise errors[0]

        logger.debug("Sent metrics successfully")

    async def _submit(self, client: httpx.AsyncClient, path: str, payload: List[Dict[str, Any]]) -> None:
        """POST one batch, retrying transient failures per the retry policy.

        Args:
            client: Open HTTP client
            path: Endpoint path
            payload: JSON-ready series
        """
        attempt = 0
        while True:
            self.request_count += 1
            try:
                response = await client.post(path, json={"series": payload})
            except Exception as e:
                if not (self.retry_policy.is_retryable_error(e) and self.retry_policy.should_retry(attempt)):
                    raise
                delay = self.retry_policy.delay_for(attempt)
                logger.warning(f"Request to {path} failed ({e!r}), retrying in {delay:.2f}s")
            else:
                if response.is_success:
                    return

                status = response.status_code
                if status == AuthorizationError.status:
                    raise AuthorizationError() from MetricsHttpError.from_response(response)
                if not (self.retry_policy.is_retryable_status(status) and self.retry_policy.should_retry(attempt)):
                    raise MetricsHttpError.from_response(response)

                delay = self.retry_policy.delay_for(attempt, response.headers)
                logger.warning(f"Request to {path} returned HTTP {status}, retrying in {delay:.2f}s")

            self.retry_count += 1
            await asyncio.sleep(delay)
            attempt += 1

    def get_stats(self) -> Dict[str, Any]:
        """
        Get reporter statistics.

        Returns:
            Dictionary with request counters and retry settings
        """
        return {
            "site": self.site,
            "request_count": self.request_count,
            "retry_count": self.retry_count,
            "failure_count": self.failure_count,
            "retry_policy": self.retry_policy.get_stats(),
        }
