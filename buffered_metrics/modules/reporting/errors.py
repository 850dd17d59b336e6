"""Error types raised by buffered metrics.

Network failures that happen before a response arrives are not wrapped: the
underlying httpx exception propagates as-is.
"""

from typing import Any, Optional

import httpx


class MetricsError(Exception):
    """Base class for errors from buffered metrics."""

    code = "METRICS_ERROR"


class ConfigurationError(MetricsError, ValueError):
    """Invalid construction options (negative flush interval, missing API key, ...)."""

    code = "METRICS_CONFIGURATION_ERROR"


class MetricsHttpError(MetricsError):
    """Non-success HTTP response from the metrics API.

    Attributes:
        response: The httpx response
        status: HTTP status code
        body: Decoded JSON body, or raw text if the body is not JSON
    """

    code = "METRICS_HTTP_ERROR"

    def __init__(self, message: str, response: httpx.Response, body: Optional[Any] = None):
        super().__init__(message)
        self.response = response
        self.status = response.status_code
        self.body = body

    @classmethod
    def from_response(cls, response: httpx.Response) -> "MetricsHttpError":
        try:
            body = response.json()
        except ValueError:
            body = response.text
        return cls(
            f"Metrics API responded with HTTP {response.status_code} "
            f"for {response.request.method} {response.request.url}",
            response=response,
            body=body,
        )


class AuthorizationError(MetricsError):
    """The API rejected the request as unauthorized (HTTP 403), usually a bad API key."""

    code = "METRICS_AUTHORIZATION_ERROR"
    status = 403

    DEFAULT_MESSAGE = (
        "Your API key is not authorized to send metrics. Check that the "
        "DATADOG_API_KEY or DD_API_KEY environment variable or the `api_key` "
        "option is set to a valid API key for your account, and that it is not "
        "an *application* key. For more, see: "
        "https://docs.datadoghq.com/account_management/api-app-keys/"
    )

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)
