"""
Retry and backoff policy for metric submissions.

Decides which failures are worth another attempt and how long to wait before
it. Kept free of I/O so the numbers can be tested on their own.
"""

import errno
import socket
from typing import Any, Dict, Mapping, Optional

import httpx

from buffered_metrics.config.settings import DEFAULT_RETRIES, DEFAULT_RETRY_BACKOFF_SECONDS

RATE_LIMITED_STATUS = 429

# Connection refused/reset, broken pipe, timed out
RETRYABLE_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ECONNRESET, errno.EPIPE, errno.ETIMEDOUT})

# httpx wraps socket failures (including DNS lookups) in these
RETRYABLE_HTTPX_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)

# Header names are matched case-insensitively
DELAY_HEADERS = ("retry-after", "x-ratelimit-reset")


class RetryPolicy:
    """
    Exponential backoff with header-driven overrides.

    Attempt ``n`` (0-based retry index) waits ``backoff_base * backoff_multiplier ** n``
    seconds unless the response carried ``Retry-After`` or ``X-RateLimit-Reset``,
    in which case that many seconds are used instead.

    Example:
        policy = RetryPolicy(max_retries=2, backoff_base=1.0)
        policy.backoff_delay(0)                          # 1.0
        policy.backoff_delay(1)                          # 2.0
        policy.delay_for(0, {"Retry-After": "5"})        # 5.0
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_RETRIES,
        backoff_base: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        backoff_multiplier: float = 2.0,
    ):
        """
        Initialize retry policy.

        Args:
            max_retries: Retries after the first attempt (0 disables retrying)
            backoff_base: Delay in seconds before the first retry
            backoff_multiplier: Growth factor applied per retry
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if backoff_base < 0:
            raise ValueError(f"backoff_base must be >= 0, got {backoff_base}")

        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_multiplier = backoff_multiplier

    def should_retry(self, attempt: int) -> bool:
        """Whether retry number ``attempt`` (0-based) is still allowed."""
        return attempt < self.max_retries

    @staticmethod
    def is_retryable_status(status: int) -> bool:
        return status >= 500 or status == RATE_LIMITED_STATUS

    @staticmethod
    def is_retryable_error(error: BaseException) -> bool:
        """
        Whether a network-level failure is transient.

        Args:
            error: Exception raised while sending the request

        Returns:
            True for timeouts, refused/reset connections, broken pipes, and DNS failures
        """
        if isinstance(error, RETRYABLE_HTTPX_ERRORS):
            return True
        if isinstance(error, socket.gaierror):
            return True
        if isinstance(error, OSError):
            return error.errno in RETRYABLE_ERRNOS
        return False

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base * self.backoff_multiplier**attempt

    def delay_for(self, attempt: int, headers: Optional[Mapping[str, str]] = None) -> float:
        """
        Seconds to sleep before retry number ``attempt``.

        Args:
            attempt: 0-based retry index
            headers: Response headers, if a response was received

        Returns:
            Header-provided delay when present and numeric, else the exponential backoff
        """
        header_delay = self.header_delay(headers)
        if header_delay is not None:
            return header_delay
        return self.backoff_delay(attempt)

    @staticmethod
    def header_delay(headers: Optional[Mapping[str, str]]) -> Optional[float]:
        if not headers:
            return None
        lowered = {k.lower(): v for k, v in headers.items()}
        for name in DELAY_HEADERS:
            value = lowered.get(name)
            if value is None:
                continue
            try:
                return max(float(value), 0.0)
            except ValueError:
                # HTTP-date form of Retry-After is not supported
                continue
        return None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "backoff_base": self.backoff_base,
            "backoff_multiplier": self.backoff_multiplier,
        }
