"""Tests for RetryPolicy."""

import errno
import socket

import httpx
import pytest

from buffered_metrics.modules.reporting.retry_policy import RetryPolicy


class TestBackoff:
    """Tests for delay computation."""

    def test_exponential_backoff(self):
        policy = RetryPolicy(backoff_base=1.5)
        assert policy.backoff_delay(0) == 1.5
        assert policy.backoff_delay(1) == 3.0
        assert policy.backoff_delay(2) == 6.0

    def test_retry_after_overrides_backoff(self):
        policy = RetryPolicy(backoff_base=10)
        assert policy.delay_for(0, {"Retry-After": "1"}) == 1.0

    def test_rate_limit_reset_overrides_backoff(self):
        policy = RetryPolicy(backoff_base=10)
        assert policy.delay_for(1, httpx.Headers({"X-RateLimit-Reset": "3"})) == 3.0

    def test_unparseable_header_falls_back(self):
        policy = RetryPolicy(backoff_base=1)
        assert policy.delay_for(1, {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}) == 2.0

    def test_no_headers_uses_backoff(self):
        policy = RetryPolicy(backoff_base=1)
        assert policy.delay_for(2) == 4.0

    def test_rejects_negative_settings(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(backoff_base=-1)


class TestClassification:
    """Tests for retryable failure detection."""

    def test_should_retry_counts_attempts(self):
        policy = RetryPolicy(max_retries=2)
        assert policy.should_retry(0)
        assert policy.should_retry(1)
        assert not policy.should_retry(2)

    def test_zero_retries(self):
        assert not RetryPolicy(max_retries=0).should_retry(0)

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 429])
    def test_retryable_statuses(self, status):
        assert RetryPolicy.is_retryable_status(status)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 413])
    def test_terminal_statuses(self, status):
        assert not RetryPolicy.is_retryable_status(status)

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("timeout"),
            httpx.ReadError("reset"),
            httpx.WriteError("broken pipe"),
            ConnectionRefusedError(errno.ECONNREFUSED, "refused"),
            ConnectionResetError(errno.ECONNRESET, "reset"),
            BrokenPipeError(errno.EPIPE, "pipe"),
            socket.gaierror(socket.EAI_NONAME, "not found"),
        ],
    )
    def test_retryable_errors(self, error):
        assert RetryPolicy.is_retryable_error(error)

    @pytest.mark.parametrize(
        "error",
        [ValueError("bad"), KeyError("x"), OSError(errno.EACCES, "denied"), httpx.UnsupportedProtocol("ftp")],
    )
    def test_terminal_errors(self, error):
        assert not RetryPolicy.is_retryable_error(error)
