"""Tests for provider error classification."""

import pytest

from vibe.error_classifier import ErrorClass, classify


class TestSkipToFallback:
    @pytest.mark.parametrize(
        "message",
        [
            "HTTP 429: Too Many Requests",
            "Rate limit reached for requests",
            "rate-limit exceeded",
            "You exceeded your current quota",
            "Unauthorized: OPENAI_API_KEY is not set",
            "HTTP 401: invalid api key",
            "HTTP 403: Forbidden",
        ],
    )
    def test_auth_and_quota_errors_skip(self, message):
        assert classify(message) is ErrorClass.SKIP_TO_FALLBACK

    def test_skip_wins_over_retry(self):
        """A 503 that also mentions a rate limit must skip, not retry."""
        assert classify("HTTP 503: overloaded, rate limit applied") is ErrorClass.SKIP_TO_FALLBACK

    def test_429_with_timeout_still_skips(self):
        assert classify("timeout waiting for slot (429)") is ErrorClass.SKIP_TO_FALLBACK


class TestRetryable:
    @pytest.mark.parametrize(
        "message",
        [
            "read ECONNRESET",
            "connect ETIMEDOUT 10.0.0.1:443",
            "HTTP 503: Service Unavailable",
            "HTTP 500: Internal Server Error",
            "HTTP 502: Bad Gateway",
            "The model is overloaded",
            "Network error: connection refused",
            "Request timeout after 120s",
        ],
    )
    def test_transient_errors_retry(self, message):
        assert classify(message) is ErrorClass.RETRYABLE


class TestFail:
    @pytest.mark.parametrize(
        "message",
        [
            "HTTP 400: Bad Request",
            "Invalid JSON response: Expecting value",
            "Unexpected response structure: 'choices'",
            "",
        ],
    )
    def test_unclassified_errors_fail(self, message):
        assert classify(message) is ErrorClass.FAIL

    def test_none_is_treated_as_empty(self):
        assert classify(None) is ErrorClass.FAIL
