"""Tests for upstream error classification."""

import asyncio

import anthropic
import httpx
import openai
import pytest

from kernelbot.errors import (
    AdmissionDenied,
    UpstreamAuthFailure,
    UpstreamOversizedInput,
    UpstreamRateLimited,
    UpstreamRequestFailed,
    UpstreamTimeout,
    UpstreamUnavailable,
    classify_upstream_error,
)

REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat/completions")


def status_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=REQUEST)


class TestClassification:
    """Test mapping of SDK and transport errors onto the taxonomy."""

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (asyncio.TimeoutError(), UpstreamTimeout),
            (httpx.ReadTimeout("slow", request=REQUEST), UpstreamTimeout),
            (openai.APITimeoutError(request=REQUEST), UpstreamTimeout),
            (httpx.ConnectError("refused", request=REQUEST), UpstreamUnavailable),
            (openai.APIConnectionError(request=REQUEST), UpstreamUnavailable),
        ],
    )
    def test_transport_errors(self, exc, expected):
        """Test timeouts and connection failures."""
        assert isinstance(classify_upstream_error(exc), expected)

    @pytest.mark.parametrize(
        "status, expected",
        [
            (429, UpstreamRateLimited),
            (401, UpstreamAuthFailure),
            (403, UpstreamAuthFailure),
            (413, UpstreamOversizedInput),
            (500, UpstreamUnavailable),
            (503, UpstreamUnavailable),
            (404, UpstreamRequestFailed),
        ],
    )
    def test_http_status_errors(self, status, expected):
        """Test httpx status errors map by status code."""
        exc = httpx.HTTPStatusError("error", request=REQUEST, response=status_response(status))
        error = classify_upstream_error(exc)

        assert isinstance(error, expected)
        assert error.status_code == status

    def test_openai_rate_limit(self):
        """Test the OpenAI SDK rate-limit error."""
        exc = openai.RateLimitError("Rate limit reached", response=status_response(429), body=None)
        assert isinstance(classify_upstream_error(exc), UpstreamRateLimited)

    def test_openai_auth(self):
        """Test the OpenAI SDK authentication error."""
        exc = openai.AuthenticationError("Invalid API Key", response=status_response(401), body=None)
        assert isinstance(classify_upstream_error(exc), UpstreamAuthFailure)

    def test_context_length_bad_request(self):
        """Test a 400 about context length is oversized input."""
        exc = openai.BadRequestError(
            "This model's maximum context length is 8192 tokens",
            response=status_response(400),
            body=None,
        )
        assert isinstance(classify_upstream_error(exc), UpstreamOversizedInput)

    def test_other_bad_request(self):
        """Test other 400s are permanent failures."""
        exc = openai.BadRequestError("invalid model", response=status_response(400), body=None)
        error = classify_upstream_error(exc)

        assert isinstance(error, UpstreamRequestFailed)
        assert error.retryable is False

    def test_anthropic_overloaded(self):
        """Test the Anthropic SDK server error."""
        exc = anthropic.InternalServerError("Overloaded", response=status_response(529), body=None)
        assert isinstance(classify_upstream_error(exc), UpstreamUnavailable)

    def test_status_code_attribute(self):
        """Test errors exposing a ``code`` attribute, as Google's do."""
        exc = Exception("quota exceeded")
        exc.code = 429
        assert isinstance(classify_upstream_error(exc), UpstreamRateLimited)

    def test_unknown_error(self):
        """Test unknown errors are permanent."""
        error = classify_upstream_error(ValueError("unexpected"))

        assert isinstance(error, UpstreamRequestFailed)
        assert "ValueError" in error.detail

    def test_already_classified(self):
        """Test classified errors pass through."""
        error = UpstreamTimeout("late")
        assert classify_upstream_error(error) is error


class TestRetryability:
    """Test which failures are retried."""

    @pytest.mark.parametrize(
        "error_class, retryable",
        [
            (UpstreamRateLimited, True),
            (UpstreamTimeout, True),
            (UpstreamUnavailable, True),
            (UpstreamAuthFailure, False),
            (UpstreamOversizedInput, False),
            (UpstreamRequestFailed, False),
        ],
    )
    def test_retryable_flags(self, error_class, retryable):
        """Test the retryable flag of each error class."""
        assert error_class().retryable is retryable


class TestUserMessages:
    """Test user-facing failure messages."""

    @pytest.mark.parametrize(
        "error_class",
        [UpstreamRateLimited, UpstreamTimeout, UpstreamUnavailable, UpstreamAuthFailure, UpstreamOversizedInput],
    )
    def test_contact_fallback(self, error_class):
        """Test every terminal message names a human contact."""
        assert "help@example.com" in error_class().user_message("help@example.com")

    def test_busy_message(self):
        """Test exhausted rate limiting says the system is busy."""
        assert "busy" in UpstreamRateLimited().user_message()

    def test_simplify_message(self):
        """Test oversized input asks to simplify the question."""
        assert "simplify your question" in UpstreamOversizedInput().user_message()

    def test_admission_message_rounds_up(self):
        """Test the wait estimate is rounded up to whole seconds."""
        assert AdmissionDenied(3.2).user_message() == "Please wait 4 seconds before asking another question."
