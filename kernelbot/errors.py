"""Error taxonomy and upstream error classification."""

import asyncio
import logging
import math

import anthropic
import httpx
import openai

logger = logging.getLogger(__name__)

DEFAULT_CONTACT_EMAIL = "hackoverflow@mes.ac.in"

_CONTEXT_LENGTH_MARKERS = (
    "context length",
    "context_length",
    "maximum context",
    "too long",
    "too large",
    "too many tokens",
    "reduce the length",
)

_TIMEOUT_ERRORS = (
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
    openai.APITimeoutError,
    anthropic.APITimeoutError,
)

_CONNECTION_ERRORS = (
    httpx.TransportError,
    openai.APIConnectionError,
    anthropic.APIConnectionError,
)


class KernelError(Exception):
    """Base class for all errors raised by the bot core."""


class ServiceShuttingDown(KernelError):
    """Raised when work is submitted to, or abandoned by, a stopping service."""

    def user_message(self, contact: str = DEFAULT_CONTACT_EMAIL) -> str:
        return f"Kernel is restarting right now. Please ask again in a minute, or email {contact}."


class AdmissionDenied(KernelError):
    """Deferral signal from the admission gate.

    Not a failure: the caller should wait ``retry_after`` seconds and ask again.
    """

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Request denied, retry after {retry_after:.1f}s")

    def user_message(self, contact: str = DEFAULT_CONTACT_EMAIL) -> str:
        wait = max(1, math.ceil(self.retry_after))
        return f"Please wait {wait} seconds before asking another question."


class UpstreamError(KernelError):
    """Classified failure of an upstream completion call."""

    retryable = False
    message = "The AI service could not handle your question. Please try again later"

    def __init__(self, detail: str = "", status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail or self.message)

    def user_message(self, contact: str = DEFAULT_CONTACT_EMAIL) -> str:
        """Plain-text message for the end user, with the human contact fallback."""
        return f"{self.message}, or contact {contact} for help."


class UpstreamRateLimited(UpstreamError):
    retryable = True
    message = "The system is busy with too many requests right now. Please wait a moment and try again"


class UpstreamTimeout(UpstreamError):
    retryable = True
    message = "The AI service took too long to answer. Please try again in a moment"


class UpstreamUnavailable(UpstreamError):
    retryable = True
    message = "The AI service is currently unavailable. Please try again in a moment"


class UpstreamAuthFailure(UpstreamError):
    message = "AI service configuration error. Please let the organizers know"


class UpstreamOversizedInput(UpstreamError):
    message = "Your question is too long for me to process. Please simplify your question"


class UpstreamRequestFailed(UpstreamError):
    pass


def _status_code(exc: BaseException) -> int | None:
    """Extract an HTTP-like status code from an SDK or transport exception."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status

    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    # google.api_core exceptions carry the HTTP status as ``code``
    status = getattr(exc, "code", None)
    if isinstance(status, int):
        return status

    return None


def _mentions_context_length(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _CONTEXT_LENGTH_MARKERS)


def classify_upstream_error(exc: BaseException) -> UpstreamError:
    """Map any exception raised by an upstream call onto the error taxonomy.

    Args:
        exc: Exception raised while calling the upstream provider

    Returns:
        UpstreamError subclass instance describing the failure
    """
    if isinstance(exc, UpstreamError):
        return exc

    detail = f"{type(exc).__name__}: {exc}"

    if isinstance(exc, _TIMEOUT_ERRORS):
        return UpstreamTimeout(detail)

    status = _status_code(exc)

    if status == 429:
        return UpstreamRateLimited(detail, status)
    if status in (401, 403):
        return UpstreamAuthFailure(detail, status)
    if status == 413 or (status == 400 and _mentions_context_length(exc)):
        return UpstreamOversizedInput(detail, status)
    if status is not None and status >= 500:
        return UpstreamUnavailable(detail, status)

    if isinstance(exc, _CONNECTION_ERRORS):
        return UpstreamUnavailable(detail)

    if status is None and _mentions_context_length(exc):
        return UpstreamOversizedInput(detail)

    logger.debug(f"Unclassified upstream error treated as permanent: {detail}")
    return UpstreamRequestFailed(detail, status)
