from __future__ import annotations
import enum
import json
from typing import Optional


class ErrorKind(str, enum.Enum):
    TRANSIENT_QUOTA = "transient_quota"
    TRANSIENT_OVERLOAD = "transient_overload"
    FATAL = "fatal"

    @property
    def transient(self) -> bool:
        return self is not ErrorKind.FATAL


class ProviderError(Exception):
    """Base class for provider-level failures."""


class ProviderClientError(ProviderError):
    """
    Non-retryable: caller/config issue (missing key, bad input, malformed
    response, etc.). The fix is change input/config, not retry.
    """


class ProviderTransientError(ProviderError):
    """
    Retryable: rate limits, overload, timeouts.
    Retrying with backoff is appropriate.
    """


class MissingCredentialError(ProviderClientError):
    def __init__(self, message: str = "MISSING_API_KEY: no API key configured. Set one with 'genstudio key set'."):
        super().__init__(message)


class InvalidCredentialError(ProviderClientError):
    pass


class NoImageDataError(ProviderClientError):
    pass


class EmptyResponseError(ProviderClientError):
    pass


class InvalidResponseError(ProviderClientError):
    pass


class InvalidImageError(ProviderClientError):
    pass


class RequestTimeoutError(ProviderTransientError):
    pass


class GivenUpError(ProviderError):
    """
    Terminal: transient failures outlasted the retry budget.
    Distinct from the last underlying error, which is kept as __cause__.
    """

    def __init__(self, kind: ErrorKind, attempts: int, message: Optional[str] = None):
        self.kind = kind
        self.attempts = attempts
        super().__init__(
            message
            or f"Gemini is still busy after {attempts} attempts (max retries reached). "
               "Try again in a few minutes or use a paid/private API key."
        )


def _embedded_error_message(msg: str) -> Optional[str]:
    # Raw Google errors often embed {"error": {"code": 429, "message": "..."}}
    first, last = msg.find("{"), msg.rfind("}")
    if first == -1 or last <= first:
        return None
    try:
        parsed = json.loads(msg[first:last + 1])
    except ValueError:
        return None
    err = parsed.get("error") if isinstance(parsed, dict) else None
    if not isinstance(err, dict):
        return None
    if err.get("code") == 429:
        return "Quota exceeded. Please wait or use your own API key."
    return err.get("message")


def format_error(exc: Optional[BaseException]) -> str:
    """Turn any failure into a short message fit for an end user."""
    if exc is None:
        return "Unknown error"
    if isinstance(exc, GivenUpError):
        return str(exc)
    msg = str(exc) or exc.__class__.__name__
    if "{" in msg and "error" in msg:
        msg = _embedded_error_message(msg) or msg

    lower = msg.lower()
    if "missing_api_key" in lower:
        return "No API key configured. Set one with 'genstudio key set' or PUT /api/settings/key."
    if "429" in lower or "quota" in lower or "resource_exhausted" in lower:
        return "Free quota exhausted. Retrying later or set a personal API key."
    if "503" in lower or "overloaded" in lower:
        return "Google servers are overloaded. Please try again later."
    return msg.replace("GoogleGenAIError:", "").strip()
