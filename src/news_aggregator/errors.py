"""Error classification for provider failures.

Turns transport and provider failures into SourceError records:

    HTTP_<status>     response with non-2xx status (retryable for 5xx and 429)
    NO_RESPONSE       request sent, no response (retryable)
    REQUEST_ERROR     request could not be built or sent (not retryable)
    INVALID_RESPONSE  provider answered with an unexpected body (not retryable)
    MISSING_API_KEY   provider has no credential configured (not retryable)
"""

from __future__ import annotations

from news_aggregator.http_client import (
    HttpStatusError,
    NoResponseError,
    RequestBuildError,
)
from news_aggregator.models import SourceError

ERROR = "ERROR"
NO_RESPONSE = "NO_RESPONSE"
REQUEST_ERROR = "REQUEST_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"
MISSING_API_KEY = "MISSING_API_KEY"
ALL_SOURCES_FAILED = "ALL_SOURCES_FAILED"

_STATUS_HINTS = {
    401: "Invalid API key or authentication failure",
    403: "Access forbidden, the key may lack permissions or be over quota",
    404: "Endpoint not found",
    429: "Rate limit exceeded",
}


class ProviderResponseError(Exception):
    """Provider-level failure raised by an adapter with its own code."""

    def __init__(self, message: str, code: str = INVALID_RESPONSE):
        super().__init__(message)
        self.code = code


class InvalidCatalogValueError(ValueError):
    """Category or location identifier is not in the configured catalog."""


class ConfigError(ValueError):
    """Aggregator configuration is missing or invalid."""


class AllProvidersFailedError(Exception):
    """Every provider failed; the only failure surfaced to callers."""

    def __init__(self, errors: list[SourceError]):
        sources = ", ".join(e.source for e in errors) or "none"
        super().__init__(f"All news sources failed ({sources})")
        self.errors = list(errors)

    def to_graphql(self) -> dict:
        return create_graphql_error(str(self), ALL_SOURCES_FAILED)


def create_source_error(
    source: str,
    message: str,
    code: str = ERROR,
    retryable: bool = False,
) -> SourceError:
    """Create a standardized SourceError."""
    return SourceError(source=source, message=message, code=code, retryable=retryable)


def create_graphql_error(message: str, code: str = "INTERNAL_SERVER_ERROR") -> dict:
    """Create a GraphQL error object: {message, extensions: {code}}."""
    return {"message": message, "extensions": {"code": code}}


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


def classify(provider_name: str, error: BaseException) -> SourceError:
    """Classify a failure into a SourceError.

    Pure function. The HTTP status or error code always appears in the message.

    Args:
        provider_name: Name of the provider that failed.
        error: Transport, provider or unexpected exception.

    Returns:
        SourceError with a stable code and retryable flag.
    """
    if isinstance(error, HttpStatusError):
        status = error.status_code
        message = f"Status {status}: {error.detail}"
        hint = _STATUS_HINTS.get(status)
        if hint and hint.lower() not in message.lower():
            message = f"{message}. {hint}"
        return create_source_error(
            provider_name,
            message,
            code=f"HTTP_{status}",
            retryable=is_retryable_status(status),
        )

    if isinstance(error, NoResponseError):
        return create_source_error(
            provider_name,
            f"No response received from server ({NO_RESPONSE}): {error}",
            code=NO_RESPONSE,
            retryable=True,
        )

    if isinstance(error, RequestBuildError):
        return create_source_error(
            provider_name,
            f"Request setup error ({REQUEST_ERROR}): {error}",
            code=REQUEST_ERROR,
            retryable=False,
        )

    if isinstance(error, ProviderResponseError):
        return create_source_error(
            provider_name,
            f"{error} ({error.code})",
            code=error.code,
            retryable=False,
        )

    return create_source_error(
        provider_name,
        f"Request setup error ({REQUEST_ERROR}): {type(error).__name__}: {error}",
        code=REQUEST_ERROR,
        retryable=False,
    )
