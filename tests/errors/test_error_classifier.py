"""Tests for classifying provider failures into SourceErrors."""

import pytest

from news_aggregator.errors import (
    AllProvidersFailedError,
    ProviderResponseError,
    classify,
    create_graphql_error,
    create_source_error,
    is_retryable_status,
)
from news_aggregator.http_client import HttpStatusError, NoResponseError, RequestBuildError


class TestHttpStatus:
    """Responses with a non-2xx status."""

    def test_unauthorized_not_retryable(self):
        error = classify("newsapi", HttpStatusError(401, body='{"message": "Your API key is invalid"}'))

        assert error.source == "newsapi"
        assert error.code == "HTTP_401"
        assert error.retryable is False
        assert "401" in error.message
        assert "Your API key is invalid" in error.message
        assert "Invalid API key or authentication failure" in error.message

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 429])
    def test_server_errors_and_rate_limits_retryable(self, status):
        error = classify("gnews", HttpStatusError(status, reason="Oops"))

        assert error.code == f"HTTP_{status}"
        assert error.retryable is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_client_errors_not_retryable(self, status):
        assert is_retryable_status(status) is False

    def test_hint_not_repeated(self):
        error = classify("gnews", HttpStatusError(429, body='{"message": "Rate limit exceeded"}'))

        assert error.message.lower().count("rate limit exceeded") == 1


class TestTransportFailures:
    """Failures without a usable response."""

    def test_no_response(self):
        error = classify("guardian", NoResponseError("No response received within 10s"))

        assert error.code == "NO_RESPONSE"
        assert error.retryable is True
        assert "NO_RESPONSE" in error.message

    def test_request_build_error(self):
        error = classify("nytimes", RequestBuildError("Invalid request: bad url"))

        assert error.code == "REQUEST_ERROR"
        assert error.retryable is False
        assert "REQUEST_ERROR" in error.message

    def test_provider_response_error_keeps_code(self):
        error = classify("newsapi", ProviderResponseError("No key", code="MISSING_API_KEY"))

        assert error.code == "MISSING_API_KEY"
        assert error.retryable is False
        assert "MISSING_API_KEY" in error.message

    def test_unexpected_exception(self):
        error = classify("gnews", KeyError("articles"))

        assert error.code == "REQUEST_ERROR"
        assert error.retryable is False
        assert "KeyError" in error.message


class TestGraphqlShapes:
    """Error objects handed to the API layer."""

    def test_source_error_to_graphql(self):
        error = create_source_error("gnews", "Status 503: down", code="HTTP_503", retryable=True)

        assert error.to_graphql() == {
            "message": "[gnews] Status 503: down",
            "extensions": {"code": "HTTP_503", "source": "gnews", "retryable": True},
        }

    def test_create_graphql_error_default_code(self):
        assert create_graphql_error("boom") == {
            "message": "boom",
            "extensions": {"code": "INTERNAL_SERVER_ERROR"},
        }

    def test_create_source_error_defaults(self):
        error = create_source_error("newsapi", "Something failed")

        assert error.code == "ERROR"
        assert error.retryable is False

    def test_all_providers_failed(self):
        errors = [
            create_source_error("newsapi", "x", code="HTTP_401"),
            create_source_error("gnews", "y", code="NO_RESPONSE", retryable=True),
        ]

        exc = AllProvidersFailedError(errors)

        assert str(exc) == "All news sources failed (newsapi, gnews)"
        assert exc.errors == errors
        assert exc.to_graphql()["extensions"]["code"] == "ALL_SOURCES_FAILED"
