"""Shared test fixtures and configuration.

Provides scripted providers, article factories and mock HTTP transports for
testing the news aggregator without touching the network.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest

from news_aggregator.config import AggregatorSettings, NewsProviderConfig, default_providers
from news_aggregator.http_client import HttpClient
from news_aggregator.models import Article, ProviderResponse, SourceError
from news_aggregator.providers.base import NewsProvider

# Fixed reference time so ordering assertions are deterministic
BASE_TIME = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


# =============================================================================
# Scripted provider
# =============================================================================

class FakeProvider(NewsProvider):
    """In-memory provider that replays scripted outcomes.

    Each call consumes the next outcome; the last one repeats. An outcome is
    a list of articles (success), a SourceError, or an exception to raise.
    """

    def __init__(self, name: str, outcomes: list[Any] | None = None, delay: float = 0.0):
        self.name = name
        self.outcomes = list(outcomes) if outcomes is not None else [[]]
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def _respond(self, **call: Any) -> ProviderResponse:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, SourceError):
            return ProviderResponse(provider=self.name, error=outcome)
        return ProviderResponse(provider=self.name, articles=list(outcome))

    async def fetch_articles(self, category, location=None, page_size=10):
        return await self._respond(category=category, location=location, page_size=page_size)

    async def search_articles(self, query, category=None, location=None, page_size=10):
        return await self._respond(
            query=query, category=category, location=location, page_size=page_size
        )


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    """Factory for scripted providers.

    Usage:
        def test_something(make_provider):
            provider = make_provider("newsapi", [[article]], delay=0.1)
    """
    def _make(name: str, outcomes: list[Any] | None = None, delay: float = 0.0) -> FakeProvider:
        return FakeProvider(name, outcomes, delay)

    return _make


# =============================================================================
# Articles and errors
# =============================================================================

@pytest.fixture
def make_article() -> Callable[..., Article]:
    """Factory for canonical articles published relative to BASE_TIME."""
    def _make(
        slug: str,
        hours_old: float = 1,
        provider: str = "test",
        url: str | None = None,
    ) -> Article:
        return Article(
            id=f"id-{provider}-{slug}",
            title=f"Article {slug}",
            url=url or f"https://example.com/{slug}",
            source="Example News",
            published_at=BASE_TIME - timedelta(hours=hours_old),
            category="technology",
            description=f"Summary of {slug}",
            provider=provider,
        )

    return _make


@pytest.fixture
def retryable_error() -> Callable[[str], SourceError]:
    def _make(source: str, code: str = "HTTP_503") -> SourceError:
        return SourceError(source=source, message=f"Status 503: unavailable ({code})", code=code, retryable=True)

    return _make


@pytest.fixture
def fatal_error() -> Callable[[str], SourceError]:
    def _make(source: str, code: str = "HTTP_401") -> SourceError:
        return SourceError(source=source, message="Status 401: Invalid API key", code=code, retryable=False)

    return _make


# =============================================================================
# Settings and configs
# =============================================================================

@pytest.fixture
def fast_settings() -> AggregatorSettings:
    """Settings with no backoff so retry tests run instantly."""
    return AggregatorSettings(
        deadline_seconds=2.0,
        max_retries=2,
        retry_backoff_seconds=0,
        retry_backoff_max_seconds=0,
    )


@pytest.fixture
def provider_config() -> Callable[..., NewsProviderConfig]:
    """Factory for provider configs with a test API key."""
    def _make(provider_type: str, **overrides: Any) -> NewsProviderConfig:
        defaults = {p.type: p for p in default_providers()}[provider_type]
        data = defaults.model_dump()
        data.update(
            {
                "name": provider_type,
                "api_key": "test-key",
            }
        )
        data.update(overrides)
        return NewsProviderConfig(**data)

    return _make


# =============================================================================
# HTTP
# =============================================================================

class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    def _make(payload: Any, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(payload).encode(),
            headers={"Content-Type": "application/json"},
        )

    return _make


@pytest.fixture
def mock_http() -> Callable[..., tuple[HttpClient, RecordingTransport]]:
    """Factory for an HttpClient backed by a recording mock transport.

    Usage:
        client, transport = mock_http(lambda request: httpx.Response(200, json={}))
        ...
        assert len(transport.requests) == 1
    """
    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any):
        transport = RecordingTransport(handler)
        return HttpClient(transport=transport, **kwargs), transport

    return _make
