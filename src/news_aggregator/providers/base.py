"""Provider adapter interface and shared HTTP adapter behaviour."""

from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from news_aggregator.config import NewsProviderConfig
from news_aggregator.errors import (
    MISSING_API_KEY,
    ProviderResponseError,
    classify,
)
from news_aggregator.http_client import HttpClient, HttpRequest, TransportError
from news_aggregator.models import Article, ProviderResponse
from news_aggregator.utils.dates import date_days_ago, is_valid_date, parse_date

DEFAULT_CATEGORY = "general"


class NewsProvider(ABC):
    """Capability set every news provider adapter offers.

    Implementations never raise for provider or transport failures; they
    return a ProviderResponse carrying either articles or a SourceError.
    """

    name: str

    @abstractmethod
    async def fetch_articles(
        self,
        category: str | None,
        location: str | None = None,
        page_size: int = 10,
    ) -> ProviderResponse:
        """Fetch the latest articles for a category (and optional location).

        A None category asks for top headlines across all sections.
        """

    @abstractmethod
    async def search_articles(
        self,
        query: str,
        category: str | None = None,
        location: str | None = None,
        page_size: int = 10,
    ) -> ProviderResponse:
        """Search recent articles by keyword."""


class HttpNewsProvider(NewsProvider):
    """Base class for adapters backed by a JSON HTTP API.

    Subclasses own request shaping (endpoints, parameter names, auth) and
    response shaping (record extraction, field mapping). This class handles
    transport, error classification, and dropping malformed records.
    """

    default_source_name: str = ""

    # Where the API key goes: a header name or a query parameter name
    api_key_header: str | None = None
    api_key_param: str | None = None

    search_window_days: int = 7

    def __init__(
        self,
        config: NewsProviderConfig,
        http_client: HttpClient,
        logger: logging.Logger | None = None,
    ):
        """Initialize the adapter.

        Args:
            config: Provider configuration.
            http_client: Shared HTTP client.
            logger: Logger for provider events.
        """
        self.config = config
        self.name = config.name
        self.http_client = http_client
        self.logger = logger or logging.getLogger("news_aggregator")

    @property
    def display_name(self) -> str:
        return self.config.display_name or self.default_source_name or self.name

    @property
    def is_configured(self) -> bool:
        """Whether an API key is available."""
        return bool(self.config.get_api_key())

    # =========================================================================
    # Identifier mapping
    # =========================================================================

    def map_category(self, category: str | None) -> str | None:
        """Map our category id to the provider's, or None if unsupported."""
        if not category:
            return None
        return self.config.category_mapping.get(category.lower())

    def map_location(self, location: str | None) -> str | None:
        """Map our location id to the provider's, or None if unsupported."""
        if not location:
            return None
        return self.config.country_mapping.get(location.lower())

    def reverse_category(self, provider_value: str | None) -> str:
        """Map a provider section/desk back to our category id."""
        if provider_value:
            wanted = provider_value.lower()
            for ours, theirs in self.config.category_mapping.items():
                if theirs.lower() == wanted:
                    return ours
        return DEFAULT_CATEGORY

    @staticmethod
    def generate_article_id(source: str, url: str, title: str) -> str:
        content = f"{source}:{url or ''}:{title or ''}"
        return hashlib.md5(content.encode()).hexdigest()

    # =========================================================================
    # Request shaping
    # =========================================================================

    def build_request(self, path: str, params: dict[str, Any]) -> HttpRequest:
        """Build a request with auth and extra params applied."""
        merged = {**self.config.extra_params, **params}
        headers: dict[str, str] = {}
        api_key = self.config.get_api_key()
        if api_key:
            if self.api_key_header:
                headers[self.api_key_header] = api_key
            elif self.api_key_param:
                merged[self.api_key_param] = api_key

        return HttpRequest(
            url=f"{self.config.base_url}{path}",
            params={k: v for k, v in merged.items() if v is not None},
            headers=headers,
            timeout=self.config.timeout_seconds,
            rate_key=self.name,
        )

    def search_from_date(self) -> str:
        return date_days_ago(self.search_window_days)

    @abstractmethod
    def build_category_request(
        self,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        """Request for the latest articles in a category."""

    @abstractmethod
    def build_search_request(
        self,
        query: str,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        """Request for a keyword search."""

    # =========================================================================
    # Response shaping
    # =========================================================================

    @abstractmethod
    def extract_records(self, payload: Any) -> list[dict]:
        """Pull the raw article records out of a response payload.

        Raises:
            ProviderResponseError: If the payload has an unexpected shape.
        """

    @abstractmethod
    def normalize_record(self, record: dict, category: str | None) -> Article | None:
        """Convert one raw record into an Article, or None if malformed."""

    def make_article(
        self,
        *,
        title: str | None,
        url: str | None,
        published_at: str | None,
        category: str | None,
        source: str | None = None,
        description: str | None = None,
        content: str | None = None,
        image_url: str | None = None,
    ) -> Article | None:
        """Create an Article, or None when a required field is missing or invalid."""
        title = (title or "").strip()
        url = (url or "").strip()
        if not title or not url:
            self.logger.debug(f"PROVIDER_SKIP | {self.name} | missing title or url | {url or title}")
            return None
        if not is_valid_date(published_at):
            self.logger.debug(f"PROVIDER_SKIP | {self.name} | invalid date {published_at!r} | {url}")
            return None

        description = description or ""
        return Article(
            id=self.generate_article_id(self.name, url, title),
            title=title,
            url=url,
            source=source or self.display_name,
            published_at=parse_date(published_at),
            category=category or DEFAULT_CATEGORY,
            description=description,
            content=content or description,
            image_url=image_url or None,
            provider=self.name,
        )

    # =========================================================================
    # Capability implementation
    # =========================================================================

    async def fetch_articles(
        self,
        category: str | None,
        location: str | None = None,
        page_size: int = 10,
    ) -> ProviderResponse:
        request = self.build_category_request(category, location, page_size)
        return await self._execute(request, category)

    async def search_articles(
        self,
        query: str,
        category: str | None = None,
        location: str | None = None,
        page_size: int = 10,
    ) -> ProviderResponse:
        request = self.build_search_request(query, category, location, page_size)
        return await self._execute(request, category)

    async def _execute(self, request: HttpRequest, category: str | None) -> ProviderResponse:
        start_time = time.time()

        if not self.is_configured:
            error = classify(
                self.name,
                ProviderResponseError(
                    f"API key for {self.name} is not configured", code=MISSING_API_KEY
                ),
            )
            self.logger.warning(f"PROVIDER_ERROR | {self.name} | {error.code} | {error.message}")
            return ProviderResponse(provider=self.name, error=error)

        try:
            response = await self.http_client.fetch(request)
            try:
                payload = response.json()
            except ValueError as e:
                raise ProviderResponseError(f"Response body is not valid JSON: {e}") from e
            records = self.extract_records(payload)
        except (TransportError, ProviderResponseError) as e:
            error = classify(self.name, e)
            duration_ms = int((time.time() - start_time) * 1000)
            self.logger.warning(
                f"PROVIDER_ERROR | {self.name} | {error.code} | "
                f"retryable:{error.retryable} | {error.message} | {duration_ms}ms"
            )
            return ProviderResponse(provider=self.name, error=error, duration_ms=duration_ms)

        articles: list[Article] = []
        skipped = 0
        for record in records:
            try:
                article = self.normalize_record(record, category) if isinstance(record, dict) else None
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                self.logger.debug(f"PROVIDER_SKIP | {self.name} | malformed record: {e}")
                article = None
            if article is None:
                skipped += 1
                continue
            articles.append(article)

        duration_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            f"PROVIDER_OK | {self.name} | articles:{len(articles)} | "
            f"skipped:{skipped} | {duration_ms}ms"
        )
        return ProviderResponse(
            provider=self.name,
            articles=articles,
            skipped=skipped,
            duration_ms=duration_ms,
        )
