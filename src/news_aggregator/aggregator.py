"""News aggregator that fans out to every provider and merges the results."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Sequence

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_exponential

from news_aggregator.config import (
    AggregatorConfig,
    AggregatorSettings,
    CatalogConfig,
    CategoryConfig,
    LocationConfig,
    load_aggregator_config,
)
from news_aggregator.errors import (
    NO_RESPONSE,
    InvalidCatalogValueError,
    classify,
    create_source_error,
)
from news_aggregator.http_client import HttpClient
from news_aggregator.models import (
    AggregationResult,
    Article,
    ProviderResponse,
    SourceInfo,
)
from news_aggregator.providers.base import NewsProvider
from news_aggregator.providers.registry import build_providers
from news_aggregator.utils.dates import freshness_key

logger = logging.getLogger("news_aggregator")

ProviderCall = Callable[[NewsProvider], Awaitable[ProviderResponse]]


def deduplicate_articles(articles: Iterable[Article]) -> list[Article]:
    """Drop articles whose URL was already seen; the first occurrence wins."""
    seen_urls: set[str] = set()
    unique: list[Article] = []
    for article in articles:
        if not article.url or article.url in seen_urls:
            continue
        seen_urls.add(article.url)
        unique.append(article)
    return unique


def sort_by_freshness(articles: Iterable[Article]) -> list[Article]:
    """Newest first. The sort is stable, so ties keep their input order."""
    return sorted(articles, key=freshness_key, reverse=True)


def _is_retryable_failure(response: ProviderResponse) -> bool:
    return response.error is not None and response.error.retryable


class NewsAggregator:
    """Aggregates news from several providers concurrently.

    Each provider call runs in its own task inside a TaskGroup and turns every
    failure into a SourceError, so one provider can never fail or block the
    others. All calls share one deadline. Retryable failures are retried with
    exponential backoff before being recorded.

    Usage:
        async with NewsAggregator.from_config() as aggregator:
            result = await aggregator.aggregate("technology", location="us")

            for article in result.articles:
                print(article.title)

            # Partial failures are data, not exceptions
            for error in result.errors:
                print(error.source, error.code)
    """

    def __init__(
        self,
        providers: Sequence[NewsProvider],
        settings: AggregatorSettings | None = None,
        catalog: CatalogConfig | None = None,
        logger: logging.Logger | None = None,
        http_client: HttpClient | None = None,
    ):
        """Initialize the aggregator.

        Args:
            providers: Adapters in iteration order (also the tie-break order).
            settings: Deadline, retry and paging settings.
            catalog: Category/location catalogs used for validation.
            logger: Logger for aggregation events.
            http_client: Shared client to close on exit, if the aggregator owns it.
        """
        self.providers = list(providers)
        self.settings = settings or AggregatorSettings()
        self.catalog = catalog or CatalogConfig()
        self.logger = logger or logging.getLogger("news_aggregator")
        self._http_client = http_client

    @classmethod
    def from_config(
        cls,
        config: AggregatorConfig | None = None,
        logger: logging.Logger | None = None,
        http_client: HttpClient | None = None,
    ) -> "NewsAggregator":
        """Build an aggregator and its adapters from configuration.

        Args:
            config: Aggregator config (loads config/news_providers.yaml if None).
            logger: Logger shared by the aggregator and its adapters.
            http_client: Client to use instead of one built from settings.
        """
        config = config or load_aggregator_config()
        settings = config.settings
        http_client = http_client or HttpClient(
            timeout=settings.request_timeout_seconds,
            user_agent=settings.user_agent,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cache_max_entries=settings.cache_max_entries,
            requests_per_second=settings.requests_per_second,
        )
        providers = build_providers(config, http_client, logger=logger)
        return cls(
            providers,
            settings=settings,
            catalog=config.catalog,
            logger=logger,
            http_client=http_client,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.close()

    async def __aenter__(self) -> "NewsAggregator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # =========================================================================
    # Catalog
    # =========================================================================

    def get_categories(self) -> list[CategoryConfig]:
        return list(self.catalog.categories)

    def get_locations(self) -> list[LocationConfig]:
        return list(self.catalog.locations)

    def get_sources(self) -> list[SourceInfo]:
        """Sources backed by providers that have credentials configured."""
        sources = []
        for provider in self.providers:
            if not getattr(provider, "is_configured", True):
                continue
            config = getattr(provider, "config", None)
            sources.append(
                SourceInfo(
                    id=provider.name,
                    name=getattr(provider, "display_name", provider.name),
                    description=config.description if config else "",
                )
            )
        return sources

    def _validate(self, category: str | None, location: str | None) -> None:
        if category is not None and not self.catalog.has_category(category):
            raise InvalidCatalogValueError(f"Unknown category: {category!r}")
        if location is not None and not self.catalog.has_location(location):
            raise InvalidCatalogValueError(f"Unknown location: {location!r}")

    def _select_providers(self, sources: Sequence[str] | None) -> list[NewsProvider]:
        """Providers to query, in the order given by sources (all if None).

        Raises:
            InvalidCatalogValueError: If a source name is not a configured provider.
        """
        if sources is None:
            return list(self.providers)

        by_name = {provider.name: provider for provider in self.providers}
        selected: list[NewsProvider] = []
        for name in sources:
            if name not in by_name:
                known = ", ".join(by_name) or "none"
                raise InvalidCatalogValueError(f"Unknown source: {name!r} (configured: {known})")
            if by_name[name] not in selected:
                selected.append(by_name[name])
        return selected

    # =========================================================================
    # Public operations
    # =========================================================================

    async def aggregate(
        self,
        category: str | None = None,
        location: str | None = None,
        page_size: int | None = None,
        limit: int | None = None,
        sources: Sequence[str] | None = None,
    ) -> AggregationResult:
        """Fetch the latest articles for a category from every provider.

        Args:
            category: Category id from the catalog, or None for top headlines.
            location: Optional location id from the catalog.
            page_size: Articles requested per provider.
            limit: Maximum articles returned after merging.
            sources: Provider names to query, in tie-break order (all if None).

        Returns:
            AggregationResult with merged articles and per-provider errors.

        Raises:
            InvalidCatalogValueError: If category, location or a source name is
                not known.
        """
        self._validate(category, location)
        providers = self._select_providers(sources)
        page_size = page_size or self.settings.default_page_size

        return await self._run(
            f"category:{category or 'all'} | location:{location or '-'}",
            providers,
            lambda provider: provider.fetch_articles(category, location, page_size),
            limit,
        )

    async def search(
        self,
        query: str,
        category: str | None = None,
        location: str | None = None,
        page_size: int | None = None,
        limit: int | None = None,
        sources: Sequence[str] | None = None,
    ) -> AggregationResult:
        """Search every provider for a keyword and merge the results.

        Raises:
            ValueError: If the query is empty.
            InvalidCatalogValueError: If category, location or a source name is
                not known.
        """
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")
        self._validate(category, location)
        providers = self._select_providers(sources)
        page_size = page_size or self.settings.default_page_size
        query = query.strip()

        return await self._run(
            f"search:{query[:50]}",
            providers,
            lambda provider: provider.search_articles(query, category, location, page_size),
            limit,
        )

    # =========================================================================
    # Fan-out / fan-in
    # =========================================================================

    async def _run(
        self,
        description: str,
        providers: list[NewsProvider],
        call: ProviderCall,
        limit: int | None,
    ) -> AggregationResult:
        start_time = time.time()

        if not providers:
            self.logger.warning(f"NEWS_AGGREGATOR | {description} | no providers configured")
            return AggregationResult(articles=[])

        deadline = asyncio.get_running_loop().time() + self.settings.deadline_seconds
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self._call_provider(provider, call, deadline))
                for provider in providers
            ]
        responses = [task.result() for task in tasks]

        result = self._merge(responses, limit)
        result.duration_ms = int((time.time() - start_time) * 1000)

        self.logger.info(
            f"NEWS_AGGREGATOR | {description} | providers:{len(providers)} | "
            f"ok:{len(result.provider_counts)} | failed:{len(result.errors)} | "
            f"articles:{result.total_articles} | removed:{result.duplicates_removed} | "
            f"{result.duration_ms}ms"
        )
        if result.failed:
            self.logger.error(
                f"NEWS_AGGREGATOR | {description} | all providers failed: "
                + ", ".join(f"{e.source}={e.code}" for e in result.errors)
            )
        return result

    async def _call_provider(
        self,
        provider: NewsProvider,
        call: ProviderCall,
        deadline: float,
    ) -> ProviderResponse:
        """Run one provider to completion; never raises."""
        try:
            async with asyncio.timeout_at(deadline):
                return await self._call_with_retry(provider, call)
        except TimeoutError:
            error = create_source_error(
                provider.name,
                f"No response received before the {self.settings.deadline_seconds}s "
                f"aggregation deadline ({NO_RESPONSE})",
                code=NO_RESPONSE,
                retryable=True,
            )
            self.logger.warning(f"PROVIDER_TIMEOUT | {provider.name} | {error.message}")
            return ProviderResponse(provider=provider.name, error=error)
        except Exception as e:
            error = classify(provider.name, e)
            self.logger.error(
                f"PROVIDER_CRASH | {provider.name} | {type(e).__name__}: {e}",
                exc_info=True,
            )
            return ProviderResponse(provider=provider.name, error=error)

    async def _call_with_retry(
        self,
        provider: NewsProvider,
        call: ProviderCall,
    ) -> ProviderResponse:
        """Call a provider, retrying while it reports a retryable error."""
        max_attempts = self.settings.max_retries + 1
        attempts = 0

        async def attempt() -> ProviderResponse:
            nonlocal attempts
            attempts += 1
            return await call(provider)

        def log_retry(retry_state) -> None:
            response = retry_state.outcome.result()
            self.logger.warning(
                f"PROVIDER_RETRY | {provider.name} | attempt:{retry_state.attempt_number}/{max_attempts} | "
                f"{response.error.code} | backoff:{retry_state.next_action.sleep:.2f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.retry_backoff_seconds,
                max=self.settings.retry_backoff_max_seconds,
            ),
            retry=retry_if_result(_is_retryable_failure),
            before_sleep=log_retry,
            # Out of attempts: keep the last failed response
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        response = await retrying(attempt)
        response.attempts = attempts
        return response

    def _merge(
        self,
        responses: list[ProviderResponse],
        limit: int | None,
    ) -> AggregationResult:
        """Merge responses in provider order, dedupe by URL, sort newest first."""
        collected: list[Article] = []
        errors = []
        provider_counts: dict[str, int] = {}

        for response in responses:
            if response.error is not None:
                errors.append(response.error)
                continue
            provider_counts[response.provider] = response.article_count
            collected.extend(response.articles)

        unique = deduplicate_articles(collected)
        ordered = sort_by_freshness(unique)
        if limit is not None and limit >= 0:
            ordered = ordered[:limit]

        return AggregationResult(
            articles=ordered,
            errors=errors,
            provider_counts=provider_counts,
            total_before_dedup=len(collected),
            duplicates_removed=len(collected) - len(unique),
        )
