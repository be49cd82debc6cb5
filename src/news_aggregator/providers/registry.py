"""Build provider adapters from configuration."""

from __future__ import annotations

import logging

from news_aggregator.config import AggregatorConfig, NewsProviderConfig
from news_aggregator.errors import ConfigError
from news_aggregator.http_client import HttpClient
from news_aggregator.providers.base import HttpNewsProvider
from news_aggregator.providers.gnews import GNewsProvider
from news_aggregator.providers.guardian import GuardianProvider
from news_aggregator.providers.newsapi import NewsApiProvider
from news_aggregator.providers.nytimes import NyTimesProvider

PROVIDER_TYPES: dict[str, type[HttpNewsProvider]] = {
    "newsapi": NewsApiProvider,
    "gnews": GNewsProvider,
    "guardian": GuardianProvider,
    "nytimes": NyTimesProvider,
}


def create_provider(
    config: NewsProviderConfig,
    http_client: HttpClient,
    logger: logging.Logger | None = None,
) -> HttpNewsProvider:
    """Instantiate the adapter for one provider config.

    Raises:
        ConfigError: If the provider type is unknown.
    """
    provider_cls = PROVIDER_TYPES.get(config.type.lower())
    if provider_cls is None:
        known = ", ".join(sorted(PROVIDER_TYPES))
        raise ConfigError(f"Unknown provider type '{config.type}' for '{config.name}' (known: {known})")
    return provider_cls(config, http_client, logger=logger)


def build_providers(
    config: AggregatorConfig,
    http_client: HttpClient,
    logger: logging.Logger | None = None,
) -> list[HttpNewsProvider]:
    """Instantiate every enabled provider in priority order."""
    return [
        create_provider(provider_config, http_client, logger=logger)
        for provider_config in config.get_enabled_providers()
    ]
