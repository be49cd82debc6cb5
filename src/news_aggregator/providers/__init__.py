"""News provider adapters, one per external API."""

from news_aggregator.providers.base import HttpNewsProvider, NewsProvider
from news_aggregator.providers.gnews import GNewsProvider
from news_aggregator.providers.guardian import GuardianProvider
from news_aggregator.providers.newsapi import NewsApiProvider
from news_aggregator.providers.nytimes import NyTimesProvider
from news_aggregator.providers.registry import (
    PROVIDER_TYPES,
    build_providers,
    create_provider,
)

__all__ = [
    "NewsProvider",
    "HttpNewsProvider",
    "NewsApiProvider",
    "GNewsProvider",
    "GuardianProvider",
    "NyTimesProvider",
    "PROVIDER_TYPES",
    "build_providers",
    "create_provider",
]
