"""Concurrent news aggregation across multiple external news APIs."""

from news_aggregator.models import (
    Article,
    SourceError,
    ProviderResponse,
    AggregationResult,
    SourceInfo,
)
from news_aggregator.errors import (
    AllProvidersFailedError,
    ConfigError,
    InvalidCatalogValueError,
    classify,
)
from news_aggregator.config import (
    AggregatorConfig,
    AggregatorSettings,
    NewsProviderConfig,
    load_aggregator_config,
)
from news_aggregator.aggregator import NewsAggregator

__all__ = [
    "Article",
    "SourceError",
    "ProviderResponse",
    "AggregationResult",
    "SourceInfo",
    "AllProvidersFailedError",
    "ConfigError",
    "InvalidCatalogValueError",
    "classify",
    "AggregatorConfig",
    "AggregatorSettings",
    "NewsProviderConfig",
    "load_aggregator_config",
    "NewsAggregator",
]
