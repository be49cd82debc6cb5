"""Data models for news aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class Article:
    """Canonical article, independent of the provider it came from."""

    id: str
    title: str
    url: str
    source: str
    published_at: datetime
    category: str
    description: str = ""
    content: str = ""
    image_url: Optional[str] = None

    # Config name of the adapter that produced the article
    provider: str = ""

    def to_dict(self) -> dict:
        """Convert to the wire shape consumed by the API layer."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "url": self.url,
            "imageUrl": self.image_url,
            "source": self.source,
            "publishedAt": self.published_at.isoformat(),
            "category": self.category,
        }


@dataclass(frozen=True)
class SourceError:
    """Failure of a single provider, carried as data."""

    source: str
    message: str
    code: str
    retryable: bool = False

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "message": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }

    def to_graphql(self) -> dict:
        """Shape used for GraphQL error extensions."""
        return {
            "message": f"[{self.source}] {self.message}",
            "extensions": {
                "code": self.code,
                "source": self.source,
                "retryable": self.retryable,
            },
        }


@dataclass
class ProviderResponse:
    """Outcome of one adapter call: articles or an error."""

    provider: str
    articles: list[Article] = field(default_factory=list)
    error: SourceError | None = None
    skipped: int = 0
    duration_ms: int = 0
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def article_count(self) -> int:
        return len(self.articles)


@dataclass
class AggregationResult:
    """Result from NewsAggregator.aggregate() and NewsAggregator.search()."""

    articles: list[Article]
    errors: list[SourceError] = field(default_factory=list)
    fetch_timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Source statistics
    provider_counts: dict[str, int] = field(default_factory=dict)
    total_before_dedup: int = 0
    duplicates_removed: int = 0
    duration_ms: int = 0

    @property
    def total_articles(self) -> int:
        """Total articles after deduplication."""
        return len(self.articles)

    @property
    def partial(self) -> bool:
        """Some providers failed but articles were still collected."""
        return bool(self.errors) and bool(self.provider_counts)

    @property
    def failed(self) -> bool:
        """No provider succeeded."""
        return not self.provider_counts and bool(self.errors)

    @property
    def success_rate(self) -> float:
        """Fraction of providers that succeeded."""
        total = len(self.provider_counts) + len(self.errors)
        if total == 0:
            return 0.0
        return len(self.provider_counts) / total

    def raise_for_total_failure(self) -> None:
        """Raise AllProvidersFailedError if every provider failed."""
        if self.failed:
            from news_aggregator.errors import AllProvidersFailedError

            raise AllProvidersFailedError(self.errors)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and the API layer."""
        return {
            "articles": [a.to_dict() for a in self.articles],
            "errors": [e.to_dict() for e in self.errors] or None,
            "fetch_timestamp": self.fetch_timestamp.isoformat(),
            "sources": {
                "provider_counts": dict(self.provider_counts),
                "total_before_dedup": self.total_before_dedup,
                "duplicates_removed": self.duplicates_removed,
            },
            "success_rate": round(self.success_rate, 2),
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class SourceInfo:
    id: str
    name: str
    description: str = ""
