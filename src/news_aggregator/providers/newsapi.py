"""NewsAPI.org adapter."""

from __future__ import annotations

from typing import Any

from news_aggregator.errors import ProviderResponseError
from news_aggregator.http_client import HttpRequest
from news_aggregator.models import Article
from news_aggregator.providers.base import DEFAULT_CATEGORY, HttpNewsProvider

# NewsAPI keeps placeholders for articles pulled by the publisher
REMOVED_TITLE = "[Removed]"


class NewsApiProvider(HttpNewsProvider):
    """Adapter for https://newsapi.org (auth via X-Api-Key header)."""

    default_source_name = "NewsAPI"
    api_key_header = "X-Api-Key"

    def build_category_request(
        self,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        api_category = self.map_category(category)
        country = self.map_location(location)
        if not api_category and not country:
            # /top-headlines rejects requests without any filter
            api_category = DEFAULT_CATEGORY
        return self.build_request(
            "/top-headlines",
            {
                "category": api_category,
                "country": country,
                "pageSize": page_size,
                "language": "en",
            },
        )

    def build_search_request(
        self,
        query: str,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        # /everything has no category or country filter
        return self.build_request(
            "/everything",
            {
                "q": query,
                "pageSize": page_size,
                "language": "en",
                "sortBy": "publishedAt",
                "from": self.search_from_date(),
            },
        )

    def extract_records(self, payload: Any) -> list[dict]:
        if not isinstance(payload, dict):
            raise ProviderResponseError("Unexpected response format: expected a JSON object")
        if payload.get("status") == "error":
            raise ProviderResponseError(
                f"NewsAPI error {payload.get('code', 'unknown')}: {payload.get('message', '')}".rstrip(": ")
            )
        articles = payload.get("articles")
        if not isinstance(articles, list):
            raise ProviderResponseError("Unexpected response format: missing 'articles' list")
        return articles

    def normalize_record(self, record: dict, category: str | None) -> Article | None:
        if record.get("title") == REMOVED_TITLE:
            return None
        source = record.get("source") or {}
        return self.make_article(
            title=record.get("title"),
            url=record.get("url"),
            published_at=record.get("publishedAt"),
            category=category,
            source=source.get("name") if isinstance(source, dict) else None,
            description=record.get("description"),
            content=record.get("content"),
            image_url=record.get("urlToImage"),
        )
