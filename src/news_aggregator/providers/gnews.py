"""GNews adapter."""

from __future__ import annotations

from typing import Any

from news_aggregator.errors import ProviderResponseError
from news_aggregator.http_client import HttpRequest
from news_aggregator.models import Article
from news_aggregator.providers.base import HttpNewsProvider


class GNewsProvider(HttpNewsProvider):
    """Adapter for https://gnews.io (auth via token query parameter)."""

    default_source_name = "GNews"
    api_key_param = "token"

    def build_category_request(
        self,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        return self.build_request(
            "/top-headlines",
            {
                "category": self.map_category(category) or "general",
                "country": self.map_location(location),
                "max": page_size,
                "lang": "en",
            },
        )

    def build_search_request(
        self,
        query: str,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        return self.build_request(
            "/search",
            {
                "q": query,
                "country": self.map_location(location),
                "max": page_size,
                "lang": "en",
                "sortby": "publishedAt",
                "from": f"{self.search_from_date()}T00:00:00Z",
            },
        )

    def extract_records(self, payload: Any) -> list[dict]:
        if not isinstance(payload, dict):
            raise ProviderResponseError("Unexpected response format: expected a JSON object")
        if payload.get("errors"):
            errors = payload["errors"]
            detail = "; ".join(errors) if isinstance(errors, list) else str(errors)
            raise ProviderResponseError(f"GNews error: {detail}")
        articles = payload.get("articles")
        if not isinstance(articles, list):
            raise ProviderResponseError("Unexpected response format: missing 'articles' list")
        return articles

    def normalize_record(self, record: dict, category: str | None) -> Article | None:
        source = record.get("source") or {}
        return self.make_article(
            title=record.get("title"),
            url=record.get("url"),
            published_at=record.get("publishedAt"),
            category=category,
            source=source.get("name") if isinstance(source, dict) else None,
            description=record.get("description"),
            content=record.get("content"),
            image_url=record.get("image"),
        )
