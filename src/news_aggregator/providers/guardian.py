"""The Guardian content API adapter."""

from __future__ import annotations

from typing import Any

from news_aggregator.errors import ProviderResponseError
from news_aggregator.http_client import HttpRequest
from news_aggregator.models import Article
from news_aggregator.providers.base import HttpNewsProvider

SHOW_FIELDS = "headline,trailText,bodyText,thumbnail,byline"


class GuardianProvider(HttpNewsProvider):
    """Adapter for https://content.guardianapis.com (auth via api-key parameter).

    The Guardian has no country filter; locations are sent as a
    world/<location> tag.
    """

    default_source_name = "The Guardian"
    api_key_param = "api-key"
    search_window_days = 30

    def _location_tag(self, location: str | None) -> str | None:
        mapped = self.map_location(location)
        return f"world/{mapped}" if mapped else None

    def build_category_request(
        self,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        return self.build_request(
            "/search",
            {
                "section": self.map_category(category) or "news",
                "tag": self._location_tag(location),
                "page-size": page_size,
                "show-fields": SHOW_FIELDS,
                "order-by": "newest",
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
                "section": self.map_category(category),
                "tag": self._location_tag(location),
                "page-size": page_size,
                "show-fields": SHOW_FIELDS,
                "order-by": "relevance",
                "from-date": self.search_from_date(),
            },
        )

    def extract_records(self, payload: Any) -> list[dict]:
        response = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(response, dict):
            raise ProviderResponseError("Unexpected response format: missing 'response' object")
        if response.get("status") == "error":
            raise ProviderResponseError(f"Guardian error: {response.get('message', 'unknown')}")
        results = response.get("results")
        if not isinstance(results, list):
            raise ProviderResponseError("Unexpected response format: missing 'response.results' list")
        return results

    def normalize_record(self, record: dict, category: str | None) -> Article | None:
        fields = record.get("fields") or {}
        return self.make_article(
            title=record.get("webTitle"),
            url=record.get("webUrl"),
            published_at=record.get("webPublicationDate"),
            category=category or self.reverse_category(record.get("sectionId")),
            description=fields.get("trailText"),
            content=fields.get("bodyText") or fields.get("trailText"),
            image_url=fields.get("thumbnail"),
        )
