"""New York Times article search adapter."""

from __future__ import annotations

from typing import Any

from news_aggregator.errors import ProviderResponseError
from news_aggregator.http_client import HttpRequest
from news_aggregator.models import Article
from news_aggregator.providers.base import HttpNewsProvider

NYT_ASSET_BASE = "https://www.nytimes.com/"


class NyTimesProvider(HttpNewsProvider):
    """Adapter for the NYT article search API (auth via api-key parameter).

    Article search returns fixed pages of ten documents, so page_size is not
    sent. Categories map to news desks and locations to glocations filters.
    """

    default_source_name = "New York Times"
    api_key_param = "api-key"

    def _filter_query(self, category: str | None, location: str | None) -> str | None:
        parts = []
        desk = self.map_category(category)
        if desk:
            parts.append(f'news_desk:("{desk}")')
        glocation = self.map_location(location)
        if glocation:
            parts.append(f'glocations:("{glocation}")')
        return " AND ".join(parts) or None

    def build_category_request(
        self,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        return self.build_request(
            "/articlesearch.json",
            {"fq": self._filter_query(category, location), "sort": "newest", "page": 0},
        )

    def build_search_request(
        self,
        query: str,
        category: str | None,
        location: str | None,
        page_size: int,
    ) -> HttpRequest:
        return self.build_request(
            "/articlesearch.json",
            {
                "q": query,
                "fq": self._filter_query(category, location),
                "sort": "newest",
                "begin_date": self.search_from_date().replace("-", ""),
                "page": 0,
            },
        )

    def extract_records(self, payload: Any) -> list[dict]:
        response = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(response, dict):
            raise ProviderResponseError("Unexpected response format: missing 'response' object")
        docs = response.get("docs")
        if not isinstance(docs, list):
            raise ProviderResponseError("Unexpected response format: missing 'response.docs' list")
        return docs

    @staticmethod
    def _image_url(record: dict) -> str | None:
        multimedia = record.get("multimedia")
        if not isinstance(multimedia, list):
            return None
        for media in multimedia:
            if isinstance(media, dict) and media.get("subtype") == "xlarge" and media.get("url"):
                url = media["url"]
                return url if url.startswith("http") else f"{NYT_ASSET_BASE}{url.lstrip('/')}"
        return None

    def normalize_record(self, record: dict, category: str | None) -> Article | None:
        headline = record.get("headline") or {}
        return self.make_article(
            title=headline.get("main") if isinstance(headline, dict) else None,
            url=record.get("web_url"),
            published_at=record.get("pub_date"),
            category=category or self.reverse_category(record.get("news_desk")),
            description=record.get("abstract"),
            content=record.get("lead_paragraph"),
            image_url=self._image_url(record),
        )
