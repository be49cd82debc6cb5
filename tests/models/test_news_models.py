"""Tests for article and result models."""

from datetime import datetime, timezone

from news_aggregator.models import AggregationResult, Article, SourceError


def make_article(**overrides):
    data = dict(
        id="abc",
        title="Title",
        url="https://example.com/a",
        source="Example",
        published_at=datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc),
        category="science",
    )
    data.update(overrides)
    return Article(**data)


class TestArticle:
    """Article serialization."""

    def test_to_dict_uses_api_field_names(self):
        data = make_article(image_url="https://example.com/a.jpg").to_dict()

        assert data["imageUrl"] == "https://example.com/a.jpg"
        assert data["publishedAt"] == "2024-03-05T14:30:00+00:00"
        assert data["category"] == "science"
        assert "provider" not in data

    def test_optional_fields_default(self):
        article = make_article()

        assert article.description == ""
        assert article.content == ""
        assert article.image_url is None


class TestAggregationResult:
    """Result statistics."""

    def test_partial(self):
        result = AggregationResult(
            articles=[make_article()],
            errors=[SourceError(source="b", message="m", code="HTTP_500", retryable=True)],
            provider_counts={"a": 1},
        )

        assert result.partial
        assert not result.failed
        assert result.success_rate == 0.5
        result.raise_for_total_failure()

    def test_empty_errors_serialize_as_none(self):
        result = AggregationResult(articles=[], provider_counts={"a": 0})

        data = result.to_dict()

        assert data["errors"] is None
        assert data["articles"] == []
        assert data["sources"]["provider_counts"] == {"a": 0}

    def test_errors_serialized(self):
        error = SourceError(source="gnews", message="down", code="NO_RESPONSE", retryable=True)
        result = AggregationResult(articles=[], errors=[error])

        assert result.to_dict()["errors"] == [
            {"source": "gnews", "message": "down", "code": "NO_RESPONSE", "retryable": True}
        ]
        assert result.failed
