"""Tests for aggregator configuration loading."""

from pathlib import Path

import pytest

from news_aggregator.config import (
    BUILTIN_DEFAULTS_PATH,
    AggregatorConfig,
    AggregatorSettings,
    NewsProviderConfig,
    default_categories,
    default_locations,
    default_providers,
    load_aggregator_config,
)
from news_aggregator.errors import ConfigError

SHIPPED_CONFIG = Path(__file__).resolve().parents[2] / "config" / "news_providers.yaml"


@pytest.fixture
def write_config(tmp_path):
    def _write(text: str) -> Path:
        path = tmp_path / "news_providers.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


class TestDefaults:
    """Built-in defaults."""

    def test_settings_defaults(self):
        settings = AggregatorSettings()

        assert settings.deadline_seconds == 8.0
        assert settings.request_timeout_seconds == 10.0
        assert settings.max_retries == 2
        assert settings.retry_backoff_seconds == 0.5
        assert settings.retry_backoff_max_seconds == 4.0

    def test_default_providers_in_priority_order(self):
        config = AggregatorConfig()

        assert [p.name for p in config.get_enabled_providers()] == [
            "newsapi", "gnews", "guardian", "nytimes",
        ]

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_aggregator_config(tmp_path / "absent.yaml")

        assert len(config.providers) == 4

    def test_shipped_config_uses_builtin_providers_and_catalog(self):
        config = load_aggregator_config(SHIPPED_CONFIG)
        defaults = AggregatorConfig()

        assert config.settings.deadline_seconds == 8.0
        assert [p.name for p in config.providers] == [p.name for p in defaults.providers]
        assert [c.id for c in config.catalog.categories] == [c.id for c in defaults.catalog.categories]
        assert config.get_provider("guardian").category_mapping["sports"] == "sport"

    def test_builtin_defaults_are_packaged_yaml(self):
        assert BUILTIN_DEFAULTS_PATH.name == "defaults.yaml"
        assert BUILTIN_DEFAULTS_PATH.exists()
        assert [loc.id for loc in default_locations()] == ["us", "gb", "ca", "au", "in"]
        assert "technology" in [c.id for c in default_categories()]

    def test_default_providers_are_independent_copies(self):
        first = default_providers()
        first[0].category_mapping["technology"] = "changed"
        first[0].enabled = False

        second = default_providers()

        assert second[0].category_mapping["technology"] == "technology"
        assert second[0].enabled is True


class TestLoading:
    """YAML loading and validation."""

    def test_loads_settings_and_providers(self, write_config):
        path = write_config(
            "settings:\n"
            "  deadline_seconds: 3\n"
            "  max_retries: 1\n"
            "providers:\n"
            "  - name: wire\n"
            "    type: newsapi\n"
            "    base_url: https://wire.example/v2/\n"
            "    api_key: abc\n"
            "    priority: 2\n"
            "  - name: backup\n"
            "    type: gnews\n"
            "    base_url: https://backup.example\n"
            "    enabled: false\n"
        )

        config = load_aggregator_config(path)

        assert config.settings.deadline_seconds == 3
        assert config.settings.max_retries == 1
        assert config.get_provider("wire").base_url == "https://wire.example/v2"
        assert [p.name for p in config.get_enabled_providers()] == ["wire"]

    def test_environment_overrides_file(self, write_config, monkeypatch):
        monkeypatch.setenv("NEWS_AGGREGATOR_MAX_RETRIES", "5")
        path = write_config("settings:\n  max_retries: 1\n")

        config = load_aggregator_config(path)

        assert config.settings.max_retries == 5

    def test_invalid_yaml(self, write_config):
        path = write_config("providers: [unclosed\n")

        with pytest.raises(ConfigError):
            load_aggregator_config(path)

    def test_non_mapping_document(self, write_config):
        path = write_config("- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_aggregator_config(path)

    def test_duplicate_provider_names(self, write_config):
        path = write_config(
            "providers:\n"
            "  - {name: dup, type: newsapi, base_url: https://a.example}\n"
            "  - {name: dup, type: gnews, base_url: https://b.example}\n"
        )

        with pytest.raises(ConfigError, match="dup"):
            load_aggregator_config(path)

    def test_invalid_setting_value(self, write_config):
        path = write_config("settings:\n  max_retries: -1\n")

        with pytest.raises(ConfigError):
            load_aggregator_config(path)


class TestProviderConfig:
    """Per-provider settings."""

    def test_api_key_prefers_explicit_value(self, monkeypatch):
        monkeypatch.setenv("NEWS_AGGREGATOR_TEST_KEY", "from-env")
        config = NewsProviderConfig(
            name="n", type="newsapi", base_url="https://x.example",
            api_key="explicit", api_key_env="NEWS_AGGREGATOR_TEST_KEY",
        )

        assert config.get_api_key() == "explicit"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("NEWS_AGGREGATOR_TEST_KEY", "from-env")
        config = NewsProviderConfig(
            name="n", type="newsapi", base_url="https://x.example",
            api_key_env="NEWS_AGGREGATOR_TEST_KEY",
        )

        assert config.get_api_key() == "from-env"
