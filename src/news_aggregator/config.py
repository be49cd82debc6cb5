"""Aggregator configuration loading and validation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from news_aggregator.errors import ConfigError

# Load .env file
load_dotenv()

logger = logging.getLogger("news_aggregator")

DEFAULT_CONFIG_PATH = Path("config/news_providers.yaml")
BUILTIN_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_builtin_defaults: dict[str, Any] | None = None


class AggregatorSettings(BaseSettings):
    """Global aggregation settings.

    Every field can be overridden by an environment variable prefixed with
    NEWS_AGGREGATOR_ (e.g. NEWS_AGGREGATOR_MAX_RETRIES=3). Environment values
    win over values from the YAML file.
    """

    model_config = SettingsConfigDict(env_prefix="NEWS_AGGREGATOR_", extra="ignore")

    request_timeout_seconds: float = Field(default=10.0, gt=0)
    deadline_seconds: float = Field(default=8.0, gt=0)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_backoff_seconds: float = Field(default=0.5, ge=0)
    retry_backoff_max_seconds: float = Field(default=4.0, ge=0)
    default_page_size: int = Field(default=10, ge=1, le=100)
    cache_ttl_seconds: float = Field(default=0, ge=0)
    cache_max_entries: int = Field(default=500, ge=0)
    requests_per_second: float = Field(default=0, ge=0)
    user_agent: str = "NewsAggregator/1.0"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return env_settings, init_settings, file_secret_settings


class NewsProviderConfig(BaseModel):
    """Configuration for one external news provider."""

    name: str
    type: str
    base_url: str
    api_key: str | None = None
    api_key_env: str | None = None
    enabled: bool = True
    priority: int = Field(default=1, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)
    display_name: str | None = None
    description: str = ""

    # Our identifiers -> provider identifiers
    category_mapping: dict[str, str] = Field(default_factory=dict)
    country_mapping: dict[str, str] = Field(default_factory=dict)
    extra_params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_api_key(self) -> str | None:
        """Get API key from config or environment."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.getenv(self.api_key_env)
        return None


class CategoryConfig(BaseModel):
    id: str
    name: str
    description: str = ""


class LocationConfig(BaseModel):
    id: str
    name: str
    code: str


def _read_builtin_defaults() -> dict[str, Any]:
    """Parse the packaged defaults.yaml (provider set and catalog)."""
    global _builtin_defaults
    if _builtin_defaults is None:
        try:
            with open(BUILTIN_DEFAULTS_PATH, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read built-in defaults {BUILTIN_DEFAULTS_PATH}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid built-in defaults {BUILTIN_DEFAULTS_PATH}: expected a mapping")
        _builtin_defaults = data
    return _builtin_defaults


def default_categories() -> list[CategoryConfig]:
    return [CategoryConfig(**c) for c in _read_builtin_defaults()["catalog"]["categories"]]


def default_locations() -> list[LocationConfig]:
    return [LocationConfig(**loc) for loc in _read_builtin_defaults()["catalog"]["locations"]]


class CatalogConfig(BaseModel):
    """Static category and location catalogs."""

    categories: list[CategoryConfig] = Field(default_factory=default_categories)
    locations: list[LocationConfig] = Field(default_factory=default_locations)

    def has_category(self, category_id: str) -> bool:
        return any(c.id == category_id for c in self.categories)

    def has_location(self, location_id: str) -> bool:
        return any(loc.id == location_id for loc in self.locations)


def default_providers() -> list[NewsProviderConfig]:
    """Built-in provider set, used when the config file lists no providers."""
    return [NewsProviderConfig(**p) for p in _read_builtin_defaults()["providers"]]


class AggregatorConfig(BaseModel):
    """Full aggregator configuration."""

    settings: AggregatorSettings = Field(default_factory=AggregatorSettings)
    providers: list[NewsProviderConfig] = Field(default_factory=default_providers)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    @field_validator("providers")
    @classmethod
    def unique_provider_names(cls, v: list[NewsProviderConfig]) -> list[NewsProviderConfig]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider names: {', '.join(duplicates)}")
        return v

    def get_enabled_providers(self) -> list[NewsProviderConfig]:
        """Enabled providers sorted by priority (config order breaks ties)."""
        enabled = [p for p in self.providers if p.enabled]
        return sorted(enabled, key=lambda p: p.priority)

    def get_provider(self, name: str) -> NewsProviderConfig | None:
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None


def load_aggregator_config(config_path: Path | None = None) -> AggregatorConfig:
    """Load aggregator configuration from a YAML file.

    Args:
        config_path: Path to YAML config. Uses config/news_providers.yaml if None.

    Returns:
        AggregatorConfig. Built-in defaults if the file doesn't exist.

    Raises:
        ConfigError: If the YAML or its structure is invalid.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.info(f"CONFIG | {path} not found, using built-in defaults")
        return AggregatorConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config structure in {path}: expected a mapping")

    try:
        settings = AggregatorSettings(**(data.pop("settings", None) or {}))
        config = AggregatorConfig(settings=settings, **data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config structure in {path}: {e}") from e

    logger.info(
        f"CONFIG | loaded={path.name} | providers={len(config.providers)} | "
        f"enabled={len(config.get_enabled_providers())}"
    )
    return config
