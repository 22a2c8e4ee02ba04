"""Centralized configuration using Pydantic Settings.

Every tunable of the bot lives here: chat identifiers, database URLs,
classifier and matcher strategies, cache lifetimes and the schedule of
background jobs.

Configuration can be overridden via environment variables:
- MAPDESK_DISCORD_TOKEN=...
- MAPDESK_DB_LOCATION_URL=postgresql+psycopg://...
- MAPDESK_CLASSIFIER_STRATEGY=hf_zero_shot
- MAPDESK_RESOLVER_SEMANTIC_STRATEGY=fuzzy
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATEGORIES = [
    "location",
    "poi",
    "quest",
    "camp",
    "dungeon",
    "resource",
    "user_submitted",
]


class DiscordConfig(BaseSettings):
    """Chat platform configuration.

    Environment variables prefixed with MAPDESK_DISCORD_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_DISCORD_")

    token: SecretStr = SecretStr("")
    request_channel_id: Optional[int] = None
    admin_role_id: Optional[int] = None
    guild_id: Optional[int] = None
    map_url: str = "https://soulmap.avakot.org/"


class DatabaseConfig(BaseSettings):
    """Storage configuration.

    Environment variables prefixed with MAPDESK_DB_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_DB_")

    backend: Literal["sql", "memory"] = "sql"
    request_url: str = "sqlite:///data/requests.db"
    location_url: str = "sqlite:///data/locations.db"
    create_location_schema: bool = False
    echo: bool = False
    notify_channel: str = "location_changes"


class ClassifierConfig(BaseSettings):
    """Location type inference.

    Environment variables prefixed with MAPDESK_CLASSIFIER_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_CLASSIFIER_")

    strategy: Literal["gemini", "hf_zero_shot", "none"] = "gemini"
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    fallback_category: str = "user_submitted"
    hf_model: str = "facebook/bart-large-mnli"
    confidence_threshold: float = 0.3


class GeminiConfig(BaseSettings):
    """Gemini generateContent API.

    Environment variables prefixed with MAPDESK_GEMINI_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_GEMINI_")

    api_key: SecretStr = SecretStr("")
    model: str = "gemini-1.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    classify_timeout_seconds: float = 3.0
    match_timeout_seconds: float = 5.0
    max_retries: int = 1


class ResolverConfig(BaseSettings):
    """Name resolution and autocomplete.

    Environment variables prefixed with MAPDESK_RESOLVER_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_RESOLVER_")

    semantic_strategy: Literal["gemini", "fuzzy", "none"] = "fuzzy"
    default_limit: int = 5
    max_choices: int = 25
    names_ttl_seconds: float = 3600.0
    semantic_sample_size: int = 500
    fuzzy_min_score: float = 70.0


class SessionConfig(BaseSettings):
    """Edit sessions and new-request drafts.

    Environment variables prefixed with MAPDESK_SESSION_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_SESSION_")

    ttl_seconds: float = 1800.0
    sweep_interval_seconds: float = 300.0
    draft_ttl_seconds: float = 900.0


class SyncConfig(BaseSettings):
    """Periodic reconciliation of requests against chat messages.

    Environment variables prefixed with MAPDESK_SYNC_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_SYNC_")

    enabled: bool = True
    initial_delay_seconds: float = 10.0
    interval_hours: float = 24.0
    pause_every: int = 5
    pause_seconds: float = 1.0


class ObservabilityConfig(BaseSettings):
    """Logging configuration.

    Environment variables prefixed with MAPDESK_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    discord_level: str = "WARNING"


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

        config = get_config()
        print(config.resolver.max_choices)
        print(config.db.request_url)

    Environment variables prefixed with MAPDESK_.
    """

    model_config = SettingsConfigDict(env_prefix="MAPDESK_")

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache."""
    get_config.cache_clear()
