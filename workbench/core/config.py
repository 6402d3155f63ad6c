"""Configuration settings for the Creator Workbench."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workbench.core.constants import YOUTUBE_MAX_IDS_PER_CALL


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml."""

    model_config = SettingsConfigDict(  # type: ignore[assignment]
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars not defined in model
    )

    # YouTube Data API
    youtube_api_key: str = ""
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"

    # Local data source
    local_api_base_url: str = "http://localhost:5001"
    local_source: Literal["api", "mongo", "none"] = "api"
    local_page_size: int = 200

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "creator_workbench"

    # Pipeline
    video_batch_size: int = YOUTUBE_MAX_IDS_PER_CALL
    comment_thread_limit: int = 5
    comment_concurrency: int = 4
    hot_comments: bool = False
    cache_write_through: bool = False

    # HTTP
    http_timeout: float = 30.0
    http_max_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("youtube_api_base_url", "local_api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("youtube_api_key")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        return value.strip()

    @field_validator("video_batch_size")
    @classmethod
    def _cap_batch_size(cls, value: int) -> int:
        # videos.list rejects more than 50 IDs per call
        return max(1, min(value, YOUTUBE_MAX_IDS_PER_CALL))

    @property
    def local_source_enabled(self) -> bool:
        """Whether a local data source should be consulted before the remote API."""
        return self.local_source != "none"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_yaml_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to ./config.yaml or ./config.yml

    Returns:
        Dictionary with configuration values
    """

    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = path
                break

    if config_path is None or not Path(config_path).exists():
        return {}

    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        # Logging may not be configured yet when settings are first loaded
        print(f"Warning: Failed to load config file: {e}")
        return {}


def apply_yaml_config(settings: Settings, config: dict[str, Any]) -> Settings:
    """
    Apply YAML configuration to settings object.

    Environment variables take precedence over YAML config: a YAML value is only
    applied to fields that were not set explicitly.

    Args:
        settings: Settings object to update
        config: Configuration dictionary from YAML

    Returns:
        Updated Settings object
    """
    explicit = settings.model_fields_set
    sections = {
        "youtube_api": {
            "api_key": "youtube_api_key",
            "base_url": "youtube_api_base_url",
        },
        "local_cache": {
            "source": "local_source",
            "api_base_url": "local_api_base_url",
            "page_size": "local_page_size",
            "write_through": "cache_write_through",
        },
        "mongodb": {
            "url": "mongodb_url",
            "database": "mongodb_database",
        },
        "enrichment": {
            "hot_comments": "hot_comments",
            "thread_limit": "comment_thread_limit",
            "concurrency": "comment_concurrency",
        },
        "http": {
            "timeout": "http_timeout",
            "max_retries": "http_max_retries",
        },
        "logging": {
            "level": "log_level",
            "file": "log_file",
        },
    }

    updates: dict[str, Any] = {}
    for section, mapping in sections.items():
        values = config.get(section) or {}
        for yaml_key, field_name in mapping.items():
            if yaml_key in values and field_name not in explicit:
                updates[field_name] = values[yaml_key]

    if not updates:
        return settings

    # Re-validate so YAML values get the same coercion as env vars
    merged = settings.model_dump()
    merged.update(updates)
    return Settings.model_validate(merged)


def get_settings_with_yaml(config_path: Path | str | None = None) -> Settings:
    """
    Get settings with YAML configuration applied.

    Priority: Environment Variables > YAML Config > Defaults

    Args:
        config_path: Optional path to config file

    Returns:
        Settings object with YAML configuration applied
    """
    settings = get_settings()
    config = load_yaml_config(config_path)
    return apply_yaml_config(settings, config)
