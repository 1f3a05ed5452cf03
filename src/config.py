"""
Scout Configuration System

Hierarchical configuration with environment variable overrides.
Uses Pydantic Settings for type validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Literal
import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class BraveConfig(BaseSettings):
    """Brave Search / Suggest upstream configuration."""

    api_key: str = ""
    suggest_api_key: str = ""  # Falls back to api_key when empty
    search_endpoint: str = "https://api.search.brave.com/res/v1/web/search"
    suggest_endpoint: str = "https://api.search.brave.com/res/v1/suggest/search"
    timeout: float = 20.0
    max_attempts: int = 3  # Retries apply to timeouts and connection errors only
    retry_base_delay: float = 1.0
    verify_ssl: bool = True

    model_config = SettingsConfigDict(env_prefix="SCOUT_BRAVE_")


class LLMConfig(BaseSettings):
    """LLM service configuration."""

    provider: Literal["ollama"] = "ollama"
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:8b"  # Must support tool calling
    temperature: float = 0.7
    max_tokens: int = 4096
    max_steps: int = 10  # Max tool-calling rounds per agentic search
    timeout: float = 120.0
    verify_ssl: bool = True

    model_config = SettingsConfigDict(env_prefix="SCOUT_LLM_")


class SessionConfig(BaseSettings):
    """Session state storage configuration."""

    provider: Literal["sqlite", "memory"] = "sqlite"
    database: str = "data/sessions.db"

    model_config = SettingsConfigDict(env_prefix="SCOUT_SESSION_")


class AgentConfig(BaseSettings):
    """Agent behavior configuration."""

    max_recent_searches: int = 10
    max_conversation_history: int = 20
    default_suggest_count: int = 3  # Alternate queries fetched by optimized search
    max_concurrent_searches: int = 0  # 0 = unbounded

    model_config = SettingsConfigDict(env_prefix="SCOUT_AGENT_")


class PreferencesConfig(BaseSettings):
    """Preferences a new session starts with."""

    safesearch: Optional[Literal["off", "moderate", "strict"]] = "moderate"
    count: Optional[int] = 10
    country: Optional[str] = "US"
    text_decorations: Optional[bool] = True
    spellcheck: Optional[bool] = True
    units: Optional[Literal["metric", "imperial"]] = "metric"
    extra_snippets: Optional[bool] = True
    summary: Optional[bool] = True
    result_filter: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="SCOUT_PREFERENCES_")


class APIConfig(BaseSettings):
    """API server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    debug: bool = False
    require_api_key: bool = False  # Enable to require X-API-Key header
    api_key: str = ""
    workers: int = 1

    model_config = SettingsConfigDict(env_prefix="SCOUT_API_")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    json_format: bool = False
    file: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="SCOUT_LOG_")


class Settings(BaseSettings):
    """
    Main application settings.

    Configuration priority (highest to lowest):
    1. Environment variables (SCOUT_*)
    2. .env file
    3. Config YAML file
    4. Default values
    """

    app_name: str = "Scout"
    version: str = "1.0.0"
    environment: Literal["development", "production", "test"] = "development"

    # Sub-configurations
    brave: BraveConfig = Field(default_factory=BraveConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        if not path.exists():
            return cls()

        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration with proper precedence.

    Args:
        config_path: Optional path to YAML config file.
                    If not provided, checks SCOUT_CONFIG_PATH env var,
                    then falls back to config/default.yaml
    """
    if config_path is None:
        config_path = os.environ.get("SCOUT_CONFIG_PATH")

    if config_path is None:
        env = os.environ.get("SCOUT_ENVIRONMENT", "development")
        possible_paths = [
            Path(f"config/{env}.yaml"),
            Path("config/default.yaml"),
        ]
        for p in possible_paths:
            if p.exists():
                config_path = str(p)
                break

    if config_path and Path(config_path).exists():
        settings = Settings.from_yaml(Path(config_path))
    else:
        settings = Settings()

    return settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Use this as the primary way to access settings throughout the app.
    The settings are cached after first load.
    """
    return load_config()


def clear_settings_cache():
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
