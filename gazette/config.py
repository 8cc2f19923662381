"""
Application configuration module.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gazette.models import AIProvider, Repo, TimeWindow

logger = logging.getLogger(__name__)


def load_changelog_config(path: str) -> Dict[str, Any]:
    """Load subscriptions and generation preferences from the JSON config file."""
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
                if isinstance(config, dict):
                    return config
        except (json.JSONDecodeError, IOError):
            # If config file is invalid, return empty dict to fall back to defaults
            pass
    return {}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    _file_config: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Load the subscription file after initialization so CONFIG_FILE can be overridden
        self._file_config = load_changelog_config(self.CONFIG_FILE)

    # Application Configuration
    APP_NAME: str = Field(default="Gazette")
    APP_VERSION: str = Field(default="0.1.0")
    DEBUG: bool = Field(default=False)
    API_V1_STR: str = Field(default="/api/v1")

    # GitHub API Configuration
    GITHUB_TOKEN: str = Field(default="")
    GITHUB_API_URL: str = Field(default="https://api.github.com")

    # Jira Configuration (optional)
    JIRA_URL: str = Field(default="")
    JIRA_EMAIL: str = Field(default="")
    JIRA_API_TOKEN: str = Field(default="")

    # AI Provider Configuration
    AI_PROVIDER: Optional[AIProvider] = Field(default=None)
    AI_MODEL: str = Field(default="")
    OPENAI_API_KEY: str = Field(default="")
    ANTHROPIC_API_KEY: str = Field(default="")
    GEMINI_API_KEY: str = Field(default="")
    OLLAMA_HOST: str = Field(default="http://localhost:11434")

    # Timeouts
    TIMEOUT_SECONDS: int = Field(default=30)
    LLM_TIMEOUT_SECONDS: int = Field(default=300)

    # Files
    CONFIG_FILE: str = Field(default="config.json")
    OUTPUT_DIR: str = Field(default=".")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @field_validator("AI_PROVIDER", mode="before")
    @classmethod
    def normalize_provider(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v and v not in {provider.value for provider in AIProvider}:
                logger.warning(f"Unknown AI_PROVIDER '{v}', ignoring it")
                return None
            return v or None
        return v

    def get_repositories(self) -> List[Repo]:
        """Subscribed repositories from the config file, skipping malformed entries."""
        entries = self._file_config.get("repos", [])
        if not isinstance(entries, list):
            logger.warning(f"Ignoring repos in {self.CONFIG_FILE}: expected a list, got {entries!r}")
            return []

        repos = []
        for entry in entries:
            try:
                repos.append(Repo(owner=entry["owner"], name=entry["name"]))
            except (KeyError, TypeError):
                logger.warning(f"Ignoring malformed repository entry in {self.CONFIG_FILE}: {entry!r}")
        return repos

    def get_time_window(self) -> TimeWindow:
        data = self._file_config.get("time_period")
        if not data:
            return TimeWindow()
        try:
            return TimeWindow.from_dict(data)
        except ValueError as e:
            logger.warning(f"Invalid time_period in {self.CONFIG_FILE}, using default: {e}")
            return TimeWindow()

    def get_ai_provider(self) -> AIProvider:
        if self.AI_PROVIDER is not None:
            return self.AI_PROVIDER
        try:
            return AIProvider(self._file_config.get("ai_provider", AIProvider.GEMINI.value))
        except ValueError:
            logger.warning(f"Unknown ai_provider in {self.CONFIG_FILE}, using Gemini")
            return AIProvider.GEMINI

    def get_ai_model(self) -> str:
        """Configured model name, falling back to the provider default."""
        model = self.AI_MODEL or self._file_config.get("ai_model") or ""
        return model or self.get_ai_provider().default_model

    def get_api_key(self, provider: AIProvider) -> str:
        env_var = provider.api_key_env_var
        if env_var is None:
            return ""
        return getattr(self, env_var)

    @property
    def jira_configured(self) -> bool:
        return bool(self.JIRA_URL and self.JIRA_EMAIL and self.JIRA_API_TOKEN)


# Create settings instance
settings = Settings()


def configure_logging(config: Settings = settings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format=config.LOG_FORMAT,
    )
    # Request URLs logged by httpx would include the Gemini API key
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
