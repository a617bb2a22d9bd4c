"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_STATE_PATH = Path.home() / ".cache" / "todo-client" / "state.json"


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("http://localhost:5000/api"),
        validation_alias=AliasChoices("TODO_API_BASE_URL", "api_base_url"),
    )
    request_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("TODO_REQUEST_TIMEOUT", "request_timeout"),
        ge=1,
    )
    # Durable local storage holding the session token and theme preference
    state_path: Path = Field(
        default_factory=lambda: DEFAULT_STATE_PATH,
        validation_alias=AliasChoices("TODO_STATE_PATH", "state_path"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_file: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_FILE", "log_file"),
    )

    @property
    def base_url(self) -> str:
        """Return the API base URL without a trailing slash."""

        return str(self.api_base_url).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
