"""Configuration management for the auction bot."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(extra="ignore")

    # Discord
    discord_token: str = ""
    guild_ids: Annotated[list[int], NoDecode] = Field(default_factory=list)

    # Auction API
    api_base_url: str = "https://v2.api.noroff.dev"
    api_key_header: str = "X-Noroff-API-Key"
    request_timeout: float = 15.0
    student_email_domain: str = "stud.noroff.no"

    # Feed
    feed_limit: int = 100
    feed_page_size: int = 10

    # Local state
    data_dir: Path = Path("data")
    timezone: str = "UTC"
    log_level: str = "INFO"

    @field_validator("guild_ids", mode="before")
    @classmethod
    def split_guild_ids(cls, value: str | list[int] | None) -> list[int]:
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return value
        return [int(g.strip()) for g in str(value).split(",") if g.strip()]

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone used to read listing end dates typed by users."""
        return ZoneInfo(self.timezone)

    @property
    def sessions_path(self) -> Path:
        return self.data_dir / "sessions.json"

    def config_errors(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []
        if not self.discord_token:
            errors.append("DISCORD_TOKEN is required")
        if not self.api_base_url.startswith(("http://", "https://")):
            errors.append("API_BASE_URL must start with http:// or https://")
        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")
        if not 1 <= self.feed_page_size <= 25:
            errors.append("FEED_PAGE_SIZE must be between 1 and 25")
        if self.feed_limit < 1:
            errors.append("FEED_LIMIT must be at least 1")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"TIMEZONE {self.timezone!r} is not a known timezone")
        return errors


# Global settings instance
settings = Settings()
