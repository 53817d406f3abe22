"""Configuration management using Pydantic Settings"""

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DIGEST_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_digest_time(value: str) -> tuple[int, int]:
    """Parse an ``HH:MM`` 24-hour time into (hour, minute).

    Raises:
        ValueError: If the value is not a valid HH:MM time
    """
    match = DIGEST_TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time {value!r}: must be HH:MM (00:00-23:59)")
    return int(match.group(1)), int(match.group(2))


class Settings(BaseSettings):
    """Application settings with validation"""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="HN_DIGEST_", case_sensitive=False
    )

    # Telegram / Gemini credentials
    telegram_token: str = Field(default="", description="Telegram bot token")
    gemini_api_key: str = Field(default="", description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash-lite")
    chat_id: int | None = Field(
        default=None, description="Recipient chat, overridden by /start"
    )

    # Schedule
    digest_time: str = Field(default="09:00", description="Daily digest time HH:MM")
    timezone: str = Field(default="UTC")
    decay_cron: str | None = Field(
        default=None,
        description="Separate cron for tag decay; None ties decay to the digest run",
    )

    # Digest
    article_count: int = Field(default=30, ge=1, le=100)
    recency_window_days: int = Field(default=7, ge=1, le=90)
    pipeline_concurrency: int = Field(default=5, ge=1, le=50)
    fetch_timeout: float = Field(default=10.0, gt=0, le=120)
    max_content_length: int = Field(default=4000, ge=100)

    # Preference learning
    tag_decay_rate: float = Field(default=0.02, ge=0.0, lt=1.0)
    min_tag_weight: float = Field(default=0.1, gt=0.0)
    tag_boost_on_like: float = Field(default=0.2, gt=0.0)

    # Storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/hn_digest.db",
        description="Database connection URL",
    )
    database_echo: bool = Field(default=False)
    data_dir: Path = Field(default=Path("./data"))

    # Network
    request_timeout: int = Field(default=30, ge=5, le=300)
    poll_error_backoff: float = Field(default=5.0, ge=0.0, le=300.0)
    poll_timeout: int = Field(default=30, ge=0, le=50)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    @field_validator("digest_time")
    @classmethod
    def validate_digest_time(cls, v: str) -> str:
        parse_digest_time(v)
        return v

    def create_directories(self) -> None:
        """Ensure all required directories exist"""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
