"""Runtime configuration for yt-resume.

Values are read from the environment (``YT_RESUME_`` prefix) and an
optional ``.env`` file.  Library code receives a :class:`Settings`
instance explicitly; only the CLI layer calls :func:`get_settings`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.5993.90 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="YT_RESUME_",
        env_file=".env",
        extra="ignore",
    )

    # Relay
    relay_url: str = "https://corsproxy.io/?"
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-US,en;q=0.9"
    request_timeout: float = Field(default=20.0, gt=0)

    # Extraction
    bare_id_limit: int = Field(default=20, ge=1)

    # Playback
    checkpoint_interval: float = Field(default=5.0, gt=0)
    duration_poll_interval: float = Field(default=0.25, gt=0)

    # Storage
    database_path: Path = Path.home() / ".yt-resume" / "progress.db"

    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
