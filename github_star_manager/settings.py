"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".local/share/github-star-manager"
DEFAULT_CACHE_DIR = Path.home() / ".cache/github-star-manager"


class Settings(BaseSettings):
    """Settings for the star management tool.

    The token is read from GITHUB_TOKEN (or STAR_MANAGEMENT_TOKEN, the secret
    name used by the scheduled workflows). Everything else uses a STARS_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="STARS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "STAR_MANAGEMENT_TOKEN"),
    )
    api_url: str = "https://api.github.com"
    per_page: int = 100
    max_retries: int = 3
    # Local bucket used until the first response reports the server's budget
    rate_limit: int = 5
    refill_rate: float = 0.5
    timeout: float = 30.0
    db_path: Path = DEFAULT_DATA_DIR / "stars.db"
    cache_dir: Path = DEFAULT_CACHE_DIR
    cutoff_months: int = 24
    github_step_summary: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_STEP_SUMMARY"),
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
