"""
Configuration settings for the fact extraction engine.

Loads configuration from environment variables using Pydantic Settings.
All settings can be overridden via .env file or environment variables.

Usage:
    from fishfacts.config.settings import settings

    print(settings.gemini_model)
    print(settings.episodes_dir)
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Gemini API key (required for any extraction run)",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for fact extraction",
    )
    gemini_temperature: float = Field(
        default=0.0, description="Sampling temperature for extraction calls"
    )
    gemini_max_output_tokens: int = Field(
        default=8192, description="Maximum output tokens per extraction call"
    )

    # Episode store
    episodes_dir: str = Field(
        default="data/episodes",
        description="Root directory holding one sub-directory per episode",
    )
    ignore_file: str = Field(
        default="episodes-ignore.txt",
        description="File listing episode directory names to leave out of runs",
    )

    # Token budget (synchronous mode)
    tokens_per_minute_limit: int = Field(
        default=250_000, description="Provider token limit per rolling minute"
    )
    token_budget_safety_factor: float = Field(
        default=0.9, description="Fraction of the provider limit the engine may use"
    )
    token_window_seconds: float = Field(
        default=60.0, description="Length of the rolling token window in seconds"
    )
    token_wait_floor_seconds: float = Field(
        default=1.0, description="Minimum sleep while waiting for token capacity"
    )
    request_overhead_tokens: int = Field(
        default=2_000,
        description="Fixed token allowance added to each transcript estimate (instructions + output)",
    )
    max_rate_limit_attempts: int = Field(
        default=3, description="Attempts per episode when the service rate-limits"
    )

    # Batch mode
    batch_poll_interval_seconds: float = Field(
        default=30.0, description="Seconds between batch job status checks"
    )
    batch_max_wait_hours: float = Field(
        default=24.0, description="Give up on a batch job after this many hours"
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_dir: str = Field(default="logs", description="Directory for run log files")


# Global settings instance
settings = Settings()
