"""Configuration loading for newestcheck."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LISTING_URL = "https://news.ycombinator.com/newest"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="NEWESTCHECK_")

    # Listing settings
    listing_url: str = Field(default=DEFAULT_LISTING_URL, description="URL of the newest listing")
    target_count: int = Field(default=100, ge=0, description="Number of entries to verify")

    # Page source settings
    source: Literal["browser", "http"] = Field(
        default="browser", description="Load pages with a real browser or plain HTTP"
    )
    headless: bool = Field(default=True, description="Run the browser without a window")
    navigation_timeout_ms: int = Field(default=30_000, gt=0, description="Page load timeout")

    # Pacing settings
    min_delay_ms: int = Field(default=200, ge=0, description="Minimum delay between pages")
    max_delay_ms: int = Field(default=1000, ge=0, description="Maximum delay between pages")

    # Verification settings
    clock_skew_seconds: float = Field(
        default=0.0, ge=0, description="Allowance added to 'now' for the initial bound"
    )
    duplicate_policy: Literal["skip", "fail"] = Field(
        default="skip", description="How to treat entries already verified in this run"
    )

    # Application settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["console", "json"] = Field(default="console", description="Log renderer")
    log_dir: Path | None = Field(default=None, description="Directory for timestamped log files")
    dump_dir: Path | None = Field(default=None, description="Directory for failure page dumps")

    @field_validator("listing_url")
    @classmethod
    def validate_listing_url(cls, v: str) -> str:
        """Validate the listing URL is an http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"NEWESTCHECK_LISTING_URL '{v}' must start with http:// or https://."
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level is a standard level name."""
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"NEWESTCHECK_LOG_LEVEL '{v}' is not a valid logging level.")
        return v

    @model_validator(mode="after")
    def validate_delay_range(self) -> "Settings":
        """Validate the pacing range is not inverted."""
        if self.max_delay_ms < self.min_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= min_delay_ms ({self.min_delay_ms})."
            )
        return self
