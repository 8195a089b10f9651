"""Configuration management for the RAA verifier."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserSettings(BaseSettings):
    """Browser launch and per-step automation timeouts."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    headless: bool = Field(default=True, alias="VERIFIER_HEADLESS")
    user_agent: str = Field(default="Mozilla/5.0", alias="VERIFIER_USER_AGENT")

    # Independent deadlines, one per automation step
    navigation_timeout_ms: int = Field(default=90000, gt=0, alias="VERIFIER_NAVIGATION_TIMEOUT_MS")
    field_timeout_ms: int = Field(default=20000, gt=0, alias="VERIFIER_FIELD_TIMEOUT_MS")
    submit_timeout_ms: int = Field(default=20000, gt=0, alias="VERIFIER_SUBMIT_TIMEOUT_MS")
    result_timeout_ms: int = Field(default=90000, gt=0, alias="VERIFIER_RESULT_TIMEOUT_MS")
    popup_budget_ms: int = Field(default=6000, ge=0, alias="VERIFIER_POPUP_BUDGET_MS")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Verification target
    site_url: str = Field(default="https://www.raa.org.co/", alias="VERIFIER_SITE_URL")

    # Code pattern: AVAL-<digits>; deployments disagree on the digit bounds
    code_min_digits: int = Field(default=9, ge=1, alias="VERIFIER_CODE_MIN_DIGITS")
    code_max_digits: int = Field(default=11, ge=1, alias="VERIFIER_CODE_MAX_DIGITS")

    # Shared state
    cache_ttl_seconds: float = Field(default=12 * 60 * 60, gt=0, alias="VERIFIER_CACHE_TTL_SECONDS")
    rate_limit_interval_ms: int = Field(default=5000, ge=0, alias="VERIFIER_RATE_LIMIT_INTERVAL_MS")
    trust_forwarded_for: bool = Field(default=True, alias="VERIFIER_TRUST_FORWARDED_FOR")

    # Optional YAML file overriding the page selector catalogue
    selectors_file: Optional[Path] = Field(default=None, alias="VERIFIER_SELECTORS_FILE")

    debug_routes: bool = Field(default=True, alias="VERIFIER_DEBUG_ROUTES")

    browser: BrowserSettings = Field(default_factory=BrowserSettings)

    @model_validator(mode="after")
    def _check_digit_bounds(self) -> "Settings":
        if self.code_min_digits > self.code_max_digits:
            raise ValueError(
                f"VERIFIER_CODE_MIN_DIGITS ({self.code_min_digits}) exceeds "
                f"VERIFIER_CODE_MAX_DIGITS ({self.code_max_digits})"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
