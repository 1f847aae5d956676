# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: durable store
credentials, classifier access, cache windows, scheduler cadence and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from cron_converter import Cron
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === DURABLE STORE (PostgREST / Supabase) ===
    supabase_url: str = ""
    supabase_service_key: str = ""
    durable_table: str = "categorized_articles"
    durable_lookup_batch_size: int = 20
    durable_upsert_batch_size: int = 50
    durable_timeout_seconds: float = 30.0

    # === CLASSIFIER ===
    openai_api_key: str = ""
    openai_organization: str = ""
    openai_model: str = "gpt-3.5-turbo"
    classifier_provider: str = "openai"
    classifier_enabled: bool = True
    classifier_temperature: float = 0.3
    classifier_max_tokens: int = 20
    classifier_timeout_seconds: float = 30.0

    # === EPHEMERAL CACHE ===
    ephemeral_cache_enabled: bool = True
    ephemeral_cache_dir: Path = Path("~/.dealcache/cache")
    ephemeral_cache_filename: str = "local_cache.db"
    ephemeral_prefer_fast_backend: bool = True
    ephemeral_ttl_seconds: int = 3600

    # === CLEANUP ===
    cache_cleanup_interval_seconds: int = 900
    cache_expiration_seconds: int = 3600

    # === CACHED ITEMS QUERY ===
    cache_days_default: int = 7
    cache_limit_default: int = 500
    cache_limit_ceiling: int = 1000
    fallback_pages_default: int = 7

    # === REFRESH SCHEDULER ===
    scheduler_enabled: bool = True
    refresh_scheduler_enabled: bool = True
    refresh_cron: str = "*/10 * * * *"
    refresh_max_pages: int = 10
    max_fetch_pages_ceiling: int = 10
    categorization_batch_size: int = 50
    refresh_use_classifier: bool = True
    inter_batch_pause_seconds: float = 0.5
    source_fetcher: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "durable_lookup_batch_size",
        "durable_upsert_batch_size",
        "categorization_batch_size",
        "cache_limit_ceiling",
        "max_fetch_pages_ceiling",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_limit_default > self.cache_limit_ceiling:
            errors.append("CACHE_LIMIT_DEFAULT must be <= CACHE_LIMIT_CEILING")

        if self.refresh_max_pages > self.max_fetch_pages_ceiling:
            errors.append("REFRESH_MAX_PAGES must be <= MAX_FETCH_PAGES_CEILING")

        if self.ephemeral_ttl_seconds <= 0:
            errors.append("EPHEMERAL_TTL_SECONDS must be > 0")

        try:
            Cron(self.refresh_cron)
        except Exception as e:
            errors.append(f"REFRESH_CRON is not a valid cron expression: {e}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def durable_configured(self) -> bool:
        """Whether the durable store credentials are present."""
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def classifier_configured(self) -> bool:
        """Whether the hosted classifier can be reached."""
        return bool(self.openai_api_key)

    @property
    def ephemeral_db_path(self) -> Path:
        return Path(self.ephemeral_cache_dir).expanduser() / self.ephemeral_cache_filename


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or one-off runs).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
