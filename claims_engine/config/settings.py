"""Application settings loaded from environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine and service settings.

    Every value can be overridden with a ``CLAIMS_ENGINE_`` prefixed
    environment variable or an entry in a local ``.env`` file.
    """
    model_config = SettingsConfigDict(
        env_prefix="CLAIMS_ENGINE_",
        env_file=".env",
        extra="ignore",
    )

    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:5173"]

    # Payer policy
    appeal_window_days: int = 30
    submission_timezone: str = "Asia/Dubai"
    required_payment_terms: str = "30_days"

    # Claim checks
    license_expiry_warning_days: int = 30


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
