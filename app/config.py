"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Payout console settings.

    All values loaded from .env file or environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # APP
    # ===================
    environment: Literal["development", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    debug: bool = Field(default=False, description="Expose error details in responses")
    log_level: str = Field(default="INFO", description="Logging level")

    # ===================
    # PAYOUT API
    # ===================
    payout_api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the marketplace payout API",
    )
    payout_api_token: Optional[str] = Field(
        None,
        description="Bearer token for admin payout endpoints",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout applied to every payout API call",
    )
    use_mock_api: bool = Field(
        default=True,
        description="Serve the dashboard from the seeded in-memory backend",
    )

    # ===================
    # DASHBOARD
    # ===================
    default_currency: str = Field(default="SEK", description="Display currency")
    default_date_range: Literal["7d", "30d", "90d", "all"] = Field(
        default="30d",
        description="Stats window used when none is requested",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
