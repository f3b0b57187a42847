"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Webhook signing secrets (empty = signature verification bypassed)
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    bluefin_webhook_secret: str = Field(default="", description="Bluefin webhook HMAC secret")
    worldpay_webhook_secret: str = Field(
        default="", description="WorldPay Integrated webhook HMAC secret"
    )
    gravity_webhook_secret: str = Field(default="", description="Gravity webhook HMAC secret")
    covetrus_webhook_secret: str = Field(default="", description="Covetrus webhook HMAC secret")
    allow_unverified_webhooks: bool = Field(
        default=False,
        description="Explicit opt-in to accept unsigned webhooks in production",
    )

    # Stripe API polling
    stripe_secret_key: str = Field(
        default="", description="Stripe secret API key; enables charge polling when set"
    )
    stripe_api_version: str = Field(default="2023-10-16", description="Stripe API version")
    stripe_poll_interval_seconds: float = Field(
        default=30.0, gt=0, description="Seconds between Stripe charge polls"
    )

    # Analytics time series shaping
    time_series_base_min: int = Field(default=900, ge=0, description="Lower random base")
    time_series_base_max: int = Field(default=4500, ge=0, description="Upper random base")
    time_series_floor: int = Field(default=0, ge=0, description="Lowest reported value")
    time_series_ceiling: int = Field(default=6000, ge=0, description="Highest reported value")
    time_series_center_noon: bool = Field(
        default=False, description="Rotate the series so the noon point sits in the middle"
    )

    # Application Configuration
    app_name: str = Field(default="payment-aggregator", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3001, description="API port")
    allowed_origins: str = Field(
        default="*", description="CORS allowed origins (comma-separated)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: str) -> str:
        """Validate the Stripe secret key format when one is provided."""
        if v and not v.startswith("sk_test_") and not v.startswith("sk_live_"):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_' or 'sk_live_'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_ranges_and_trust_mode(self) -> "Settings":
        """Check the time series bounds and refuse silent trust mode in production."""
        if self.time_series_base_min > self.time_series_base_max:
            raise ValueError("time_series_base_min must not exceed time_series_base_max")
        if self.time_series_floor > self.time_series_ceiling:
            raise ValueError("time_series_floor must not exceed time_series_ceiling")

        unsigned = self.unverified_processors
        if self.is_production and unsigned and not self.allow_unverified_webhooks:
            raise ValueError(
                "Webhook secrets missing in production for: "
                f"{', '.join(unsigned)}. Set ALLOW_UNVERIFIED_WEBHOOKS=true to accept "
                "unsigned webhooks deliberately."
            )
        return self

    @property
    def webhook_secrets(self) -> Dict[str, str]:
        """Webhook secrets keyed by processor id."""
        return {
            "stripe": self.stripe_webhook_secret,
            "bluefin": self.bluefin_webhook_secret,
            "worldpay_integrated": self.worldpay_webhook_secret,
            "gravity": self.gravity_webhook_secret,
            "covetrus": self.covetrus_webhook_secret,
        }

    @property
    def unverified_processors(self) -> List[str]:
        """Processors whose webhooks are accepted without signature checks."""
        return [name for name, secret in self.webhook_secrets.items() if not secret]

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def stripe_polling_enabled(self) -> bool:
        """Check if the Stripe charge poller should run."""
        return bool(self.stripe_secret_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
