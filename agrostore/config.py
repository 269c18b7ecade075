"""Configuration for the Agro Store marketplace service."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Marketplace service configuration.

    All settings can be overridden via environment variables.
    """

    # Service configuration
    SERVICE_NAME: str = Field(default="agrostore")
    SERVICE_HOST: str = Field(default="0.0.0.0")
    SERVICE_PORT: int = Field(default=8020, ge=1, le=65535)
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    LOG_JSON: bool = Field(default=True)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./agrostore.db")

    # Plan limits
    FREE_TIER_LISTING_LIMIT: int = Field(default=5, ge=1)

    # Payment
    MERCHANT_IDENTIFIER: str = Field(default="merchant.com.yourdomain.agrostore")
    PAYMENT_CURRENCY: str = Field(default="USD", min_length=3, max_length=3)
    PAYMENT_COUNTRY_CODE: str = Field(default="US", min_length=2, max_length=2)
    PAYMENT_SIMULATION_DELAY_SECONDS: float = Field(default=2.0, ge=0)
    PAYMENT_SIMULATED_OUTCOME: Literal["authorized", "failed", "cancelled"] = Field(
        default="authorized"
    )

    # Orders
    DEFAULT_DELIVERY_DAYS: int = Field(default=3, ge=0)

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:8080,http://localhost:3000")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


settings = Settings()
