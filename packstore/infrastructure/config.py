"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://packstore:packstore_dev_password@db:5432/packstore"

    # Cart persistence: "memory" or "database"
    cart_store_backend: str = "memory"

    # Catalog snapshot (JSON list of products)
    catalog_path: str | None = None

    # Checkout backend
    checkout_api_url: str = "http://checkout-api:8080"
    checkout_api_timeout: float = 10.0

    # Cart sessions held in memory
    cart_session_cache_size: int = 10000
    cart_session_idle_seconds: float = 1800.0

    # Totals
    vat_rate: Decimal = Decimal("0.20")
    vat_base: str = "subtotal_and_shipping"

    # Order materialization polling
    order_poll_max_attempts: int = 10
    order_poll_retry_delay_seconds: float = 1.5
    order_poll_timeout_seconds: float = 30.0

    support_email: str = "support@packstore.example"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
