# thermogestion/core/settings.py
import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === General ===
    APP_NAME: str = "ThermoGestion"
    APP_ENV: str = "local"  # local | development | production
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # === Database ===
    DATABASE_URL: str = "sqlite:///./thermogestion.db"

    # === Auth ===
    JWT_SECRET: str = "dev-only-secret-change-me-in-production-0123456789"
    JWT_EXP_HOURS: int = 24

    # === Stripe ===
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE: int = Field(300, description="Max signature age in seconds")
    DEFAULT_PLAN: str = Field("lite", description="Plan applied when a subscription is cancelled")

    # === Logging / observability ===
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: Optional[str] = None
    METRICS_ENABLED: bool = True

    # === i18n ===
    DEFAULT_LOCALE: str = "fr"

    # === Shop rate defaults (used when a tenant has no stored settings) ===
    DEFAULT_LABOR_RATE_PER_HOUR: float = 35.0
    DEFAULT_LABOR_HOURS_PER_M2: float = 0.15
    DEFAULT_CONSUMABLES_COST_PER_M2: float = 2.0
    DEFAULT_POWDER_MARGIN_PCT: float = 30.0
    DEFAULT_LABOR_MARGIN_PCT: float = 50.0
    DEFAULT_VAT_RATE_PCT: float = 20.0

    # === Oven defaults ===
    DEFAULT_OVEN_BATCHES_PER_DAY: int = 8
    DEFAULT_OVEN_MAX_WEIGHT_KG: float = 500.0
    DEFAULT_OVEN_MAX_TEMP_C: float = 250.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def stripe_configured(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY and self.STRIPE_WEBHOOK_SECRET)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance with simple per-environment overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.APP_ENV).lower()
    if env == "production":
        s.LOG_LEVEL = "WARNING"
    elif env == "development":
        s.LOG_LEVEL = "DEBUG"

    return s


settings = get_settings()
