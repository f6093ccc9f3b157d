from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"
    APP_NAME: str = "UniShopper"
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    SUPPORT_EMAIL: str = "support@unishopper.com"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./unishopper.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder secrets keep local/test runs working. Real deployments
    # must override via env.
    SESSION_SECRET: str = "dev-session-secret"
    ADMIN_SESSION_SECRET: str = "dev-admin-session-secret"
    JWT_ALGORITHM: str = "HS256"
    SESSION_MAX_AGE_DAYS: int = 30
    ADMIN_SESSION_HOURS: int = 8
    ADMIN_MAX_LOGIN_ATTEMPTS: int = 5
    ADMIN_LOCKOUT_MINUTES: int = 30
    ADMIN_COOKIE_NAME: str = "admin-session"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Klaviyo
    KLAVIYO_API_KEY: str = ""
    KLAVIYO_API_BASE: str = "https://a.klaviyo.com/api"
    KLAVIYO_REVISION: str = "2024-05-15"

    # Product capture
    SCRAPER_API_KEY: str = ""
    SCRAPER_API_BASE: str = "https://api.scraperapi.com"

    # Currency
    EXCHANGE_RATE_API_URL: str = "https://api.exchangerate-api.com/v4/latest/USD"
    EXCHANGE_RATE_CACHE_SECONDS: int = 3600
    DEFAULT_EXCHANGE_RATE: float = 121.5

    # Geolocation
    IPAPI_BASE_URL: str = "https://ipapi.co"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
