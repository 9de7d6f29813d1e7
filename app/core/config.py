# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - AUTH_JWT_SECRET (HS256 secret used to verify admin bearer tokens)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - CRON_SECRET (protects the /cron/check-expired trigger)
      - FONNTE_API_TOKEN (WhatsApp delivery; messages are only logged without it)
      - ADMIN_WHATSAPP (phone that receives "payment claimed" alerts)
    """

    PROJECT_NAME: str = "ZOGAMING Store API"
    API_V1_STR: str = "/api/v1"
    STORE_NAME: str = "ZOGAMING"

    # DB config
    DATABASE_URL: str = "sqlite:///./zogaming.db"

    # JWT verification (tokens are issued by the auth service, not here)
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALG: str = "HS256"

    # Shared secret for the external cron caller (Authorization: Bearer ...)
    CRON_SECRET: str | None = None

    # Order lifecycle policy
    PAYMENT_WINDOW_MINUTES: int = 15
    PROCESSING_TIMEOUT_MINUTES: int = 30
    ORDER_NUMBER_PREFIX: str = "ZG"

    # In-process expiry sweeper
    SWEEPER_ENABLED: bool = False
    SWEEP_INTERVAL_SECONDS: int = 300

    # WhatsApp notifications via Fonnte
    FONNTE_API_URL: str = "https://api.fonnte.com/send"
    FONNTE_API_TOKEN: str | None = None
    FONNTE_COUNTRY_CODE: str = "62"
    NOTIFY_TIMEOUT_SECONDS: float = 10.0
    ADMIN_WHATSAPP: str = "6285954092060"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
