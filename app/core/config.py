# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (only used for the Storage admin client)
      - SMTP_* (outbound verification / password reset emails)
      - pricing knobs (shipping fee, free shipping threshold, tax rate)
    """

    PROJECT_NAME: str = "Cosmetics Store API"
    API_V1_STR: str = "/api/v1"
    APP_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "media"

    # Cookies
    SESSION_COOKIE_NAME: str = "auth_session"
    GUEST_COOKIE_NAME: str = "guest_session"
    GUEST_SESSION_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days
    COOKIE_SECURE: bool = True

    # Pricing
    SHIPPING_FLAT_FEE: float = 250.0
    FREE_SHIPPING_THRESHOLD: float = 2500.0
    TAX_RATE: float = 0.1
    CHECKOUT_SESSION_TTL_MINUTES: int = 30

    # SMTP
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Cosmetics Store"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    # Shared secret for the Supabase "send email" auth hook
    SEND_EMAIL_HOOK_SECRET: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
