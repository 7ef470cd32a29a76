# app/core/config.py

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./hapien.db"

    # --- Supabase (auth + REST) ---
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None
    SUPABASE_JWT_AUDIENCE: str = "authenticated"

    # --- Anthropic ---
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-haiku-20240307"
    ANTHROPIC_MAX_TOKENS: int = 300

    # --- Razorpay ---
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_BASE_URL: str = "https://api.razorpay.com/v1"

    # --- MSG91 ---
    MSG91_AUTH_KEY: Optional[str] = None
    MSG91_TEMPLATE_ID: Optional[str] = None
    MSG91_API_URL: str = "https://control.msg91.com/api/v5/flow"
    SMS_COUNTRY_CODE: str = "91"

    # --- Cookies ---
    ACCESS_TOKEN_COOKIE: str = "hapien-access-token"
    REFRESH_TOKEN_COOKIE: str = "hapien-refresh-token"
    COOKIE_MAX_AGE: int = 365 * 24 * 60 * 60
    COOKIE_SECURE: bool = True

    # --- Client SDK timeouts (seconds) ---
    RESTORATION_TIMEOUT_SECONDS: float = 10.0
    GUARD_FALLBACK_SECONDS: float = 5.0

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


settings = Settings()
