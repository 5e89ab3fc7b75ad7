from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Credential store lives in the user's home so it survives restarts regardless of CWD
_default_store = Path.home() / ".newswatch" / "credentials.db"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Backend API (same host the mobile app talks to)
    api_base_url: str = "https://news-watch-6zyq.vercel.app"
    request_timeout_seconds: float = 15.0

    # Local durable key-value store (SQLAlchemy async URL)
    credential_store_url: str = f"sqlite+aiosqlite:///{_default_store}"
    sql_echo: bool = False

    # OTP wizard
    otp_length: int = 6
    otp_expire_seconds: int = 600
    otp_countdown_seconds: int = 600  # resend unlocks when this reaches 0

    # Client-side form rules
    min_password_length: int = 6
    min_phone_length: int = 10

    # Dev backend (newswatch.devserver)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days
    dev_expose_otp: bool = True  # echo codes in responses for local testing
    email_verification_required: bool = False

    # CORS (comma-separated origins; * allows all)
    cors_origins: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parsed CORS origins for middleware."""
        raw = self.cors_origins.strip()
        return ["*"] if not raw else [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
