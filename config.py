from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r})")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return raw or default


@dataclass(frozen=True)
class Settings:
    app_name: str = "MarketSafe"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # OTP
    otp_exp_minutes: int = 5
    otp_store: str = "memory"  # memory | redis | database | firestore
    redis_url: Optional[str] = None
    otp_redis_retention_minutes: int = 60
    database_url: Optional[str] = None

    # Email
    email_provider: str = "smtp"  # smtp | brevo
    email_from: Optional[str] = None
    email_from_name: str = "MarketSafe"
    email_timeout: int = 15
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_ssl: bool = True
    brevo_api_key: Optional[str] = None

    # Firebase project
    firebase_credentials: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None

    @property
    def otp_ttl_seconds(self) -> int:
        return max(60, self.otp_exp_minutes * 60)

    @classmethod
    def from_env(cls) -> "Settings":
        app_name = _env_str("APP_NAME", "MarketSafe")
        cors = _env_str("CORS_ORIGINS", "*")
        return cls(
            app_name=app_name,
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in cors.split(",") if o.strip()],
            otp_exp_minutes=_env_int("OTP_EXP_MINUTES", 5),
            otp_store=_env_str("OTP_STORE", "memory").lower(),
            redis_url=_env_str("REDIS_URL"),
            otp_redis_retention_minutes=_env_int("OTP_REDIS_RETENTION_MINUTES", 60),
            database_url=_env_str("DATABASE_URL"),
            email_provider=_env_str("EMAIL_PROVIDER", "smtp").lower(),
            # SMTP accounts usually send as themselves.
            email_from=_env_str("EMAIL_FROM") or _env_str("SMTP_USER"),
            email_from_name=_env_str("EMAIL_FROM_NAME", app_name),
            email_timeout=_env_int("EMAIL_TIMEOUT", 15),
            smtp_host=_env_str("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_env_int("SMTP_PORT", 465),
            smtp_user=_env_str("SMTP_USER"),
            smtp_password=_env_str("SMTP_PASSWORD"),
            smtp_use_ssl=_env_bool("SMTP_USE_SSL", True),
            brevo_api_key=_env_str("BREVO_API_KEY"),
            firebase_credentials=_env_str("FIREBASE_CREDENTIALS"),
            firebase_project_id=_env_str("FIREBASE_PROJECT_ID"),
            firebase_storage_bucket=_env_str("FIREBASE_STORAGE_BUCKET"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings.from_env()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
