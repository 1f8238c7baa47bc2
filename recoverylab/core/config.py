from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    APP_NAME: str = "recoverylab-careteam"
    ENV: Literal["local", "dev", "prod"] = "local"
    API_PREFIX: str = "/api/v1"

    # DB
    DATABASE_URL: str = "sqlite+aiosqlite:///./recoverylab.db"
    DB_MANAGE: Literal["create_all", "migrations"] = "create_all"

    # Auth (for demo HS256); in prod, use OIDC/JWKS
    JWT_ALG: str = "HS256"
    JWT_SECRET: str = "dev-secret-change-me"
    REQUIRED_AUDIENCE: str | None = None

    # SMS
    SMS_PROVIDER: Literal["noop", "twilio"] = "noop"
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None

    # Email
    EMAIL_PROVIDER: Literal["noop", "smtp"] = "noop"
    SMTP_SERVER: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    FROM_EMAIL: str = "notifications@recoverylab.com"
    FROM_NAME: str = "RecoveryLab"

    # Calendar
    CALENDAR_PROVIDER: Literal["memory", "google"] = "memory"
    GOOGLE_CALENDAR_API_BASE: str = "https://www.googleapis.com/calendar/v3"
    CALENDAR_EVENT_LOG_PATH: str = "./data/calendar_events.jsonl"
    DEFAULT_TIMEZONE: str = "America/New_York"
    PLAN_LABEL: str = "RecoveryLab Exercise Plan"

    # Fernet key for calendar tokens at rest; generated per process when local
    TOKEN_ENCRYPTION_KEY: str | None = None

    EVENT_BUS_PROVIDER: Literal["noop", "redis"] = "noop"
    REDIS_URL: str | None = None
    REDIS_STREAM: str | None = None  # default "recoverylab.events" if None
    REDIS_STREAM_MAXLEN: int = 10000

    # Fan-out / provider limits
    BROADCAST_CONCURRENCY: int = 8
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    @field_validator("DATABASE_URL")
    @classmethod
    def _must_be_async(cls, v: str):
        if "+asyncpg" not in v and "+aiosqlite" not in v:
            raise ValueError("DATABASE_URL must use an async driver (postgresql+asyncpg:// or sqlite+aiosqlite://)")
        return v

    @field_validator("BROADCAST_CONCURRENCY")
    @classmethod
    def _positive(cls, v: int):
        if v < 1:
            raise ValueError("BROADCAST_CONCURRENCY must be at least 1")
        return v

settings = Settings()
