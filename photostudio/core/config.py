"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = Field("Photo Studio API", alias="APP_NAME")
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int | None = Field(default=None, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_from: str | None = Field(default=None, alias="SMTP_FROM")

    mercadopago_access_token: str | None = Field(
        default=None, alias="MERCADOPAGO_ACCESS_TOKEN"
    )
    mercadopago_api_base: str = Field(
        "https://api.mercadopago.com", alias="MERCADOPAGO_API_BASE"
    )
    mercadopago_timeout_seconds: float = Field(
        10.0, alias="MERCADOPAGO_TIMEOUT_SECONDS"
    )
    mercadopago_statement_descriptor: str = Field(
        "STUDIO PHOTOS", alias="MERCADOPAGO_STATEMENT_DESCRIPTOR"
    )
    payments_notification_url: str | None = Field(
        default=None, alias="PAYMENTS_NOTIFICATION_URL"
    )
    payments_webhook_secret: str | None = Field(
        default=None, alias="PAYMENTS_WEBHOOK_SECRET"
    )
    payments_webhook_verify: bool = Field(default=True, alias="PAYMENTS_WEBHOOK_VERIFY")

    payment_poll_interval_seconds: float = Field(
        3.0, alias="PAYMENT_POLL_INTERVAL_SECONDS"
    )
    payment_poll_max_interval_seconds: float = Field(
        15.0, alias="PAYMENT_POLL_MAX_INTERVAL_SECONDS"
    )
    payment_poll_max_attempts: int = Field(120, alias="PAYMENT_POLL_MAX_ATTEMPTS")
    payment_poll_timeout_seconds: float = Field(
        600.0, alias="PAYMENT_POLL_TIMEOUT_SECONDS"
    )

    public_gallery_base_url: str = Field(
        "http://localhost:5173/gallery", alias="PUBLIC_GALLERY_BASE_URL"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:5174",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"], alias="CORS_ALLOWLIST"
    )

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_public: str = Field("20/minute", alias="RATE_LIMIT_PUBLIC")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        case_sensitive=False,
    )

    @field_validator("cors_allow_origins", "cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
