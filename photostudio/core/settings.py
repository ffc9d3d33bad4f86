"""Specialized settings adapters for integrations."""

from __future__ import annotations

from pydantic import BaseModel

from photostudio.core.config import get_settings


class PaymentSettings(BaseModel):
    """Slim view of payment-related configuration."""

    mercadopago_access_token: str | None = None
    mercadopago_api_base: str = "https://api.mercadopago.com"
    mercadopago_timeout_seconds: float = 10.0
    statement_descriptor: str = "STUDIO PHOTOS"
    notification_url: str | None = None
    webhook_secret: str | None = None
    payments_webhook_verify: bool = True


class PollingSettings(BaseModel):
    """Bounded retry policy for payment confirmation polling."""

    interval_seconds: float = 3.0
    max_interval_seconds: float = 15.0
    max_attempts: int = 120
    timeout_seconds: float = 600.0


def get_payment_settings() -> PaymentSettings:
    """Return payment-specific configuration."""

    settings = get_settings()
    return PaymentSettings(
        mercadopago_access_token=settings.mercadopago_access_token or None,
        mercadopago_api_base=settings.mercadopago_api_base,
        mercadopago_timeout_seconds=settings.mercadopago_timeout_seconds,
        statement_descriptor=settings.mercadopago_statement_descriptor,
        notification_url=settings.payments_notification_url or None,
        webhook_secret=settings.payments_webhook_secret or None,
        payments_webhook_verify=settings.payments_webhook_verify,
    )


def get_polling_settings() -> PollingSettings:
    """Return the payment polling policy."""

    settings = get_settings()
    return PollingSettings(
        interval_seconds=settings.payment_poll_interval_seconds,
        max_interval_seconds=settings.payment_poll_max_interval_seconds,
        max_attempts=settings.payment_poll_max_attempts,
        timeout_seconds=settings.payment_poll_timeout_seconds,
    )
