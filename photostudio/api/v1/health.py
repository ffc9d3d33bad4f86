"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from photostudio.core.config import get_settings
from photostudio.core.settings import get_payment_settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck() -> dict[str, Any]:
    """Report service metadata and whether payment credentials are wired up."""
    settings = get_settings()
    payments = get_payment_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
        "checked_at": datetime.now(UTC).isoformat(),
        "payments": {
            "platform_gateway_configured": bool(payments.mercadopago_access_token),
            "webhook_signature_required": bool(
                payments.webhook_secret and payments.payments_webhook_verify
            ),
        },
    }
