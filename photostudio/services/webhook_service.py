"""Out-of-band payment notifications from Mercado Pago.

Notifications only carry the payment id; the current state is always
fetched from the gateway before anything is updated. Every delivery is
logged to ``webhook_logs``, including ones for payments this service never
created (orphans).
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.exceptions import (
    GatewayError,
    InvalidInput,
    NotFound,
    PaymentRejected,
    StudioError,
    TransientNetworkFailure,
)
from photostudio.core.settings import get_payment_settings
from photostudio.integrations import GatewayPayment, MercadoPagoClient
from photostudio.models import (
    OrderStatus,
    PaymentAttempt,
    PaymentKind,
    PaymentStatus,
    WebhookLog,
    WebhookLogStatus,
)
from photostudio.services.booking_service import Notifier, finalize_deposit
from photostudio.services.notification_service import dispatch_booking_confirmation
from photostudio.services.order_service import (
    gateway_metadata,
    get_order_by_reference,
    mark_order_status,
    order_status_for,
    reject_payment,
)
from photostudio.services.selection_service import finalize_selection
from photostudio.services.studio_service import load_studio_config

logger = logging.getLogger(__name__)

EVENT_PROCESSED = "mercadopago_payment_processed"
EVENT_ORPHAN = "mercadopago_payment_orphan"
EVENT_IGNORED = "mercadopago_notification_ignored"
EVENT_FAILED = "mercadopago_payment_failed"
EVENT_FETCH_ERROR = "mercadopago_payment_fetch_error"

GatewayFactory = Callable[[str], MercadoPagoClient]


class WebhookSignatureError(InvalidInput):
    """The notification signature is missing or does not match."""


@dataclass(slots=True)
class WebhookResult:
    status: str
    external_id: str | None = None
    payment_status: str | None = None
    order_status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "received": True,
            "status": self.status,
            "external_id": self.external_id,
            "payment_status": self.payment_status,
            "order_status": self.order_status,
        }


def parse_signature_header(header: str) -> tuple[str, str]:
    """Split ``ts=...,v1=...`` into its timestamp and signature."""

    parts: dict[str, str] = {}
    for chunk in header.split(","):
        key, _, value = chunk.strip().partition("=")
        if key and value:
            parts[key.strip()] = value.strip()
    ts, v1 = parts.get("ts"), parts.get("v1")
    if not ts or not v1:
        raise WebhookSignatureError("Malformed signature header")
    return ts, v1


def signature_manifest(data_id: str, request_id: str | None, ts: str) -> str:
    manifest = f"id:{data_id.lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    return manifest + f"ts:{ts};"


def compute_signature(secret: str, manifest: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_signature(
    *,
    secret: str,
    header: str | None,
    request_id: str | None,
    data_id: str,
) -> None:
    if not header:
        raise WebhookSignatureError("Missing signature header")
    ts, received = parse_signature_header(header)
    expected = compute_signature(secret, signature_manifest(data_id, request_id, ts))
    if not hmac.compare_digest(expected, received):
        logger.warning("Rejected webhook for %s: signature mismatch", data_id)
        raise WebhookSignatureError("Invalid signature")


def extract_payment_id(
    payload: dict[str, Any], query: dict[str, str] | None = None
) -> str | None:
    data = payload.get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    if query:
        return query.get("data.id") or query.get("id")
    return None


async def record_webhook(
    session: AsyncSession,
    *,
    event_type: str,
    payload: dict[str, Any],
    provider_event_id: str | None = None,
    status: WebhookLogStatus = WebhookLogStatus.SUCCESS,
) -> bool:
    """Store the delivery; returns False when ``provider_event_id`` was seen."""

    session.add(
        WebhookLog(
            provider_event_id=provider_event_id,
            event_type=event_type,
            payload=payload,
            status=status,
        )
    )
    try:
        await session.commit()
    except IntegrityError:  # duplicate deliveries are ignored
        await session.rollback()
        return False
    return True


async def _find_attempt(
    session: AsyncSession, external_id: str
) -> PaymentAttempt | None:
    stmt = (
        select(PaymentAttempt)
        .where(PaymentAttempt.external_id == external_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def _access_token_for(session: AsyncSession, external_id: str) -> str | None:
    attempt = await _find_attempt(session, external_id)
    if attempt is not None:
        config = await load_studio_config(session, attempt.studio_id)
        return config.gateway_access_token
    return get_payment_settings().mercadopago_access_token


def _payment_snapshot(payment: GatewayPayment) -> dict[str, Any]:
    return {
        "id": payment.id,
        "status": payment.status,
        "status_detail": payment.status_detail,
        "external_reference": payment.external_reference,
        "amount": str(payment.amount) if payment.amount is not None else None,
        "payment_method_id": payment.payment_method_id,
        "fee_total": str(payment.fee_total),
    }


async def apply_payment_update(
    session: AsyncSession,
    payment: GatewayPayment,
    *,
    notifier: Notifier | None = dispatch_booking_confirmation,
) -> WebhookResult:
    """Bring local records in line with the gateway's view of ``payment``."""

    external_id = payment.id
    attempt = await _find_attempt(session, external_id)
    order = await get_order_by_reference(session, external_id)
    if attempt is None and order is None:
        logger.warning("Notification for unknown payment %s", external_id)
        return WebhookResult(
            status="orphan", external_id=external_id, payment_status=payment.status
        )

    kind = attempt.kind if attempt is not None else None
    metadata = {**gateway_metadata(payment), "updated_by_webhook": True}
    normalized = payment.normalized_status

    if normalized is PaymentStatus.APPROVED:
        if kind is PaymentKind.DEPOSIT:
            await finalize_deposit(
                session,
                external_id=external_id,
                gateway_payment=payment,
                notifier=notifier,
            )
        elif kind is PaymentKind.SELECTION:
            await finalize_selection(
                session, external_id=external_id, gateway_payment=payment
            )
        target = OrderStatus.PAID
    elif normalized is PaymentStatus.REJECTED:
        if attempt is not None:
            await reject_payment(
                session,
                external_id=external_id,
                gateway_status=payment.status,
                reason=payment.status_detail,
            )
        target = order_status_for(payment.status)
    else:
        target = OrderStatus.PENDING

    updated = await mark_order_status(
        session, external_reference=external_id, status=target, metadata=metadata
    )
    logger.info(
        "Payment %s is %s; order %s", external_id, payment.status, target.value
    )
    return WebhookResult(
        status="processed",
        external_id=external_id,
        payment_status=payment.status,
        order_status=updated.status.value if updated is not None else None,
    )


def _event_id(payload: dict[str, Any]) -> str | None:
    value = payload.get("id")
    return str(value) if value is not None else None


async def _apply_and_record(
    session: AsyncSession,
    payment: GatewayPayment,
    *,
    payload: dict[str, Any],
    provider_event_id: str | None,
    notifier: Notifier | None,
) -> WebhookResult:
    log_payload = {"notification": payload, "payment": _payment_snapshot(payment)}
    try:
        result = await apply_payment_update(session, payment, notifier=notifier)
    except PaymentRejected as exc:
        logger.warning("Approval for %s conflicts with local state: %s", payment.id, exc)
        await record_webhook(
            session,
            event_type=EVENT_FAILED,
            payload={**log_payload, "error": str(exc)},
            provider_event_id=provider_event_id,
            status=WebhookLogStatus.FAILED,
        )
        return WebhookResult(
            status="conflict", external_id=payment.id, payment_status=payment.status
        )
    except StudioError as exc:
        await record_webhook(
            session,
            event_type=EVENT_FAILED,
            payload={**log_payload, "error": str(exc)},
            provider_event_id=provider_event_id,
            status=WebhookLogStatus.FAILED,
        )
        raise

    event_type = EVENT_ORPHAN if result.status == "orphan" else EVENT_PROCESSED
    await record_webhook(
        session,
        event_type=event_type,
        payload=log_payload,
        provider_event_id=provider_event_id,
    )
    return result


async def process_notification(
    session: AsyncSession,
    payload: dict[str, Any],
    *,
    gateway_factory: GatewayFactory,
    query: dict[str, str] | None = None,
    notifier: Notifier | None = dispatch_booking_confirmation,
) -> WebhookResult:
    """Handle one gateway notification."""

    event_type = str(payload.get("type") or payload.get("topic") or "")
    if event_type != "payment":
        logger.info("Ignoring %s notification", event_type or "untyped")
        await record_webhook(session, event_type=EVENT_IGNORED, payload=payload)
        return WebhookResult(status="ignored")

    payment_id = extract_payment_id(payload, query)
    if not payment_id:
        raise InvalidInput("Notification is missing data.id")

    token = await _access_token_for(session, payment_id)
    if not token:
        logger.warning("No gateway credentials to look up payment %s", payment_id)
        await record_webhook(
            session,
            event_type=EVENT_ORPHAN,
            payload={"notification": payload},
            provider_event_id=_event_id(payload),
        )
        return WebhookResult(status="orphan", external_id=payment_id)

    try:
        async with gateway_factory(token) as client:
            payment = await client.get_payment(payment_id)
    except (GatewayError, TransientNetworkFailure) as exc:
        logger.warning("Could not fetch payment %s: %s", payment_id, exc)
        await record_webhook(
            session,
            event_type=EVENT_FETCH_ERROR,
            payload={"notification": payload, "error": str(exc)},
            status=WebhookLogStatus.FAILED,
        )
        raise
    return await _apply_and_record(
        session,
        payment,
        payload=payload,
        provider_event_id=_event_id(payload),
        notifier=notifier,
    )


async def simulate_payment_event(
    session: AsyncSession,
    *,
    external_id: str,
    status: str,
    status_detail: str | None = None,
    notifier: Notifier | None = dispatch_booking_confirmation,
) -> WebhookResult:
    """Apply ``status`` to a local payment without calling the gateway."""

    attempt = await _find_attempt(session, external_id)
    if attempt is None:
        raise NotFound("Payment not found")
    payment = GatewayPayment(
        id=external_id,
        status=status,
        status_detail=status_detail or "simulated",
        amount=attempt.amount,
        payment_method_id="pix",
        payer_email=attempt.payer_email,
    )
    payload = {
        "id": f"simulated_{uuid4().hex}",
        "type": "payment",
        "data": {"id": external_id},
    }
    return await _apply_and_record(
        session,
        payment,
        payload=payload,
        provider_event_id=payload["id"],
        notifier=notifier,
    )


__all__ = [
    "EVENT_FETCH_ERROR",
    "EVENT_IGNORED",
    "EVENT_ORPHAN",
    "EVENT_PROCESSED",
    "WebhookResult",
    "WebhookSignatureError",
    "apply_payment_update",
    "extract_payment_id",
    "process_notification",
    "record_webhook",
    "simulate_payment_event",
    "verify_signature",
]
