"""Idempotent order and payment-attempt persistence keyed on the gateway reference."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.exceptions import NotFound, PaymentRejected, PersistenceConflict
from photostudio.db.base import Base
from photostudio.integrations import GatewayPayment
from photostudio.models import (
    Order,
    OrderKind,
    OrderStatus,
    PaymentAttempt,
    PaymentKind,
    PaymentStatus,
)
from photostudio.models.mixins import utcnow

logger = logging.getLogger(__name__)

_GATEWAY_TO_ORDER: Mapping[str, OrderStatus] = {
    "approved": OrderStatus.PAID,
    "authorized": OrderStatus.PAID,
    "rejected": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.CANCELLED,
    "charged_back": OrderStatus.CANCELLED,
    "expired": OrderStatus.EXPIRED,
}


def order_status_for(gateway_status: str | None) -> OrderStatus:
    return _GATEWAY_TO_ORDER.get((gateway_status or "").lower(), OrderStatus.PENDING)


def gateway_metadata(payment: GatewayPayment | None) -> dict[str, Any]:
    """Fee breakdown stored on the order once the gateway reports a payment."""

    if payment is None:
        return {}
    meta: dict[str, Any] = {
        "gateway_status": payment.status,
        "gateway_fee": str(payment.fee_total),
        "payment_method": payment.payment_method_id,
    }
    if payment.net_amount is not None:
        meta["net_amount"] = str(payment.net_amount)
    if payment.status_detail:
        meta["status_detail"] = payment.status_detail
    return meta


async def add_unique(session: AsyncSession, instance: Base, *, reference: str) -> None:
    """Insert ``instance`` and commit, raising on a unique-key collision.

    The session is rolled back on conflict so callers can re-read the row
    that won.
    """

    session.add(instance)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise PersistenceConflict(reference) from exc


async def get_order_by_reference(
    session: AsyncSession, external_reference: str
) -> Order | None:
    stmt = (
        select(Order)
        .where(Order.external_reference == external_reference)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalars().first()


def _advance_status(order: Order, status: OrderStatus) -> None:
    if order.status == status:
        return
    if order.status.is_final:
        logger.info(
            "Order %s already %s; ignoring %s",
            order.external_reference,
            order.status.value,
            status.value,
        )
        return
    order.status = status


async def upsert_order(
    session: AsyncSession,
    *,
    studio_id: UUID,
    external_reference: str,
    kind: OrderKind,
    client_email: str,
    total_amount: Decimal,
    status: OrderStatus = OrderStatus.PENDING,
    booking_id: UUID | None = None,
    album_id: UUID | None = None,
    selected_photo_ids: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,
) -> tuple[Order, bool]:
    """Create or update the order for ``external_reference``.

    Returns the order and whether this call inserted it. A duplicate insert
    raced by another writer is treated as already applied.
    """

    order = await get_order_by_reference(session, external_reference)
    if order is None:
        candidate = Order(
            studio_id=studio_id,
            booking_id=booking_id,
            album_id=album_id,
            kind=kind,
            client_email=client_email,
            selected_photo_ids=list(selected_photo_ids),
            total_amount=total_amount.quantize(Decimal("0.01")),
            status=status,
            external_reference=external_reference,
            meta=dict(metadata or {}),
        )
        try:
            await add_unique(session, candidate, reference=external_reference)
        except PersistenceConflict:
            logger.info("Order %s inserted concurrently", external_reference)
            order = await get_order_by_reference(session, external_reference)
            if order is None:
                raise
        else:
            return candidate, True

    _advance_status(order, status)
    if booking_id is not None and order.booking_id is None:
        order.booking_id = booking_id
    if album_id is not None and order.album_id is None:
        order.album_id = album_id
    if metadata:
        order.meta = {**(order.meta or {}), **metadata}
    await session.commit()
    return order, False


async def mark_order_status(
    session: AsyncSession,
    *,
    external_reference: str,
    status: OrderStatus,
    metadata: Mapping[str, Any] | None = None,
) -> Order | None:
    """Move an existing order forward; returns None when no order exists."""

    order = await get_order_by_reference(session, external_reference)
    if order is None:
        return None
    _advance_status(order, status)
    if metadata:
        order.meta = {**(order.meta or {}), **metadata}
    await session.commit()
    return order


async def list_orders(
    session: AsyncSession,
    *,
    studio_id: UUID,
    status: OrderStatus | None = None,
) -> list[Order]:
    stmt = select(Order).where(Order.studio_id == studio_id)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    stmt = stmt.order_by(Order.created_at.desc())
    return list((await session.execute(stmt)).scalars().all())


async def get_attempt(
    session: AsyncSession,
    external_id: str,
    *,
    kind: PaymentKind | None = None,
    studio_id: UUID | None = None,
) -> PaymentAttempt:
    stmt = (
        select(PaymentAttempt)
        .where(PaymentAttempt.external_id == external_id)
        .execution_options(populate_existing=True)
    )
    if kind is not None:
        stmt = stmt.where(PaymentAttempt.kind == kind)
    if studio_id is not None:
        stmt = stmt.where(PaymentAttempt.studio_id == studio_id)
    attempt = (await session.execute(stmt)).scalar_one_or_none()
    if attempt is None:
        raise NotFound("Payment not found")
    return attempt


async def reject_payment(
    session: AsyncSession,
    *,
    external_id: str,
    gateway_status: str | None = None,
    reason: str | None = None,
) -> PaymentAttempt:
    """Record a terminal failure; nothing else is created."""

    attempt = await get_attempt(session, external_id)
    if attempt.status is PaymentStatus.APPROVED:
        logger.warning(
            "Ignoring %s for payment %s which is already approved",
            gateway_status or "rejection",
            external_id,
        )
        return attempt
    if attempt.status is PaymentStatus.PENDING:
        attempt.status = PaymentStatus.REJECTED
        attempt.gateway_status = gateway_status or "rejected"
        attempt.failure_reason = reason
        attempt.resolved_at = utcnow()
        await session.commit()
        logger.info("Payment %s %s", external_id, attempt.gateway_status)

    status = order_status_for(attempt.gateway_status)
    if status is OrderStatus.PENDING:
        status = OrderStatus.CANCELLED
    await mark_order_status(session, external_reference=external_id, status=status)
    return attempt


async def approve_payment(
    session: AsyncSession,
    attempt: PaymentAttempt,
    *,
    gateway_status: str | None = None,
) -> None:
    """Mark ``attempt`` approved; a repeated approval is a no-op."""

    if attempt.status is PaymentStatus.APPROVED:
        return
    if attempt.status is PaymentStatus.REJECTED:
        raise PaymentRejected(attempt.external_id, attempt.gateway_status or "rejected")
    attempt.status = PaymentStatus.APPROVED
    attempt.gateway_status = gateway_status or "approved"
    attempt.resolved_at = utcnow()
    await session.commit()
    logger.info("Payment %s approved", attempt.external_id)
