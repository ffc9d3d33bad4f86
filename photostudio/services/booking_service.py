"""Advance-payment (deposit) flow that turns a paid PIX charge into a booking.

A booking, its gallery album and its order exist only once the deposit is
approved. Every step of :func:`finalize_deposit` is keyed on the gateway
payment id, so replays from the poll endpoint, the webhook or a retry all
converge on the same rows.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.exceptions import (
    InvalidInput,
    NotFound,
    PaymentRejected,
    PersistenceConflict,
)
from photostudio.core.settings import get_polling_settings
from photostudio.integrations import GatewayPayment, MercadoPagoClient
from photostudio.models import (
    Album,
    Booking,
    OrderKind,
    OrderStatus,
    PaymentAttempt,
    PaymentKind,
    PaymentStatus,
)
from photostudio.models.booking import session_type_label
from photostudio.services.notification_service import dispatch_booking_confirmation
from photostudio.services.order_service import (
    add_unique,
    approve_payment,
    gateway_metadata,
    get_attempt,
    reject_payment,
    upsert_order,
)
from photostudio.services.payment_poller import PaymentPoller, PollerState, RetryPolicy
from photostudio.services.pricing_service import advance_payment_amount
from photostudio.services.status_resolver import (
    ResolvedStatus,
    SessionFactory,
    StatusResolver,
)
from photostudio.services.studio_service import StudioConfig, get_studio

logger = logging.getLogger(__name__)

Notifier = Callable[..., object]


@dataclass(slots=True)
class BookingDraft:
    """Client data collected before payment; stored on the attempt as JSON."""

    client_name: str
    client_email: str
    client_phone: str
    session_type: str
    event_date: datetime
    location: str = "Studio"
    notes: str | None = None
    payer_document: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "session_type": self.session_type,
            "event_date": self.event_date.isoformat(),
            "location": self.location,
            "notes": self.notes,
            "payer_document": self.payer_document,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BookingDraft":
        try:
            event_date = datetime.fromisoformat(str(data["event_date"]))
            return cls(
                client_name=data["client_name"],
                client_email=data["client_email"],
                client_phone=data["client_phone"],
                session_type=data["session_type"],
                event_date=event_date,
                location=data.get("location") or "Studio",
                notes=data.get("notes"),
                payer_document=data.get("payer_document"),
            )
        except (KeyError, ValueError) as exc:
            raise InvalidInput("Stored booking details are incomplete") from exc


@dataclass(slots=True)
class DepositStart:
    external_id: str
    status: str
    amount: Decimal
    qr_code: str | None = None
    qr_code_base64: str | None = None
    ticket_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "external_id": self.external_id,
            "status": self.status,
            "amount": str(self.amount),
            "qr_code": self.qr_code,
            "qr_code_base64": self.qr_code_base64,
            "ticket_url": self.ticket_url,
        }


@dataclass(slots=True)
class DepositPoll:
    external_id: str
    status: PaymentStatus
    booking: Booking | None = None
    album: Album | None = None


@dataclass(slots=True)
class DepositOutcome:
    state: PollerState
    booking: Booking | None = None


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split()
    if not parts:
        raise InvalidInput("Client name is required")
    first = parts[0]
    last = " ".join(parts[1:]) or first
    return first, last


async def get_booking_for_payment(
    session: AsyncSession, external_id: str
) -> Booking | None:
    stmt = (
        select(Booking)
        .where(Booking.deposit_external_id == external_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_album_for_booking(
    session: AsyncSession, booking_id: uuid.UUID
) -> Album | None:
    stmt = select(Album).where(Album.booking_id == booking_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def start_deposit(
    session: AsyncSession,
    *,
    config: StudioConfig,
    draft: BookingDraft,
    gateway: MercadoPagoClient,
    device_id: str | None = None,
) -> DepositStart:
    """Create the PIX charge for a booking's advance payment."""

    config.require_gateway_token()
    amount = advance_payment_amount(config.pricing)
    if amount <= 0:
        raise InvalidInput("Advance payment amount must be greater than zero")

    first_name, last_name = _split_name(draft.client_name)
    label = session_type_label(draft.session_type)
    reference = f"deposit_{config.studio_id.hex}_{uuid.uuid4().hex[:12]}"
    intent = await gateway.create_pix_payment(
        amount=amount,
        description=f"Advance payment - {label} - {draft.client_name}",
        payer_email=draft.client_email,
        payer_first_name=first_name,
        payer_last_name=last_name,
        external_reference=reference,
        idempotency_key=str(uuid.uuid4()),
        payer_document=draft.payer_document,
        device_id=device_id,
        metadata={
            "payment_type": OrderKind.ADVANCE_BOOKING.value,
            "studio_id": str(config.studio_id),
            "session_type": draft.session_type,
        },
    )

    attempt = PaymentAttempt(
        studio_id=config.studio_id,
        kind=PaymentKind.DEPOSIT,
        external_id=intent.id,
        status=PaymentStatus.PENDING,
        gateway_status=intent.status,
        amount=amount,
        payer_email=draft.client_email,
        booking_draft=draft.to_dict(),
    )
    await add_unique(session, attempt, reference=intent.id)
    logger.info(
        "Deposit payment %s created for studio %s (%s)",
        intent.id,
        config.studio_id,
        amount,
    )
    return DepositStart(
        external_id=intent.id,
        status=intent.status,
        amount=amount,
        qr_code=intent.qr_code,
        qr_code_base64=intent.qr_code_base64,
        ticket_url=intent.ticket_url,
    )


async def _ensure_album(
    session: AsyncSession,
    *,
    studio_id: uuid.UUID,
    booking_id: uuid.UUID,
    name: str,
) -> Album:
    album = await get_album_for_booking(session, booking_id)
    if album is not None:
        return album
    candidate = Album(studio_id=studio_id, booking_id=booking_id, name=name)
    try:
        await add_unique(session, candidate, reference=str(booking_id))
    except PersistenceConflict:
        album = await get_album_for_booking(session, booking_id)
        if album is None:
            raise
        return album
    return candidate


def _notify(
    notifier: Notifier | None, booking: Booking, album: Album, studio_name: str
) -> None:
    if notifier is None:
        return
    try:
        notifier(booking, album, studio_name=studio_name)
    except Exception:
        logger.exception(
            "Could not schedule confirmation for booking %s", booking.id
        )


async def finalize_deposit(
    session: AsyncSession,
    *,
    external_id: str,
    gateway_payment: GatewayPayment | None = None,
    notifier: Notifier | None = dispatch_booking_confirmation,
) -> Booking:
    """Create the booking, album and order for an approved deposit.

    Safe to call any number of times for the same payment; the confirmation
    e-mail is only scheduled by the call that created the booking.
    """

    attempt = await get_attempt(session, external_id, kind=PaymentKind.DEPOSIT)
    studio_id = attempt.studio_id
    amount = attempt.amount
    payer_email = attempt.payer_email
    draft = BookingDraft.from_dict(attempt.booking_draft or {})
    await approve_payment(
        session,
        attempt,
        gateway_status=gateway_payment.status if gateway_payment else None,
    )

    created = False
    booking = await get_booking_for_payment(session, external_id)
    if booking is None:
        candidate = Booking(
            studio_id=studio_id,
            client_name=draft.client_name,
            client_email=draft.client_email,
            client_phone=draft.client_phone,
            session_type=draft.session_type,
            event_date=draft.event_date,
            location=draft.location,
            notes=draft.notes,
            deposit_external_id=external_id,
            deposit_amount=amount,
        )
        try:
            await add_unique(session, candidate, reference=external_id)
        except PersistenceConflict:
            logger.info("Booking for payment %s created concurrently", external_id)
        else:
            created = True
        booking = await get_booking_for_payment(session, external_id)
        if booking is None:
            raise NotFound(f"Booking for payment {external_id} could not be stored")
    booking_id = booking.id

    album = await _ensure_album(
        session,
        studio_id=studio_id,
        booking_id=booking_id,
        name=f"{session_type_label(draft.session_type)} - {draft.client_name}",
    )
    album_id = album.id

    metadata: dict[str, Any] = {
        "payment_type": OrderKind.ADVANCE_BOOKING.value,
        "booking_id": str(booking_id),
        "client_name": draft.client_name,
        "session_type": draft.session_type,
        **gateway_metadata(gateway_payment),
    }
    await upsert_order(
        session,
        studio_id=studio_id,
        external_reference=external_id,
        kind=OrderKind.ADVANCE_BOOKING,
        client_email=payer_email,
        total_amount=amount,
        status=OrderStatus.PAID,
        booking_id=booking_id,
        album_id=album_id,
        metadata=metadata,
    )

    booking = await get_booking_for_payment(session, external_id)
    assert booking is not None
    if created:
        logger.info("Booking %s confirmed by payment %s", booking_id, external_id)
        album = await get_album_for_booking(session, booking_id) or album
        studio = await get_studio(session, studio_id)
        _notify(notifier, booking, album, studio.business_name)
    return booking


async def poll_deposit(
    session: AsyncSession,
    *,
    studio_id: uuid.UUID,
    external_id: str,
    resolver: StatusResolver,
    notifier: Notifier | None = dispatch_booking_confirmation,
) -> DepositPoll:
    """Run a single confirmation tick for a deposit payment."""

    await get_attempt(
        session, external_id, kind=PaymentKind.DEPOSIT, studio_id=studio_id
    )
    result = await resolver.resolve(external_id)

    if result.status is PaymentStatus.APPROVED:
        return await _approved_poll(
            session,
            external_id=external_id,
            gateway_payment=result.gateway_payment,
            notifier=notifier,
        )

    if result.status is PaymentStatus.REJECTED:
        attempt = await reject_payment(
            session,
            external_id=external_id,
            gateway_status=result.gateway_status,
            reason=(
                result.gateway_payment.status_detail
                if result.gateway_payment
                else None
            ),
        )
        # approval is terminal; a later failure status never undoes it
        if attempt.status is PaymentStatus.APPROVED:
            return await _approved_poll(
                session, external_id=external_id, notifier=notifier
            )
        raise PaymentRejected(external_id, attempt.gateway_status or "rejected")

    return DepositPoll(external_id=external_id, status=PaymentStatus.PENDING)


async def _approved_poll(
    session: AsyncSession,
    *,
    external_id: str,
    gateway_payment: GatewayPayment | None = None,
    notifier: Notifier | None,
) -> DepositPoll:
    booking = await finalize_deposit(
        session,
        external_id=external_id,
        gateway_payment=gateway_payment,
        notifier=notifier,
    )
    album = await get_album_for_booking(session, booking.id)
    return DepositPoll(
        external_id=external_id,
        status=PaymentStatus.APPROVED,
        booking=booking,
        album=album,
    )


async def await_deposit(
    *,
    external_id: str,
    resolver: StatusResolver,
    session_factory: SessionFactory,
    policy: RetryPolicy | None = None,
    notifier: Notifier | None = dispatch_booking_confirmation,
    sleep: Callable[[float], Any] = asyncio.sleep,
) -> DepositOutcome:
    """Poll server-side until the deposit settles, then apply the outcome."""

    booking: Booking | None = None

    async def _approved(result: ResolvedStatus | None) -> None:
        nonlocal booking
        async with session_factory() as session:
            booking = await finalize_deposit(
                session,
                external_id=external_id,
                gateway_payment=result.gateway_payment if result else None,
                notifier=notifier,
            )

    async def _rejected(result: ResolvedStatus | None) -> None:
        nonlocal booking
        async with session_factory() as session:
            attempt = await reject_payment(
                session,
                external_id=external_id,
                gateway_status=result.gateway_status if result else None,
            )
            if attempt.status is PaymentStatus.APPROVED:
                booking = await get_booking_for_payment(session, external_id)

    poller = PaymentPoller(
        resolver,
        policy or RetryPolicy.from_settings(get_polling_settings()),
        on_approved=_approved,
        on_rejected=_rejected,
        sleep=sleep,
    )
    poller.start(external_id)
    state = await poller.run()
    if state is PollerState.REJECTED and booking is not None:
        state = PollerState.APPROVED
    return DepositOutcome(state=state, booking=booking)

