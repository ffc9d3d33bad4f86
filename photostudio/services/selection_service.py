"""Gallery photo selection: pricing quotes and checkout of extra photos."""

from __future__ import annotations

import hashlib
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from photostudio.core.exceptions import InvalidInput, NotFound, PaymentRejected
from photostudio.integrations import GatewayPayment, MercadoPagoClient
from photostudio.models import (
    Album,
    Order,
    OrderKind,
    OrderStatus,
    PaymentAttempt,
    PaymentKind,
    PaymentStatus,
    Photo,
)
from photostudio.services.order_service import (
    add_unique,
    approve_payment,
    gateway_metadata,
    get_attempt,
    reject_payment,
    upsert_order,
)
from photostudio.services.pricing_service import (
    ZERO,
    PriceBreakdown,
    PricingConfig,
    calculate_breakdown,
)
from photostudio.services.status_resolver import StatusResolver
from photostudio.services.studio_service import StudioConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SelectionState:
    """Photos a client picked; duplicates collapse into the set."""

    selected_photo_ids: frozenset[str]
    package_photo_count: int
    extra_photo_price: Decimal

    @classmethod
    def from_ids(cls, photo_ids: Iterable[str], pricing: PricingConfig) -> "SelectionState":
        return cls(
            selected_photo_ids=frozenset(_normalize_id(value) for value in photo_ids),
            package_photo_count=pricing.package_photo_count,
            extra_photo_price=pricing.extra_photo_price,
        )

    @property
    def selected_count(self) -> int:
        return len(self.selected_photo_ids)

    def sorted_ids(self) -> list[str]:
        return sorted(self.selected_photo_ids)


@dataclass(slots=True)
class SelectionQuote:
    album_id: uuid.UUID
    selection: SelectionState
    breakdown: PriceBreakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "album_id": str(self.album_id),
            "selected_photo_ids": self.selection.sorted_ids(),
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(slots=True)
class CheckoutResult:
    external_id: str
    status: str
    total_due: Decimal
    breakdown: PriceBreakdown
    order_id: uuid.UUID | None = None
    qr_code: str | None = None
    qr_code_base64: str | None = None
    ticket_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "external_id": self.external_id,
            "status": self.status,
            "total_due": str(self.total_due),
            "order_id": str(self.order_id) if self.order_id else None,
            "qr_code": self.qr_code,
            "qr_code_base64": self.qr_code_base64,
            "ticket_url": self.ticket_url,
            "breakdown": self.breakdown.to_dict(),
        }


def _normalize_id(value: Any) -> str:
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError as exc:
        raise InvalidInput(f"Invalid photo id: {value!r}") from exc


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


async def get_gallery(
    session: AsyncSession, share_token: str, *, now: datetime | None = None
) -> Album:
    """Return the active, unexpired album behind ``share_token`` with its photos."""

    stmt = (
        select(Album)
        .options(selectinload(Album.photos))
        .where(Album.share_token == share_token)
    )
    album = (await session.execute(stmt)).scalar_one_or_none()
    if album is None or not album.is_active:
        raise NotFound("Gallery not found")
    current = now or datetime.now(UTC)
    if album.expires_at is not None and _as_aware(album.expires_at) <= current:
        raise InvalidInput("This gallery has expired")
    return album


def _validate_selection(album: Album, selection: SelectionState) -> None:
    known = {str(photo.id) for photo in album.photos}
    unknown = sorted(selection.selected_photo_ids - known)
    if unknown:
        raise InvalidInput(
            f"Photos not in this gallery: {', '.join(unknown)}"
        )


async def quote_selection(
    session: AsyncSession,
    *,
    share_token: str,
    photo_ids: Iterable[str],
    config: StudioConfig,
) -> SelectionQuote:
    album = await get_gallery(session, share_token)
    if album.studio_id != config.studio_id:
        raise NotFound("Gallery not found")
    selection = SelectionState.from_ids(photo_ids, config.pricing)
    _validate_selection(album, selection)
    breakdown = calculate_breakdown(selection.selected_count, config.pricing)
    return SelectionQuote(album_id=album.id, selection=selection, breakdown=breakdown)


def free_selection_reference(album_id: uuid.UUID, selection: SelectionState) -> str:
    digest = hashlib.sha256(",".join(selection.sorted_ids()).encode()).hexdigest()
    return f"free_{album_id.hex}_{digest[:16]}"


async def _mark_selected(
    session: AsyncSession, album_id: uuid.UUID, photo_ids: Iterable[str]
) -> None:
    ids = [uuid.UUID(value) for value in photo_ids]
    if not ids:
        return
    await session.execute(
        update(Photo)
        .where(Photo.album_id == album_id, Photo.id.in_(ids))
        .values(is_selected=True)
    )
    await session.commit()


def _payer_names(client_name: str | None, client_email: str) -> tuple[str, str]:
    parts = (client_name or "").split()
    if not parts:
        parts = [client_email.split("@", 1)[0] or "Client"]
    return parts[0], " ".join(parts[1:]) or parts[0]


async def checkout_selection(
    session: AsyncSession,
    *,
    share_token: str,
    photo_ids: Iterable[str],
    client_email: str,
    config: StudioConfig,
    gateway: MercadoPagoClient | None,
    client_name: str | None = None,
    device_id: str | None = None,
) -> CheckoutResult:
    """Settle a selection: free within the package, otherwise a PIX charge."""

    quote = await quote_selection(
        session, share_token=share_token, photo_ids=photo_ids, config=config
    )
    album_id = quote.album_id
    selected_ids = quote.selection.sorted_ids()
    breakdown = quote.breakdown
    metadata = {
        "payment_type": OrderKind.EXTRA_PHOTOS.value,
        "selected_count": breakdown.selected_count,
        "extra_count": breakdown.extra_count,
        "discount_rate": str(breakdown.discount_rate),
    }

    if breakdown.total_due == ZERO:
        reference = free_selection_reference(album_id, quote.selection)
        order, created = await upsert_order(
            session,
            studio_id=config.studio_id,
            external_reference=reference,
            kind=OrderKind.EXTRA_PHOTOS,
            client_email=client_email,
            total_amount=ZERO,
            status=OrderStatus.PAID,
            album_id=album_id,
            selected_photo_ids=selected_ids,
            metadata={**metadata, "free_tier": breakdown.is_free_tier},
        )
        order_id = order.id
        await _mark_selected(session, album_id, selected_ids)
        if created:
            logger.info("Free selection %s stored for album %s", reference, album_id)
        return CheckoutResult(
            external_id=reference,
            status=OrderStatus.PAID.value,
            total_due=ZERO,
            breakdown=breakdown,
            order_id=order_id,
        )

    config.require_gateway_token()
    if gateway is None:
        raise InvalidInput("A payment gateway is required for paid selections")
    first_name, last_name = _payer_names(client_name, client_email)
    intent = await gateway.create_pix_payment(
        amount=breakdown.total_due,
        description=f"Extra photos - {breakdown.extra_count} photo(s)",
        payer_email=client_email,
        payer_first_name=first_name,
        payer_last_name=last_name,
        external_reference=f"selection_{album_id.hex}_{uuid.uuid4().hex[:12]}",
        idempotency_key=str(uuid.uuid4()),
        device_id=device_id,
        metadata={**metadata, "album_id": str(album_id)},
    )
    attempt = PaymentAttempt(
        studio_id=config.studio_id,
        kind=PaymentKind.SELECTION,
        external_id=intent.id,
        status=PaymentStatus.PENDING,
        gateway_status=intent.status,
        amount=breakdown.total_due,
        payer_email=client_email,
        album_id=album_id,
        selected_photo_ids=selected_ids,
    )
    await add_unique(session, attempt, reference=intent.id)
    order, _ = await upsert_order(
        session,
        studio_id=config.studio_id,
        external_reference=intent.id,
        kind=OrderKind.EXTRA_PHOTOS,
        client_email=client_email,
        total_amount=breakdown.total_due,
        album_id=album_id,
        selected_photo_ids=selected_ids,
        metadata={**metadata, "breakdown": breakdown.to_dict()},
    )
    logger.info(
        "Selection payment %s created for album %s (%s)",
        intent.id,
        album_id,
        breakdown.total_due,
    )
    return CheckoutResult(
        external_id=intent.id,
        status=intent.status,
        total_due=breakdown.total_due,
        breakdown=breakdown,
        order_id=order.id,
        qr_code=intent.qr_code,
        qr_code_base64=intent.qr_code_base64,
        ticket_url=intent.ticket_url,
    )


async def finalize_selection(
    session: AsyncSession,
    *,
    external_id: str,
    gateway_payment: GatewayPayment | None = None,
) -> Order:
    """Settle an approved selection payment. Repeat calls are no-ops."""

    attempt = await get_attempt(session, external_id, kind=PaymentKind.SELECTION)
    studio_id = attempt.studio_id
    album_id = attempt.album_id
    selected_ids = list(attempt.selected_photo_ids or [])
    amount = attempt.amount
    payer_email = attempt.payer_email
    await approve_payment(
        session,
        attempt,
        gateway_status=gateway_payment.status if gateway_payment else None,
    )
    order, _ = await upsert_order(
        session,
        studio_id=studio_id,
        external_reference=external_id,
        kind=OrderKind.EXTRA_PHOTOS,
        client_email=payer_email,
        total_amount=amount,
        status=OrderStatus.PAID,
        album_id=album_id,
        selected_photo_ids=selected_ids,
        metadata={
            "payment_type": OrderKind.EXTRA_PHOTOS.value,
            **gateway_metadata(gateway_payment),
        },
    )
    if album_id is not None:
        await _mark_selected(session, album_id, selected_ids)
    return order


async def poll_selection(
    session: AsyncSession,
    *,
    share_token: str,
    external_id: str,
    resolver: StatusResolver,
) -> PaymentStatus:
    """Run a single confirmation tick for a selection payment."""

    album = await get_gallery(session, share_token)
    attempt = await get_attempt(session, external_id, kind=PaymentKind.SELECTION)
    if attempt.album_id != album.id:
        raise NotFound("Payment not found")

    result = await resolver.resolve(external_id)
    if result.status is PaymentStatus.APPROVED:
        await finalize_selection(
            session, external_id=external_id, gateway_payment=result.gateway_payment
        )
    elif result.status is PaymentStatus.REJECTED:
        rejected = await reject_payment(
            session, external_id=external_id, gateway_status=result.gateway_status
        )
        if rejected.status is PaymentStatus.APPROVED:
            return PaymentStatus.APPROVED
        raise PaymentRejected(
            external_id,
            rejected.gateway_status or "rejected",
            hint="Your selection was not charged; please try again.",
        )
    return result.status
