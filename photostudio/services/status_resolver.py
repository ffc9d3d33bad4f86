"""Resolve the current state of a payment from the gateway or local records.

Precedence: an approved or rejected answer from the gateway is
authoritative. When the gateway says pending, is not configured, or cannot
be reached, the locally persisted attempt/order (possibly updated by the
webhook) is consulted instead.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.exceptions import GatewayError, TransientNetworkFailure
from photostudio.integrations import GatewayPayment
from photostudio.models import Order, OrderStatus, PaymentAttempt, PaymentStatus

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
GatewayLookup = Callable[[str], Awaitable[GatewayPayment]]


@dataclass(frozen=True, slots=True)
class ResolvedStatus:
    status: PaymentStatus
    source: Literal["gateway", "local", "none"]
    gateway_status: str | None = None
    gateway_payment: GatewayPayment | None = None


_LOCAL_ORDER_STATUS = {
    OrderStatus.PAID: PaymentStatus.APPROVED,
    OrderStatus.CANCELLED: PaymentStatus.REJECTED,
    OrderStatus.EXPIRED: PaymentStatus.REJECTED,
}


async def read_local_status(session: AsyncSession, external_id: str) -> PaymentStatus:
    """Status implied by the persisted attempt and order for ``external_id``."""

    attempt = (
        await session.execute(
            select(PaymentAttempt).where(PaymentAttempt.external_id == external_id)
        )
    ).scalar_one_or_none()
    if attempt is not None and attempt.status.is_terminal:
        return attempt.status

    order = (
        await session.execute(
            select(Order).where(Order.external_reference == external_id)
        )
    ).scalar_one_or_none()
    if order is not None:
        return _LOCAL_ORDER_STATUS.get(order.status, PaymentStatus.PENDING)
    return PaymentStatus.PENDING


class StatusResolver:
    """Single entry point for payment status with defined precedence."""

    def __init__(
        self,
        session_factory: SessionFactory,
        gateway_lookup: GatewayLookup | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._gateway_lookup = gateway_lookup

    async def _from_gateway(self, external_id: str) -> GatewayPayment | None:
        if self._gateway_lookup is None:
            return None
        try:
            return await self._gateway_lookup(external_id)
        except TransientNetworkFailure as exc:
            logger.warning("Gateway status check failed for %s: %s", external_id, exc)
        except GatewayError as exc:
            logger.warning(
                "Gateway refused status check for %s (%s): %s",
                external_id,
                exc.status_code,
                exc,
            )
        return None

    async def _from_local(self, external_id: str) -> PaymentStatus | None:
        try:
            async with self._session_factory() as session:
                return await read_local_status(session, external_id)
        except SQLAlchemyError:
            logger.warning(
                "Local status lookup failed for %s", external_id, exc_info=True
            )
            return None

    async def resolve(self, external_id: str) -> ResolvedStatus:
        payment = await self._from_gateway(external_id)
        if payment is not None and payment.normalized_status.is_terminal:
            return ResolvedStatus(
                status=payment.normalized_status,
                source="gateway",
                gateway_status=payment.status,
                gateway_payment=payment,
            )

        local = await self._from_local(external_id)
        if local is not None and local.is_terminal:
            return ResolvedStatus(status=local, source="local")

        source: Literal["gateway", "local", "none"] = "none"
        if payment is not None:
            source = "gateway"
        elif local is not None:
            source = "local"
        return ResolvedStatus(
            status=PaymentStatus.PENDING,
            source=source,
            gateway_status=payment.status if payment is not None else None,
            gateway_payment=payment,
        )
