"""Mercado Pago REST client for PIX charges."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, cast

import httpx

from photostudio.core.exceptions import GatewayError, TransientNetworkFailure
from photostudio.core.settings import get_payment_settings
from photostudio.models.payment import PaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.mercadopago.com"

_APPROVED = {"approved", "authorized"}
_REJECTED = {"rejected", "cancelled", "refunded", "charged_back", "expired"}


def normalize_gateway_status(status: str | None) -> PaymentStatus:
    """Collapse gateway statuses onto the attempt lifecycle."""

    value = (status or "").lower()
    if value in _APPROVED:
        return PaymentStatus.APPROVED
    if value in _REJECTED:
        return PaymentStatus.REJECTED
    return PaymentStatus.PENDING


@dataclass(slots=True)
class PaymentIntent:
    """PIX charge as returned at creation time."""

    id: str
    status: str
    amount: Decimal
    status_detail: str | None = None
    qr_code: str | None = None
    qr_code_base64: str | None = None
    ticket_url: str | None = None


@dataclass(slots=True)
class GatewayPayment:
    """Current state of a payment as reported by the gateway."""

    id: str
    status: str
    status_detail: str | None = None
    external_reference: str | None = None
    amount: Decimal | None = None
    payment_method_id: str | None = None
    payer_email: str | None = None
    fee_total: Decimal = Decimal("0.00")
    fee_details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def normalized_status(self) -> PaymentStatus:
        return normalize_gateway_status(self.status)

    @property
    def net_amount(self) -> Decimal | None:
        if self.amount is None:
            return None
        return (self.amount - self.fee_total).quantize(Decimal("0.01"))


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except ArithmeticError:
        return None


class MercadoPagoClient:
    """Thin async wrapper over the payments endpoints."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        notification_url: str | None = None,
        statement_descriptor: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._notification_url = notification_url
        self._statement_descriptor = statement_descriptor
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )

    @property
    def is_test_mode(self) -> bool:
        return self._access_token.startswith("TEST-")

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MercadoPagoClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, path, json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            raise TransientNetworkFailure(f"Gateway timed out on {path}") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkFailure(f"Gateway unreachable: {exc}") from exc

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientNetworkFailure(
                f"Gateway returned {response.status_code} for {path}"
            )
        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        if not isinstance(body, dict):
            body = {"raw": body}
        if response.is_error:
            logger.warning(
                "Gateway rejected %s %s with %s", method, path, response.status_code
            )
            raise GatewayError(
                str(body.get("message") or "Payment gateway rejected the request"),
                status_code=response.status_code,
                detail=body,
            )
        return cast(dict[str, Any], body)

    async def create_pix_payment(
        self,
        *,
        amount: Decimal,
        description: str,
        payer_email: str,
        payer_first_name: str,
        payer_last_name: str,
        external_reference: str,
        idempotency_key: str,
        payer_document: str | None = None,
        device_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentIntent:
        """Create a PIX charge and return its QR code payload."""

        payer: dict[str, Any] = {
            "email": payer_email,
            "first_name": payer_first_name,
            "last_name": payer_last_name,
        }
        if payer_document:
            payer["identification"] = {"type": "CPF", "number": payer_document}

        payload: dict[str, Any] = {
            "transaction_amount": float(amount.quantize(Decimal("0.01"))),
            "description": description,
            "payment_method_id": "pix",
            "payer": payer,
            "external_reference": external_reference,
            "metadata": dict(metadata or {}),
        }
        if self._statement_descriptor:
            payload["statement_descriptor"] = self._statement_descriptor
        if self._notification_url:
            payload["notification_url"] = self._notification_url
        if device_id:
            payload["additional_info"] = {"device_id": device_id}

        data = await self._request(
            "POST",
            "/v1/payments",
            json=payload,
            headers={"X-Idempotency-Key": idempotency_key},
        )
        transaction = (data.get("point_of_interaction") or {}).get(
            "transaction_data"
        ) or {}
        return PaymentIntent(
            id=str(data.get("id")),
            status=str(data.get("status", "pending")),
            status_detail=data.get("status_detail"),
            amount=_decimal_or_none(data.get("transaction_amount")) or amount,
            qr_code=transaction.get("qr_code"),
            qr_code_base64=transaction.get("qr_code_base64"),
            ticket_url=transaction.get("ticket_url"),
        )

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch the current status of ``payment_id``."""

        data = await self._request("GET", f"/v1/payments/{payment_id}")
        fee_details = list(data.get("fee_details") or [])
        fee_total = sum(
            (_decimal_or_none(fee.get("amount")) or Decimal("0") for fee in fee_details),
            Decimal("0.00"),
        )
        return GatewayPayment(
            id=str(data.get("id", payment_id)),
            status=str(data.get("status", "pending")),
            status_detail=data.get("status_detail"),
            external_reference=data.get("external_reference"),
            amount=_decimal_or_none(data.get("transaction_amount")),
            payment_method_id=data.get("payment_method_id"),
            payer_email=(data.get("payer") or {}).get("email"),
            fee_total=fee_total,
            fee_details=fee_details,
        )


def build_gateway_client(
    access_token: str, *, transport: httpx.AsyncBaseTransport | None = None
) -> MercadoPagoClient:
    """Client for ``access_token`` configured from the payment settings."""

    settings = get_payment_settings()
    return MercadoPagoClient(
        access_token,
        base_url=settings.mercadopago_api_base,
        timeout=settings.mercadopago_timeout_seconds,
        notification_url=settings.notification_url,
        statement_descriptor=settings.statement_descriptor,
        transport=transport,
    )


__all__ = [
    "GatewayPayment",
    "MercadoPagoClient",
    "PaymentIntent",
    "build_gateway_client",
    "normalize_gateway_status",
]
