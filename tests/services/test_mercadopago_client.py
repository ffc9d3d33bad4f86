"""Tests for the Mercado Pago client over a mocked transport."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from photostudio.core.exceptions import GatewayError, TransientNetworkFailure
from photostudio.integrations import MercadoPagoClient, normalize_gateway_status
from photostudio.models import PaymentStatus

pytestmark = pytest.mark.asyncio


def _client(handler) -> MercadoPagoClient:
    return MercadoPagoClient(
        "TEST-abcdef123456",
        base_url="https://api.mercadopago.test",
        notification_url="https://studio.test/api/v1/payments/webhook",
        statement_descriptor="LUZ PHOTOS",
        transport=httpx.MockTransport(handler),
    )


async def test_create_pix_payment_sends_idempotency_key_and_reads_qr() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={
                "id": 123456,
                "status": "pending",
                "transaction_amount": 150.0,
                "point_of_interaction": {
                    "transaction_data": {
                        "qr_code": "000201-pix",
                        "qr_code_base64": "aGVsbG8=",
                        "ticket_url": "https://pix.test/123456",
                    }
                },
            },
        )

    async with _client(handler) as client:
        intent = await client.create_pix_payment(
            amount=Decimal("150.00"),
            description="Advance payment - Birthday - Ana Souza",
            payer_email="ana@example.com",
            payer_first_name="Ana",
            payer_last_name="Souza",
            external_reference="deposit_abc",
            idempotency_key="key-1",
            device_id="device-9",
        )

    assert intent.id == "123456"
    assert intent.amount == Decimal("150.00")
    assert intent.qr_code == "000201-pix"
    request = seen[0]
    assert request.headers["X-Idempotency-Key"] == "key-1"
    assert request.headers["Authorization"] == "Bearer TEST-abcdef123456"
    body = json.loads(request.content)
    assert body["payment_method_id"] == "pix"
    assert body["transaction_amount"] == 150.0
    assert body["statement_descriptor"] == "LUZ PHOTOS"
    assert body["notification_url"].endswith("/payments/webhook")
    assert body["additional_info"] == {"device_id": "device-9"}


async def test_get_payment_sums_fees_into_net_amount() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payments/42"
        return httpx.Response(
            200,
            json={
                "id": 42,
                "status": "approved",
                "transaction_amount": 150.0,
                "payment_method_id": "pix",
                "payer": {"email": "ana@example.com"},
                "fee_details": [
                    {"type": "mercadopago_fee", "amount": 1.49},
                    {"type": "financing_fee", "amount": 0.5},
                ],
            },
        )

    async with _client(handler) as client:
        payment = await client.get_payment("42")

    assert payment.normalized_status is PaymentStatus.APPROVED
    assert payment.fee_total == Decimal("1.99")
    assert payment.net_amount == Decimal("148.01")
    assert payment.payer_email == "ana@example.com"


async def test_server_errors_are_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "unavailable"})

    async with _client(handler) as client:
        with pytest.raises(TransientNetworkFailure):
            await client.get_payment("1")


async def test_connection_errors_are_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransientNetworkFailure):
            await client.get_payment("1")


async def test_client_errors_carry_status_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "invalid payer email"})

    async with _client(handler) as client:
        with pytest.raises(GatewayError) as excinfo:
            await client.get_payment("1")

    assert excinfo.value.status_code == 400
    assert "invalid payer email" in str(excinfo.value)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("approved", PaymentStatus.APPROVED),
        ("authorized", PaymentStatus.APPROVED),
        ("rejected", PaymentStatus.REJECTED),
        ("cancelled", PaymentStatus.REJECTED),
        ("expired", PaymentStatus.REJECTED),
        ("in_process", PaymentStatus.PENDING),
        (None, PaymentStatus.PENDING),
    ],
)
async def test_gateway_statuses_collapse_to_three_states(status, expected) -> None:
    assert normalize_gateway_status(status) is expected
