"""API tests for gateway notifications and the local simulator."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from photostudio.core.config import get_settings
from photostudio.db.session import get_sessionmaker
from photostudio.models import Booking, WebhookLog, WebhookLogStatus
from photostudio.services.webhook_service import (
    EVENT_FETCH_ERROR,
    EVENT_IGNORED,
    EVENT_ORPHAN,
    EVENT_PROCESSED,
    compute_signature,
    signature_manifest,
)

pytestmark = pytest.mark.asyncio

WEBHOOK_URL = "/api/v1/payments/webhook"
SIMULATE_URL = "/api/v1/payments/dev/simulate-webhook"


async def _start_deposit(client: AsyncClient, studio_id) -> str:
    response = await client.post(
        f"/api/v1/studios/{studio_id}/bookings/deposit",
        json={
            "client_name": "Carla Dias",
            "client_email": "carla@example.com",
            "client_phone": "+5511977776666",
            "session_type": "birthday",
            "event_date": "2026-12-12T14:00:00+00:00",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["external_id"]


async def _logs(db_url: str) -> list[WebhookLog]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        result = await session.execute(select(WebhookLog))
        return list(result.scalars().all())


async def _booking_count(db_url: str) -> int:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        return await session.scalar(select(func.count()).select_from(Booking))


async def test_approved_notification_confirms_booking_once(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]
    external_id = await _start_deposit(client, app_context["studio_id"])
    app_context["gateway"].set_status(external_id, "approved")
    notification = {"id": "evt-100", "type": "payment", "data": {"id": external_id}}

    first = await client.post(WEBHOOK_URL, json=notification)
    second = await client.post(WEBHOOK_URL, json=notification)

    assert first.status_code == 200
    assert first.json() == {
        "received": True,
        "status": "processed",
        "external_id": external_id,
        "payment_status": "approved",
        "order_status": "paid",
    }
    assert second.json()["status"] == "processed"
    assert await _booking_count(db_url) == 1
    logs = await _logs(db_url)
    assert [log.event_type for log in logs] == [EVENT_PROCESSED]
    assert logs[0].payload["payment"]["status"] == "approved"


async def test_unknown_payment_is_logged_as_orphan(
    app_context: dict[str, Any], db_url: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    client: AsyncClient = app_context["client"]
    monkeypatch.setenv("MERCADOPAGO_ACCESS_TOKEN", "TEST-platform-token-123")
    get_settings.cache_clear()
    app_context["gateway"].add_payment("5550001", "approved")

    try:
        known = await client.post(
            WEBHOOK_URL, json={"type": "payment", "data": {"id": "5550001"}}
        )
        monkeypatch.delenv("MERCADOPAGO_ACCESS_TOKEN")
        get_settings.cache_clear()
        no_credentials = await client.post(
            WEBHOOK_URL, json={"type": "payment", "data": {"id": "5550002"}}
        )
    finally:
        get_settings.cache_clear()

    assert known.status_code == 200
    assert known.json()["status"] == "orphan"
    assert known.json()["payment_status"] == "approved"
    assert no_credentials.json()["status"] == "orphan"
    assert [log.event_type for log in await _logs(db_url)] == [EVENT_ORPHAN, EVENT_ORPHAN]
    assert await _booking_count(db_url) == 0


async def test_gateway_lookup_failure_is_logged(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]
    external_id = await _start_deposit(client, app_context["studio_id"])
    app_context["gateway"].payments.pop(external_id)

    response = await client.post(
        WEBHOOK_URL,
        json={"id": "evt-404", "type": "payment", "data": {"id": external_id}},
    )

    assert response.status_code == 502
    logs = await _logs(db_url)
    assert [log.event_type for log in logs] == [EVENT_FETCH_ERROR]
    assert logs[0].status is WebhookLogStatus.FAILED
    assert logs[0].payload["notification"]["data"]["id"] == external_id
    assert await _booking_count(db_url) == 0


async def test_query_string_payment_id_is_accepted(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    external_id = await _start_deposit(client, app_context["studio_id"])

    response = await client.post(
        WEBHOOK_URL, params={"data.id": external_id}, json={"type": "payment"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "processed"
    assert response.json()["order_status"] is None


async def test_non_payment_and_malformed_notifications(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]

    ignored = await client.post(WEBHOOK_URL, json={"type": "merchant_order"})
    missing_id = await client.post(WEBHOOK_URL, json={"type": "payment", "data": {}})
    not_json = await client.post(
        WEBHOOK_URL, content=b"not json", headers={"Content-Type": "application/json"}
    )
    not_object = await client.post(WEBHOOK_URL, json=["payment"])

    assert ignored.status_code == 200
    assert ignored.json()["status"] == "ignored"
    assert missing_id.status_code == 400
    assert not_json.status_code == 400
    assert not_object.status_code == 400
    assert [log.event_type for log in await _logs(db_url)] == [EVENT_IGNORED]


async def test_signature_is_verified_when_secret_is_set(
    app_context: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    client: AsyncClient = app_context["client"]
    external_id = await _start_deposit(client, app_context["studio_id"])
    secret = "webhook-secret"
    notification = {"type": "payment", "data": {"id": external_id}}
    signature = compute_signature(
        secret, signature_manifest(external_id, "req-1", "1760000000")
    )

    monkeypatch.setenv("PAYMENTS_WEBHOOK_SECRET", secret)
    get_settings.cache_clear()
    try:
        unsigned = await client.post(WEBHOOK_URL, json=notification)
        forged = await client.post(
            WEBHOOK_URL,
            json=notification,
            headers={"x-signature": "ts=1760000000,v1=deadbeef", "x-request-id": "req-1"},
        )
        signed = await client.post(
            WEBHOOK_URL,
            json=notification,
            headers={
                "x-signature": f"ts=1760000000,v1={signature}",
                "x-request-id": "req-1",
            },
        )
    finally:
        get_settings.cache_clear()

    assert unsigned.status_code == 400
    assert forged.status_code == 400
    assert signed.status_code == 200
    assert signed.json()["status"] == "processed"


async def test_simulated_events_drive_selection_payment(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    checkout = await client.post(
        f"/api/v1/galleries/{app_context['share_token']}/selection/checkout",
        json={"photo_ids": app_context["photo_ids"][:14], "client_email": "a@example.com"},
    )
    external_id = checkout.json()["external_id"]

    approved = await client.post(
        SIMULATE_URL, json={"external_id": external_id, "status": "approved"}
    )
    late_rejection = await client.post(
        SIMULATE_URL, json={"external_id": external_id, "status": "rejected"}
    )
    unknown = await client.post(
        SIMULATE_URL, json={"external_id": "nope", "status": "approved"}
    )

    assert approved.status_code == 200
    assert approved.json()["order_status"] == "paid"
    assert late_rejection.json()["order_status"] == "paid"
    assert unknown.status_code == 404


async def test_approval_after_rejection_is_recorded_as_conflict(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]
    external_id = await _start_deposit(client, app_context["studio_id"])

    rejected = await client.post(
        SIMULATE_URL, json={"external_id": external_id, "status": "expired"}
    )
    approved = await client.post(
        SIMULATE_URL, json={"external_id": external_id, "status": "approved"}
    )

    assert rejected.json()["order_status"] is None
    assert approved.status_code == 200
    assert approved.json()["status"] == "conflict"
    assert await _booking_count(db_url) == 0
    statuses = [log.status for log in await _logs(db_url)]
    assert statuses == [WebhookLogStatus.SUCCESS, WebhookLogStatus.FAILED]


async def test_simulator_is_local_only(
    app_context: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    client: AsyncClient = app_context["client"]
    monkeypatch.setenv("APP_ENV", "production")
    get_settings.cache_clear()
    try:
        response = await client.post(
            SIMULATE_URL, json={"external_id": "1", "status": "approved"}
        )
    finally:
        get_settings.cache_clear()

    assert response.status_code == 403
